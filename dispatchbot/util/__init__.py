"""Shared utilities."""

from .env_file import EnvFile, parse_bool, parse_csv
from .singletons import register_singleton, reset_all_singletons
from .text import escape_regex, parse_arg_string, remove_smart_quotes, split_message

__all__ = [
    "EnvFile",
    "escape_regex",
    "parse_arg_string",
    "parse_bool",
    "parse_csv",
    "register_singleton",
    "remove_smart_quotes",
    "reset_all_singletons",
    "split_message",
]
