"""Transport contract, structured-command schema and the Bot Framework adapter."""

from .slash import SlashCommandInfo, SlashDiff, SlashOption, diff_slash_commands
from .transport import DM_CHANNEL_KEY, channel_key

__all__ = [
    "DM_CHANNEL_KEY",
    "SlashCommandInfo",
    "SlashDiff",
    "SlashOption",
    "channel_key",
    "diff_slash_commands",
]
