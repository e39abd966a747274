"""Persistent stores."""

from .guild_settings import GuildSettingsStore

__all__ = ["GuildSettingsStore"]
