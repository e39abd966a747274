"""Utility commands: unknown-command fallback, help, ping, prefix."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ...util.text import split_message
from ..base import Command

if TYPE_CHECKING:
    from ...messaging.transport import SentMessage

logger = logging.getLogger(__name__)

_HELP_LIST_LIMIT = 15


class UnknownCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "unknown-command",
            "group": "util",
            "description": "Displays help information for when an unknown command is used.",
            "examples": ["unknown-command kickeverybodyever"],
            "unknown": True,
            "hidden": True,
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        in_guild = ctx.guild is not None
        usage = Command.format_usage(
            "help",
            ctx.client.prefix_for(ctx.guild) if in_guild else None,
            ctx.client.user if in_guild else None,
        )
        return await ctx.reply(f"Unknown command. Use {usage} to view the command list.")


class HelpCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "help",
            "group": "util",
            "aliases": ["commands"],
            "description": "Displays a list of available commands, or detailed information for a specified command.",
            "details": (
                "The command may be part of a command name or a whole command name. "
                "If it isn't specified, all available commands will be listed."
            ),
            "examples": ["help", "help prefix"],
            "guarded": True,
            "args": [{
                "key": "command",
                "prompt": "Which command would you like to view the help for?",
                "type": "string",
                "default": "",
            }],
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        search: str = args["command"] or ""
        show_all = search.lower() == "all"
        client = ctx.client

        if search and not show_all:
            commands = client.registry.find_commands(search, False, ctx)
            if not commands:
                in_dm = ctx.channel.is_dm
                usage = Command.format_usage(
                    self.name,
                    None if in_dm else client.prefix_for(ctx.guild),
                    None if in_dm else client.user,
                )
                return await ctx.reply(f"Unable to identify command. Use {usage} to view the list of all commands.")
            if len(commands) > _HELP_LIST_LIMIT:
                return await ctx.reply("Multiple commands found. Please be more specific.")
            if len(commands) > 1:
                listed = ", ".join(f'"{c.name}"' for c in commands)
                return await ctx.reply(f"Multiple commands found, please be more specific: {listed}")
            return await self._send_dm(ctx, command_help(commands[0]))

        guild = ctx.guild
        prefix = client.prefix_for(guild) if guild is not None else None
        where = guild.name if guild is not None else "this DM"
        title = "All commands" if show_all else f"Available commands in {where}"
        lines = [
            f"To run a command in {guild.name if guild is not None else 'any server'}, "
            f"use {Command.format_usage('command', prefix, client.user)}. "
            f"For example, {Command.format_usage('prefix', prefix, client.user)}.",
            f"To run a command in this DM, simply use {Command.format_usage('command')} with no prefix.",
            "",
            f"Use {self.usage('<command>')} to view detailed information about a specific command.",
            f"Use {self.usage('all')} to view a list of *all* commands, not just available ones.",
            "",
            f"__**{title}**__",
            "",
            commands_list(ctx, show_all),
        ]
        return await self._send_dm(ctx, "\n".join(lines))

    async def _send_dm(self, ctx, text: str) -> Any:
        sent: list[SentMessage] = []
        try:
            for chunk in split_message(text):
                sent.append(await ctx.author.send(chunk))
        except Exception as exc:
            logger.warning("[help] could not DM %s: %s", ctx.author.id, exc)
            return await ctx.reply("Unable to send you the help DM. You probably have DMs disabled.")
        if not ctx.channel.is_dm:
            sent.append(await ctx.reply("Sent you a DM with information."))
        return sent


def commands_list(ctx, show_all: bool) -> str:
    sections = []
    for group in ctx.client.registry.groups.values():
        visible = [
            c for c in group.commands.values()
            if not c.hidden and (show_all or c.is_usable(ctx))
        ]
        if not visible:
            continue
        entries = "\n".join(f"**{c.name}:** {c.description}{' (NSFW)' if c.nsfw else ''}" for c in visible)
        sections.append(f"__{group.name}__\n{entries}")
    return "\n\n".join(sections)


def command_help(command: Command) -> str:
    header = f"__Command **{command.name}**:__ {command.description}"
    if command.guild_only:
        header += " (Usable only in servers)"
    if command.nsfw:
        header += " (NSFW)"

    lines = [header, "", f"**Format:** {command.usage(command.format or '')}"]
    if command.aliases:
        lines.append(f"**Aliases:** {', '.join(command.aliases)}")
    lines.append(f"**Group:** {command.group.name} (`{command.group_id}:{command.member_name}`)")
    if command.details:
        lines.append(f"**Details:** {command.details}")
    if command.examples:
        lines.append("**Examples:**\n" + "\n".join(command.examples))
    return "\n".join(lines)


class PingCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "ping",
            "group": "util",
            "description": "Checks the bot's round-trip time to the chat service.",
            "throttling": {"usages": 5, "duration": 10},
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        loop = asyncio.get_running_loop()
        started = loop.time()
        message = await ctx.reply("Pinging...")
        roundtrip = (loop.time() - started) * 1000
        return await message.edit(f"Pong! The message round-trip took {roundtrip:.0f}ms.")


class PrefixCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "prefix",
            "group": "util",
            "description": "Shows or sets the command prefix.",
            "format": "[prefix/\"default\"/\"none\"]",
            "details": (
                "If no prefix is provided, the current prefix will be shown. "
                'If the prefix is "default", the prefix will be reset to the bot\'s default prefix. '
                'If the prefix is "none", the prefix will be removed entirely, only allowing mentions to run commands. '
                "Only administrators may change the prefix."
            ),
            "examples": ["prefix", "prefix -", "prefix omg!", "prefix default", "prefix none"],
            "args": [{
                "key": "prefix",
                "prompt": "What would you like to set the bot's prefix to?",
                "type": "string",
                "max": 15,
                "default": "",
            }],
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        client = ctx.client
        guild = ctx.guild
        passed: str = args["prefix"]

        if not passed:
            current = client.prefix_for(guild)
            shown = f"The command prefix is `{current}`." if current else "There is no command prefix."
            return await ctx.reply(f"{shown}\nTo run commands, use {ctx.any_usage('command')}.")

        if guild is not None:
            is_admin = not ctx.channel.missing_permissions(ctx.author.id, ["administrator"])
            if not is_admin and not client.is_owner(ctx.author):
                return await ctx.reply("Only administrators may change the command prefix.")
        elif not client.is_owner(ctx.author):
            return await ctx.reply("Only the bot owner(s) may change the global command prefix.")

        lowered = passed.lower()
        prefix = "" if lowered == "none" else passed
        new_prefix = None if lowered == "default" else prefix
        if guild is not None:
            client.set_guild_prefix(guild, new_prefix)
        else:
            client.prefix = new_prefix

        if lowered == "default":
            default = client.prefix_for(guild)
            response = f"Reset the command prefix to the default (currently {f'`{default}`' if default else 'no prefix'})"
        elif prefix:
            response = f"Set the command prefix to `{passed}`"
        else:
            response = "Removed the command prefix entirely"
        return await ctx.reply(f"{response}. To run commands, use {ctx.any_usage('command')}.")
