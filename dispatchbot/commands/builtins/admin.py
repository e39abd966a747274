"""Administrative commands for switching commands and groups on and off."""

from __future__ import annotations

from ..base import Command
from ..group import CommandGroup

_TARGET_ARG = {
    "key": "target",
    "label": "command/group",
    "type": ["group", "command"],
}


def _kind(target: Command | CommandGroup) -> str:
    return "group" if isinstance(target, CommandGroup) else "command"


def _is_enabled(target: Command | CommandGroup, guild) -> bool:
    if isinstance(target, CommandGroup):
        return target.is_enabled_in(guild)
    return target.is_enabled_in(guild, bypass_group=True)


class EnableCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "enable",
            "aliases": ["enable-command", "cmd-on", "command-on"],
            "group": "commands",
            "description": "Enables a command or command group.",
            "details": (
                "The argument must be the name/ID (partial or whole) of a command or command group. "
                "Only administrators may use this command."
            ),
            "examples": ["enable util", "enable Utility", "enable prefix"],
            "user_permissions": ["administrator"],
            "guarded": True,
            "args": [{**_TARGET_ARG, "prompt": "Which command or group would you like to enable?"}],
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        target = args["target"]
        kind = _kind(target)
        caveat = ""
        if isinstance(target, Command) and not target.group.is_enabled_in(ctx.guild):
            caveat = f", but the `{target.group.name}` group is disabled, so it still can't be used"

        if _is_enabled(target, ctx.guild):
            return await ctx.reply(f"The `{target.name}` {kind} is already enabled{caveat}.")
        target.set_enabled_in(ctx.guild, True)
        return await ctx.reply(f"Enabled the `{target.name}` {kind}{caveat}.")


class DisableCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "disable",
            "aliases": ["disable-command", "cmd-off", "command-off"],
            "group": "commands",
            "description": "Disables a command or command group.",
            "details": (
                "The argument must be the name/ID (partial or whole) of a command or command group. "
                "Only administrators may use this command."
            ),
            "examples": ["disable util", "disable Utility", "disable prefix"],
            "user_permissions": ["administrator"],
            "guarded": True,
            "args": [{**_TARGET_ARG, "prompt": "Which command or group would you like to disable?"}],
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        target = args["target"]
        kind = _kind(target)
        if not _is_enabled(target, ctx.guild):
            return await ctx.reply(f"The `{target.name}` {kind} is already disabled.")
        if target.guarded:
            return await ctx.reply(f"You cannot disable the `{target.name}` {kind}.")
        target.set_enabled_in(ctx.guild, False)
        return await ctx.reply(f"Disabled the `{target.name}` {kind}.")


class GroupsCommand(Command):

    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "groups",
            "aliases": ["list-groups", "show-groups"],
            "group": "commands",
            "description": "Lists all command groups.",
            "details": "Only administrators may use this command.",
            "user_permissions": ["administrator"],
            "guarded": True,
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        lines = [
            f"**{group.name}:** {'Enabled' if group.is_enabled_in(ctx.guild) else 'Disabled'}"
            for group in self.client.registry.groups.values()
        ]
        return await ctx.reply("__**Groups**__\n" + "\n".join(lines))
