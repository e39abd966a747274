"""Tests for command, group and type registration and lookup."""

from __future__ import annotations

import pytest

from dispatchbot.commands.base import Command
from dispatchbot.commands.builtins import DEFAULT_COMMANDS, UnknownCommand
from dispatchbot.commands.group import CommandGroup
from dispatchbot.errors import RegistrationError, ResolutionError
from dispatchbot.events import Event
from dispatchbot.types.base import ArgumentType
from dispatchbot.types.union import UnionArgumentType


class EchoCommand(Command):
    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "echo",
            "aliases": ["say-back"],
            "auto_aliases": True,
            "group": "util",
            "description": "Echoes text.",
        })

    async def run(self, ctx, args, from_pattern=False, result=None):
        return await ctx.reply(args)


class EchoTwinCommand(Command):
    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "echoes",
            "aliases": ["echo"],
            "group": "util",
            "description": "Clashes with echo.",
        })


class ShoutCommand(Command):
    def __init__(self, client) -> None:
        super().__init__(client, {
            "name": "shout",
            "group": "util",
            "member_name": "echo",
            "description": "Clashes with echo's member name.",
        })


class OrphanCommand(Command):
    def __init__(self, client) -> None:
        super().__init__(client, {"name": "orphan", "group": "nowhere", "description": "No group."})


class TestGroups:
    def test_register_group_from_dict_and_tuple(self, client) -> None:
        client.registry.register_group({"id": "fun", "name": "Fun"})
        client.registry.register_group(("misc", "Miscellaneous"))
        assert client.registry.groups["fun"].name == "Fun"
        assert client.registry.groups["misc"].name == "Miscellaneous"

    def test_reregistering_group_renames(self, client) -> None:
        client.registry.register_group({"id": "util", "name": "Tools"})
        assert client.registry.groups["util"].name == "Tools"
        assert len(client.registry.groups) == 2

    def test_group_register_event(self, client) -> None:
        seen = []
        client.events.on(Event.GROUP_REGISTER, lambda group, registry: seen.append(group.id))
        client.registry.register_group(CommandGroup(client, "fun"))
        assert seen == ["fun"]

    def test_group_id_must_be_lowercase(self, client) -> None:
        with pytest.raises(ValueError):
            CommandGroup(client, "Fun")

    def test_invalid_group_object(self, client) -> None:
        with pytest.raises(TypeError):
            client.registry.register_group(42)

    def test_find_groups(self, client) -> None:
        registry = client.registry
        assert [g.id for g in registry.find_groups("util")] == ["util"]
        assert [g.id for g in registry.find_groups("UTILITY")] == ["util"]
        assert registry.find_groups("util", exact=True)[0].id == "util"
        assert registry.find_groups("ut", exact=True) == []
        assert len(registry.find_groups()) == 2

    def test_resolve_group(self, client) -> None:
        assert client.registry.resolve_group("commands").id == "commands"
        with pytest.raises(ResolutionError):
            client.registry.resolve_group("nope")


class TestCommands:
    def test_register_command_class(self, client) -> None:
        client.registry.register_command(EchoCommand)
        command = client.registry.commands["echo"]
        assert command.group is client.registry.groups["util"]
        assert client.registry.groups["util"].commands["echo"] is command
        assert "sayback" in command.aliases

    def test_register_event(self, client) -> None:
        seen = []
        client.events.on(Event.COMMAND_REGISTER, lambda command, registry: seen.append(command.name))
        client.registry.register_command(EchoCommand)
        assert seen == ["echo"]

    def test_name_alias_collision(self, client) -> None:
        client.registry.register_command(EchoCommand)
        with pytest.raises(RegistrationError, match="echo"):
            client.registry.register_command(EchoTwinCommand)

    def test_member_name_collision(self, client) -> None:
        client.registry.register_command(EchoCommand)
        with pytest.raises(RegistrationError, match="member name"):
            client.registry.register_command(ShoutCommand)

    def test_unregistered_group(self, client) -> None:
        with pytest.raises(RegistrationError, match="nowhere"):
            client.registry.register_command(OrphanCommand)

    def test_second_unknown_command_rejected(self, client) -> None:
        client.registry.register_command(UnknownCommand)
        assert client.registry.unknown_command is not None

        class OtherUnknown(Command):
            def __init__(self, client) -> None:
                super().__init__(client, {
                    "name": "other-unknown",
                    "group": "util",
                    "description": "Another fallback.",
                    "unknown": True,
                })

        with pytest.raises(RegistrationError, match="unknown command"):
            client.registry.register_command(OtherUnknown)

    def test_register_commands_ignore_invalid(self, client) -> None:
        client.registry.register_commands([EchoCommand, "nonsense", 3], ignore_invalid=True)
        assert list(client.registry.commands) == ["echo"]
        with pytest.raises(TypeError):
            client.registry.register_commands(["nonsense"])

    def test_register_commands_in_package(self, client) -> None:
        client.registry.register_commands_in("dispatchbot.commands.builtins")
        assert {c.name for c in client.registry.commands.values()} == {
            cls(client).name for cls in DEFAULT_COMMANDS
        }

    def test_unregister(self, client) -> None:
        seen = []
        client.events.on(Event.COMMAND_UNREGISTER, seen.append)
        client.registry.register_command(EchoCommand)
        command = client.registry.commands["echo"]
        command.unload()
        assert "echo" not in client.registry.commands
        assert "echo" not in client.registry.groups["util"].commands
        assert seen == [command]

    def test_reregister_replaces_in_place(self, client) -> None:
        client.registry.register_command(EchoCommand)
        old = client.registry.commands["echo"]
        seen = []
        client.events.on(Event.COMMAND_REREGISTER, lambda new, previous: seen.append((new, previous)))
        client.registry.reregister_command(EchoCommand, old)
        new = client.registry.commands["echo"]
        assert new is not old
        assert client.registry.groups["util"].commands["echo"] is new
        assert seen == [(new, old)]

    def test_reregister_rejects_rename(self, client) -> None:
        client.registry.register_command(EchoCommand)
        with pytest.raises(RegistrationError, match="name"):
            client.registry.reregister_command(EchoTwinCommand, client.registry.commands["echo"])


class TestFindCommands:
    @pytest.fixture(autouse=True)
    def _commands(self, client) -> None:
        client.registry.register_command(EchoCommand)
        client.registry.register_commands(DEFAULT_COMMANDS)

    def test_exact_by_name_alias_and_member(self, client) -> None:
        registry = client.registry
        assert [c.name for c in registry.find_commands("echo", exact=True)] == ["echo"]
        assert [c.name for c in registry.find_commands("say-back", exact=True)] == ["echo"]
        assert [c.name for c in registry.find_commands("util:echo", exact=True)] == ["echo"]
        assert registry.find_commands("ech", exact=True) == []

    def test_inexact_prefers_exact_hit(self, client) -> None:
        # "commands" is an alias of help and a substring of no command name.
        assert [c.name for c in client.registry.find_commands("HELP")] == ["help"]
        assert [c.name for c in client.registry.find_commands("commands")] == ["help"]

    def test_inexact_substring(self, client) -> None:
        names = {c.name for c in client.registry.find_commands("able")}
        assert names == {"enable", "disable"}

    def test_no_search_returns_all(self, client) -> None:
        assert len(client.registry.find_commands()) == len(client.registry.commands)

    def test_resolve_command(self, client) -> None:
        registry = client.registry
        echo = registry.commands["echo"]
        assert registry.resolve_command("echo") is echo
        assert registry.resolve_command(echo) is echo
        with pytest.raises(ResolutionError):
            registry.resolve_command("ech")


class TestTypes:
    def test_default_types(self, client) -> None:
        assert set(client.registry.types) >= {
            "string", "integer", "float", "boolean", "duration", "command", "group",
        }

    def test_default_type_flags(self, settings, bot_user) -> None:
        from dispatchbot.client import CommandClient

        client = CommandClient(settings, bot_user_id=bot_user.id)
        client.registry.register_default_types(duration=False, group=False)
        assert "duration" not in client.registry.types
        assert "group" not in client.registry.types
        assert "string" in client.registry.types

    def test_unknown_default_type_flag(self, client) -> None:
        with pytest.raises(ValueError):
            client.registry.register_default_types(emoji=True)

    def test_duplicate_type(self, client) -> None:
        class Other(ArgumentType):
            def __init__(self, client) -> None:
                super().__init__(client, "string")

        with pytest.raises(RegistrationError):
            client.registry.register_type(Other)

    def test_union_is_registered_once(self, client) -> None:
        class Roll(Command):
            def __init__(self, client, name) -> None:
                super().__init__(client, {
                    "name": name,
                    "group": "util",
                    "description": "Rolls.",
                    "args": [{"key": "sides", "prompt": "Sides?", "type": ["integer", "string"]}],
                })

        client.registry.register_command(Roll(client, "roll"))
        client.registry.register_command(Roll(client, "reroll"))
        union = client.registry.types["integer|string"]
        assert isinstance(union, UnionArgumentType)
        assert client.registry.commands["roll"].args_collector.args[0].type is union
        assert client.registry.commands["reroll"].args_collector.args[0].type is union
