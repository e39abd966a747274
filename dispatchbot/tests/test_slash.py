"""Tests for the structured-command canonical form, diff and remote sync."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from dispatchbot.commands.base import Command
from dispatchbot.messaging.slash import (
    OptionType,
    SlashCommandInfo,
    SlashOption,
    canonical,
    diff_slash_commands,
    normalize,
)


class TestCanonical:
    def test_key_order_does_not_matter(self) -> None:
        a = {"name": "a", "description": "d", "type": 1}
        b = {"type": 1, "description": "d", "name": "a"}
        assert canonical(a) == canonical(b)

    def test_server_fields_are_stripped(self) -> None:
        remote = {
            "id": "123",
            "application_id": "app",
            "version": "999",
            "default_permission": True,
            "name": "a",
            "description": "d",
            "type": 1,
        }
        assert canonical(remote) == canonical({"name": "a", "description": "d"})

    def test_enum_names_coerced_to_numbers(self) -> None:
        local = {
            "name": "a",
            "description": "d",
            "options": [{"type": "STRING", "name": "text", "description": "t", "channel_types": ["GUILD_TEXT"]}],
        }
        remote = {
            "name": "a",
            "description": "d",
            "options": [{"type": 3, "name": "text", "description": "t", "channel_types": [0]}],
        }
        assert canonical(local) == canonical(remote)

    def test_implicit_defaults_and_nulls_dropped(self) -> None:
        local = {"name": "a", "description": "d", "nsfw": False, "name_localizations": None, "options": []}
        assert normalize(local) == {"description": "d", "name": "a"}

    def test_integer_bounds_match_server_form(self) -> None:
        local = SlashCommandInfo(options=[
            SlashOption(type=OptionType.INTEGER, name="count", description="c", min_value=1, max_value=10),
        ])
        local_payload = {
            "name": "a",
            "description": "d",
            "options": [o.model_dump(mode="json", exclude_none=True) for o in local.options],
        }
        remote = {
            "id": "5",
            "name": "a",
            "description": "d",
            "type": 1,
            "options": [{"type": 4, "name": "count", "description": "c", "min_value": 1, "max_value": 10}],
        }
        assert canonical(local_payload) == canonical(remote)
        assert diff_slash_commands([remote], [local_payload]).updated == []

    def test_integral_float_bounds_normalized(self) -> None:
        option = {"type": 10, "name": "ratio", "description": "r", "min_value": 2.0, "max_value": 2.5}
        assert normalize(option, OptionType) == {
            "description": "r", "max_value": 2.5, "min_value": 2, "name": "ratio", "type": 10,
        }

    def test_command_type_names_use_command_enum(self) -> None:
        assert normalize({"name": "a", "description": "d", "type": "CHAT_INPUT"})["type"] == 1
        assert normalize({"name": "a", "description": "d", "type": "MESSAGE"})["type"] == 3
        with pytest.raises(KeyError):
            normalize({"name": "a", "description": "d", "type": "SUB_COMMAND"})
        option = {"name": "g", "description": "d", "type": "SUB_COMMAND_GROUP"}
        assert normalize({"name": "a", "description": "d", "options": [option]})["options"][0]["type"] == 2

    def test_real_change_is_visible(self) -> None:
        assert canonical({"name": "a", "description": "d1"}) != canonical({"name": "a", "description": "d2"})


class TestDiff:
    def test_changed_and_new_commands_are_updated(self) -> None:
        current = [{"id": "1", "name": "a", "description": "d1"}]
        target = [{"name": "a", "description": "d2"}, {"name": "b", "description": "d3"}]
        diff = diff_slash_commands(current, target)
        assert [u.data for u in diff.updated] == target
        assert diff.removed == []
        assert [u.remote_id for u in diff.updated] == ["1", None]
        assert diff.created == [{"name": "b", "description": "d3"}]
        assert [u.data["name"] for u in diff.edited] == ["a"]

    def test_missing_target_is_removed(self) -> None:
        current = [{"id": "1", "name": "a", "description": "d1"}]
        target = [{"name": "b", "description": "d3"}]
        diff = diff_slash_commands(current, target)
        assert diff.removed == current
        assert [u.data["name"] for u in diff.updated] == ["b"]

    def test_identical_schema_is_a_no_op(self) -> None:
        current = [{"id": "1", "application_id": "app", "version": "7", "name": "a", "description": "d", "type": 1}]
        diff = diff_slash_commands(current, [{"name": "a", "description": "d"}])
        assert not diff

    def test_match_without_id_is_a_create(self) -> None:
        diff = diff_slash_commands([{"name": "a", "description": "old"}], [{"name": "a", "description": "new"}])
        assert diff.updated[0].is_create


class PollCommand(Command):
    def __init__(self, client, name: str = "poll", test_env: bool = False) -> None:
        super().__init__(
            client,
            {
                "name": name,
                "group": "util",
                "description": "Starts a poll.",
                "guild_only": True,
                "test_env": test_env,
            },
            slash={
                "options": [
                    {"type": OptionType.STRING, "name": "question", "description": "The question", "required": True},
                ],
            },
        )


class TestSlashPayload:
    def test_payload_shape(self, client) -> None:
        command = PollCommand(client)
        assert command.slash_info["name"] == "poll"
        assert command.slash_info["dm_permission"] is False
        assert command.slash_info["options"] == [
            {"type": 3, "name": "question", "description": "The question", "required": True},
        ]

    def test_slash_info_model(self, client) -> None:
        assert isinstance(PollCommand(client).slash, SlashCommandInfo)


class TestSyncSlashCommands:
    def _manager(self, current):
        manager = AsyncMock()
        manager.fetch.return_value = current
        return manager

    async def test_global_sync_writes_only_changes(self, client) -> None:
        client.registry.register_command(PollCommand(client))
        remote = dict(client.registry.commands["poll"].slash_info, id="1", application_id="app", version="3")
        stale = {"id": "2", "name": "gone", "description": "Old.", "type": 1}
        manager = self._manager([remote, stale])

        results = await client.sync_slash_commands(manager)

        manager.create.assert_not_awaited()
        manager.edit.assert_not_awaited()
        manager.delete.assert_awaited_once_with("2")
        assert results["global"].removed == [stale]

    async def test_global_sync_creates_and_edits(self, client) -> None:
        client.registry.register_command(PollCommand(client))
        client.registry.register_command(PollCommand(client, "vote"))
        manager = self._manager([{"id": "9", "name": "poll", "description": "Outdated.", "type": 1}])

        await client.sync_slash_commands(manager)

        manager.edit.assert_awaited_once()
        assert manager.edit.await_args.args[0] == "9"
        manager.create.assert_awaited_once()
        assert manager.create.await_args.args[0]["name"] == "vote"

    async def test_test_env_commands_need_a_test_guild(self, client) -> None:
        client.registry.register_command(PollCommand(client, test_env=True))
        with pytest.raises(ValueError, match="test guild"):
            await client.sync_slash_commands(self._manager([]), self._manager([]))

    async def test_test_env_commands_go_to_guild_scope(self, client) -> None:
        client.settings.test_guild_id = "guild-9"
        client.registry.register_command(PollCommand(client, test_env=True))
        global_manager = self._manager([])
        guild_manager = self._manager([])

        results = await client.sync_slash_commands(global_manager, guild_manager)

        guild_manager.create.assert_awaited_once()
        global_manager.create.assert_not_awaited()
        assert set(results) == {"guild", "global"}

    async def test_stale_global_commands_removed_without_local_ones(self, client) -> None:
        stale = {"id": "2", "name": "gone", "description": "Old.", "type": 1}
        manager = self._manager([stale])

        results = await client.sync_slash_commands(manager)

        manager.delete.assert_awaited_once_with("2")
        assert results["global"].removed == [stale]

    async def test_command_moved_to_global_leaves_guild_scope(self, client) -> None:
        client.settings.test_guild_id = "guild-9"
        client.registry.register_command(PollCommand(client))
        moved = dict(client.registry.commands["poll"].slash_info, id="7")
        global_manager = self._manager([])
        guild_manager = self._manager([moved])

        await client.sync_slash_commands(global_manager, guild_manager)

        guild_manager.delete.assert_awaited_once_with("7")
        global_manager.create.assert_awaited_once()
