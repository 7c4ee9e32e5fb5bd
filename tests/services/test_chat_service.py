# tests/services/test_chat_service.py
"""Tests for guild, channel, role, message and conversation orchestration."""

import json

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

from guildhall.core.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from guildhall.core.security import hash_password
from guildhall.db.session import Base
from guildhall.models import Channel, Message, Permission, User
from guildhall.realtime.broadcast import BroadcastRouter
from guildhall.realtime.rooms import (
    RoomRegistry,
    channel_room,
    conversation_room,
    guild_room,
    user_room,
)
from guildhall.repositories.store import Store
from guildhall.schemas.channel import ChannelCreate, ChannelUpdate
from guildhall.schemas.guild import GuildUpdate, RoleCreate, RoleUpdate
from guildhall.schemas.message import MessageCreate, MessageUpdate
from guildhall.services.chat import ChatService
from guildhall.services.permissions import ALL_PERMISSIONS, effective_capabilities


def _msg(text: str) -> MessageCreate:
    return MessageCreate(content=text)


def _last(session) -> dict:
    return json.loads(session.frames[-1])


class TestGuilds:
    def test_create_guild_defaults(self, chat, store, owner) -> None:
        guild = chat.create_guild(owner.id, "Alpha")

        assert [role.name for role in guild.roles] == ["@everyone", "Admin"]
        assert sum(1 for role in guild.roles if role.name == "@everyone") == 1
        everyone, admin = guild.roles
        assert everyone.position == 0
        assert set(everyone.permissions) == {
            "VIEW_CHANNELS",
            "SEND_MESSAGES",
            "READ_MESSAGE_HISTORY",
        }
        assert admin.permissions == ["ADMINISTRATOR"]
        assert everyone.member_ids == [owner.id]
        assert admin.member_ids == [owner.id]
        assert guild.member_ids == [owner.id]

        channels = store.channels.list_for_guild(guild.id)
        assert [(c.name, c.category) for c in channels] == [("general", "Text Channels")]

    def test_owner_has_all_capabilities(self, guild, owner) -> None:
        assert effective_capabilities(guild, owner.id) == ALL_PERMISSIONS

    def test_list_guilds_only_returns_memberships(self, chat, guild, owner, outsider) -> None:
        assert [g.id for g in chat.list_guilds(owner.id)] == [guild.id]
        assert chat.list_guilds(outsider.id) == []

    def test_get_guild_requires_membership(self, chat, guild, outsider) -> None:
        with pytest.raises(ForbiddenError):
            chat.get_guild(guild.id, outsider.id)

    def test_missing_guild(self, chat, owner) -> None:
        with pytest.raises(NotFoundError):
            chat.get_guild(999, owner.id)

    def test_update_guild_publishes(self, chat, guild, owner, rooms, recorder) -> None:
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, guild_room(guild.id))

        updated = chat.update_guild(guild.id, owner.id, GuildUpdate(name="Renamed"))

        assert updated.name == "Renamed"
        frame = _last(watcher)
        assert frame["event"] == "guildUpdate"
        assert frame["data"]["name"] == "Renamed"

    def test_update_guild_requires_manage_guild(self, chat, guild_with_member, member) -> None:
        with pytest.raises(ForbiddenError):
            chat.update_guild(guild_with_member.id, member.id, GuildUpdate(name="Nope"))
        assert guild_with_member.name == "Test Guild"

    def test_delete_guild_is_owner_only(self, chat, store, guild_with_member, member) -> None:
        with pytest.raises(ForbiddenError):
            chat.delete_guild(guild_with_member.id, member.id)
        assert store.guilds.get(guild_with_member.id) is not None

    def test_delete_guild_cascades(self, chat, store, ledger, guild, owner, rooms, recorder) -> None:
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, guild_room(guild.id))
        channel = store.channels.list_for_guild(guild.id)[0]
        message = chat.post_channel_message(channel.id, owner.id, _msg("hello"))
        ledger.create_invite(guild.id, owner.id)
        guild_id = guild.id

        chat.delete_guild(guild_id, owner.id)

        store.session.expire_all()
        assert store.guilds.get(guild_id) is None
        assert store.channels.list_for_guild(guild_id) == []
        assert store.messages.get(message.id) is None
        assert store.invites.list_for_guild(guild_id) == []
        assert _last(watcher)["event"] == "guildDelete"

    def test_list_members(self, chat, guild_with_member, owner, member) -> None:
        members = {m.user_id: m for m in chat.list_members(guild_with_member.id, member.id)}

        assert set(members) == {owner.id, member.id}
        assert members[owner.id].is_owner
        assert len(members[owner.id].role_ids) == 2
        assert members[member.id].role_ids == [guild_with_member.everyone_role.id]


class TestMembership:
    def test_kick_removes_member_from_all_roles(
        self, chat, guild_with_member, owner, member, rooms, recorder
    ) -> None:
        guild = guild_with_member
        mods = chat.create_role(guild.id, owner.id, RoleCreate(name="Mods"))
        chat.add_role_member(guild.id, mods.id, owner.id, member.id)

        in_guild = recorder(owner.id)
        kicked = recorder(member.id)
        rooms.subscribe(in_guild, guild_room(guild.id))
        rooms.connect(kicked)

        chat.kick_member(guild.id, owner.id, member.id)

        assert member.id not in guild.member_ids
        assert all(not role.has_member(member.id) for role in guild.roles)
        assert _last(in_guild) == {
            "event": "memberRemove",
            "data": {"guildId": guild.id, "userId": member.id},
        }
        assert _last(kicked) == {
            "event": "kickedFromGuild",
            "data": {"guildId": guild.id, "name": "Test Guild"},
        }

    def test_owner_cannot_be_kicked(self, chat, store, guild, owner, member) -> None:
        admin = next(role for role in guild.roles if role.name == "Admin")
        with store.atomic():
            store.guilds.add_member(guild, member.id)
            store.guilds.add_role_member(admin, member.id)

        with pytest.raises(ForbiddenError):
            chat.kick_member(guild.id, member.id, owner.id)
        assert owner.id in guild.member_ids

    def test_kick_requires_capability(self, chat, guild_with_member, member, owner) -> None:
        with pytest.raises(ForbiddenError):
            chat.kick_member(guild_with_member.id, member.id, owner.id)

    def test_kick_non_member(self, chat, guild, owner, outsider) -> None:
        with pytest.raises(NotFoundError):
            chat.kick_member(guild.id, owner.id, outsider.id)

    def test_leave_guild(self, chat, guild_with_member, member) -> None:
        chat.leave_guild(guild_with_member.id, member.id)
        assert member.id not in guild_with_member.member_ids
        assert not guild_with_member.everyone_role.has_member(member.id)

    def test_owner_cannot_leave(self, chat, guild, owner) -> None:
        with pytest.raises(ConflictError):
            chat.leave_guild(guild.id, owner.id)


class TestRoles:
    def test_create_role_appends_after_last_position(
        self, chat, guild, owner, rooms, recorder
    ) -> None:
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, guild_room(guild.id))

        role = chat.create_role(
            guild.id,
            owner.id,
            RoleCreate(name="Mods", permissions=[Permission.KICK_MEMBERS, Permission.KICK_MEMBERS]),
        )

        assert role.position == 2
        assert role.permissions == ["KICK_MEMBERS"]
        frame = _last(watcher)
        assert frame["event"] == "newRole"
        assert frame["data"]["guildId"] == guild.id
        assert frame["data"]["role"]["name"] == "Mods"

    def test_role_management_requires_capability(self, chat, guild_with_member, member) -> None:
        with pytest.raises(ForbiddenError):
            chat.create_role(guild_with_member.id, member.id, RoleCreate(name="Mine"))

    def test_granted_role_takes_effect_immediately(self, chat, guild_with_member, owner, member) -> None:
        guild = guild_with_member
        managers = chat.create_role(
            guild.id, owner.id, RoleCreate(name="Managers", permissions=[Permission.MANAGE_CHANNELS])
        )
        chat.add_role_member(guild.id, managers.id, owner.id, member.id)

        channel = chat.create_channel(guild.id, member.id, ChannelCreate(name="by-member"))
        assert channel.name == "by-member"

        chat.remove_role_member(guild.id, managers.id, owner.id, member.id)
        with pytest.raises(ForbiddenError):
            chat.create_channel(guild.id, member.id, ChannelCreate(name="again"))

    def test_update_role(self, chat, guild, owner) -> None:
        role = chat.create_role(guild.id, owner.id, RoleCreate(name="Mods"))
        updated = chat.update_role(
            guild.id, role.id, owner.id, RoleUpdate(color="#123456", permissions=[])
        )
        assert updated.color == "#123456"
        assert updated.permissions == []

    def test_everyone_cannot_be_renamed(self, chat, guild, owner) -> None:
        everyone = guild.everyone_role
        with pytest.raises(ConflictError):
            chat.update_role(guild.id, everyone.id, owner.id, RoleUpdate(name="folks"))

    def test_default_roles_cannot_be_deleted(self, chat, guild, owner) -> None:
        for role in list(guild.roles):
            with pytest.raises(ConflictError):
                chat.delete_role(guild.id, role.id, owner.id)
        assert len(guild.roles) == 2

    def test_delete_custom_role(self, chat, guild, owner) -> None:
        role = chat.create_role(guild.id, owner.id, RoleCreate(name="Temp"))
        chat.delete_role(guild.id, role.id, owner.id)
        assert guild.get_role(role.id) is None

    def test_everyone_membership_is_not_editable(self, chat, guild_with_member, owner, member) -> None:
        everyone = guild_with_member.everyone_role
        with pytest.raises(ConflictError):
            chat.remove_role_member(guild_with_member.id, everyone.id, owner.id, member.id)

    def test_role_member_must_be_guild_member(self, chat, guild, owner, outsider) -> None:
        role = chat.create_role(guild.id, owner.id, RoleCreate(name="Mods"))
        with pytest.raises(NotFoundError):
            chat.add_role_member(guild.id, role.id, owner.id, outsider.id)

    def _role_manager(self, chat, guild, owner, member) -> None:
        managers = chat.create_role(
            guild.id, owner.id, RoleCreate(name="Managers", permissions=[Permission.MANAGE_ROLES])
        )
        chat.add_role_member(guild.id, managers.id, owner.id, member.id)

    def test_owner_stays_in_admin_role(self, chat, guild_with_member, owner, member) -> None:
        guild = guild_with_member
        self._role_manager(chat, guild, owner, member)
        admin = next(role for role in guild.roles if role.is_admin)

        with pytest.raises(ConflictError):
            chat.remove_role_member(guild.id, admin.id, member.id, owner.id)
        assert owner.id in admin.member_ids

    def test_admin_role_keeps_administrator(self, chat, guild_with_member, owner, member) -> None:
        guild = guild_with_member
        self._role_manager(chat, guild, owner, member)
        admin = next(role for role in guild.roles if role.is_admin)

        with pytest.raises(ConflictError):
            chat.update_role(guild.id, admin.id, member.id, RoleUpdate(permissions=[]))
        assert "ADMINISTRATOR" in admin.permissions

    def test_admin_role_can_gain_permissions(self, chat, guild, owner) -> None:
        admin = next(role for role in guild.roles if role.is_admin)
        updated = chat.update_role(
            guild.id,
            admin.id,
            owner.id,
            RoleUpdate(permissions=[Permission.ADMINISTRATOR, Permission.KICK_MEMBERS]),
        )
        assert updated.permissions == ["ADMINISTRATOR", "KICK_MEMBERS"]

    def test_other_members_can_leave_admin_role(self, chat, guild_with_member, owner, member) -> None:
        guild = guild_with_member
        admin = next(role for role in guild.roles if role.is_admin)
        chat.add_role_member(guild.id, admin.id, owner.id, member.id)

        chat.remove_role_member(guild.id, admin.id, owner.id, member.id)
        assert admin.member_ids == [owner.id]


class TestChannels:
    def test_create_channel_publishes_to_guild(self, chat, guild, owner, rooms, recorder) -> None:
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, guild_room(guild.id))

        channel = chat.create_channel(
            guild.id, owner.id, ChannelCreate(name="Off Topic", category="Chat")
        )

        assert channel.name == "off-topic"
        frame = _last(watcher)
        assert frame["event"] == "newChannel"
        assert frame["data"]["id"] == channel.id

    def test_update_channel_targets_channel_and_guild(self, chat, store, guild, owner, rooms, recorder) -> None:
        general = store.channels.list_for_guild(guild.id)[0]
        in_channel = recorder(owner.id)
        in_guild = recorder(owner.id)
        rooms.subscribe(in_channel, channel_room(general.id))
        rooms.subscribe(in_guild, guild_room(guild.id))

        chat.update_channel(general.id, owner.id, ChannelUpdate(topic="Say hi"))

        assert _last(in_channel)["event"] == "channelUpdate"
        assert _last(in_guild)["data"]["topic"] == "Say hi"

    def test_non_member_cannot_delete_channel(self, chat, store, guild, owner, outsider) -> None:
        extra = chat.create_channel(guild.id, owner.id, ChannelCreate(name="extra"))
        with pytest.raises(ForbiddenError):
            chat.delete_channel(extra.id, outsider.id)
        assert store.channels.get(extra.id) is not None

    def test_member_without_role_cannot_delete_channel(self, chat, store, guild_with_member, owner, member) -> None:
        extra = chat.create_channel(guild_with_member.id, owner.id, ChannelCreate(name="extra"))
        with pytest.raises(ForbiddenError):
            chat.delete_channel(extra.id, member.id)
        assert store.channels.get(extra.id) is not None

    def test_last_channel_cannot_be_deleted(self, chat, store, guild, owner) -> None:
        general = store.channels.list_for_guild(guild.id)[0]
        with pytest.raises(ConflictError):
            chat.delete_channel(general.id, owner.id)
        assert len(store.channels.list_for_guild(guild.id)) == 1

    def test_interleaved_deletes_keep_one_channel(self, tmp_path) -> None:
        engine = create_engine(
            f"sqlite:///{tmp_path / 'channels.db'}",
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(bind=engine)
        factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
        first, second = factory(), factory()
        try:
            owner = User(
                username="racer",
                email="racer@example.com",
                password_hash=hash_password("password123"),
            )
            first.add(owner)
            first.commit()
            chat_a = ChatService(Store(first), BroadcastRouter(RoomRegistry()))
            chat_b = ChatService(Store(second), BroadcastRouter(RoomRegistry()))

            guild = chat_a.create_guild(owner.id, "Race")
            extra = chat_a.create_channel(guild.id, owner.id, ChannelCreate(name="extra"))
            channels = chat_a.list_channels(guild.id, owner.id)
            assert len(channels) == 2
            general_id = next(channel.id for channel in channels if channel.id != extra.id)

            # The first request already saw two channels when the second one commits.
            chat_b.delete_channel(extra.id, owner.id)
            with pytest.raises(ConflictError):
                chat_a.delete_channel(general_id, owner.id)
        finally:
            first.close()
            second.close()

        with factory() as check:
            remaining = check.scalars(select(Channel)).all()
        engine.dispose()
        assert [channel.id for channel in remaining] == [general_id]

    def test_delete_channel_removes_messages(self, chat, store, guild, owner) -> None:
        extra = chat.create_channel(guild.id, owner.id, ChannelCreate(name="extra"))
        message = chat.post_channel_message(extra.id, owner.id, _msg("bye"))

        chat.delete_channel(extra.id, owner.id)

        store.session.expire_all()
        assert store.channels.get(extra.id) is None
        assert store.messages.get(message.id) is None


class TestChannelMessages:
    def _general(self, store, guild) -> Channel:
        return store.channels.list_for_guild(guild.id)[0]

    def test_post_delivers_only_to_channel_room(
        self, chat, store, guild, owner, rooms, recorder
    ) -> None:
        general = self._general(store, guild)
        listening = recorder(owner.id)
        elsewhere = recorder(owner.id)
        rooms.subscribe(listening, channel_room(general.id))
        rooms.subscribe(elsewhere, channel_room(general.id + 100))

        message = chat.post_channel_message(general.id, owner.id, _msg("  hi there  "))

        assert message.content == "hi there"
        frame = _last(listening)
        assert frame["event"] == "newMessage"
        assert frame["data"]["author"]["username"] == "owner"
        assert elsewhere.frames == []

    def test_outsider_cannot_post(self, chat, store, guild, outsider, rooms, recorder) -> None:
        general = self._general(store, guild)
        listening = recorder(outsider.id)
        rooms.subscribe(listening, channel_room(general.id))

        with pytest.raises(ForbiddenError):
            chat.post_channel_message(general.id, outsider.id, _msg("let me in"))

        assert store.messages.list_for_channel(general.id, limit=10) == []
        assert listening.frames == []

    def test_member_can_post_via_everyone(self, chat, store, guild_with_member, member) -> None:
        general = self._general(store, guild_with_member)
        message = chat.post_channel_message(general.id, member.id, _msg("hello"))
        assert message.author_id == member.id

    def test_history_pages_oldest_first(self, chat, store, guild, owner) -> None:
        general = self._general(store, guild)
        ids = [chat.post_channel_message(general.id, owner.id, _msg(f"m{i}")).id for i in range(5)]

        latest = chat.list_channel_messages(general.id, owner.id, limit=2)
        assert [m.id for m in latest] == ids[3:]

        older = chat.list_channel_messages(general.id, owner.id, limit=2, before=ids[3])
        assert [m.id for m in older] == ids[1:3]

    def test_edit_is_author_only(self, chat, store, guild_with_member, owner, member, rooms, recorder) -> None:
        general = self._general(store, guild_with_member)
        message = chat.post_channel_message(general.id, member.id, _msg("draft"))
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, channel_room(general.id))

        with pytest.raises(ForbiddenError):
            chat.edit_message(message.id, owner.id, MessageUpdate(content="hijack"))

        edited = chat.edit_message(message.id, member.id, MessageUpdate(content="final"))
        assert edited.content == "final"
        assert edited.updated_at is not None
        assert _last(watcher)["event"] == "messageUpdate"

    def test_moderator_can_delete_others_messages(
        self, chat, store, guild_with_member, owner, member, rooms, recorder
    ) -> None:
        general = self._general(store, guild_with_member)
        message = chat.post_channel_message(general.id, member.id, _msg("spam"))
        watcher = recorder(owner.id)
        rooms.subscribe(watcher, channel_room(general.id))

        chat.delete_message(message.id, owner.id)

        assert store.messages.get(message.id) is None
        assert _last(watcher) == {
            "event": "messageDelete",
            "data": {"id": message.id, "channel": general.id},
        }

    def test_member_cannot_delete_others_messages(self, chat, store, guild_with_member, owner, member) -> None:
        general = self._general(store, guild_with_member)
        message = chat.post_channel_message(general.id, owner.id, _msg("mine"))
        with pytest.raises(ForbiddenError):
            chat.delete_message(message.id, member.id)
        assert store.messages.get(message.id) is not None


class TestConversations:
    def test_open_conversation_notifies_recipient(self, chat, owner, member, rooms, recorder) -> None:
        recipient = recorder(member.id)
        rooms.connect(recipient)

        conversation, created = chat.open_conversation(owner.id, member.id)

        assert created
        assert sorted(conversation.participant_ids) == sorted([owner.id, member.id])
        frame = _last(recipient)
        assert frame["event"] == "newConversation"
        assert frame["data"]["id"] == conversation.id

    def test_open_conversation_returns_existing_pair(self, chat, owner, member) -> None:
        first, _ = chat.open_conversation(owner.id, member.id)
        second, created = chat.open_conversation(member.id, owner.id)
        assert second.id == first.id
        assert not created

    def test_cannot_converse_with_self(self, chat, owner) -> None:
        with pytest.raises(ValidationFailedError):
            chat.open_conversation(owner.id, owner.id)

    def test_unknown_recipient(self, chat, owner) -> None:
        with pytest.raises(NotFoundError):
            chat.open_conversation(owner.id, 424242)

    def test_non_participant_is_forbidden(self, chat, owner, member, outsider) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        with pytest.raises(ForbiddenError):
            chat.get_conversation(conversation.id, outsider.id)
        with pytest.raises(ForbiddenError):
            chat.post_conversation_message(conversation.id, outsider.id, _msg("hey"))

    def test_direct_message_fanout_is_deduplicated(self, chat, owner, member, rooms, recorder) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        both = recorder(member.id)
        rooms.connect(both)
        rooms.subscribe(both, conversation_room(conversation.id))
        sender = recorder(owner.id)
        rooms.connect(sender)

        message = chat.post_conversation_message(conversation.id, owner.id, _msg("psst"))

        assert both.events() == ["newMessage"]
        assert sender.events() == ["newMessage"]
        assert conversation.last_message_id == message.id

    def test_deleting_last_message_moves_pointer_back(self, chat, store, owner, member) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        first = chat.post_conversation_message(conversation.id, owner.id, _msg("one"))
        second = chat.post_conversation_message(conversation.id, member.id, _msg("two"))
        assert conversation.last_message_id == second.id

        chat.delete_message(second.id, member.id)
        assert conversation.last_message_id == first.id

        chat.delete_message(first.id, owner.id)
        assert conversation.last_message_id is None

    def test_participant_cannot_delete_others_direct_message(self, chat, owner, member) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        message = chat.post_conversation_message(conversation.id, owner.id, _msg("mine"))
        with pytest.raises(ForbiddenError):
            chat.delete_message(message.id, member.id)

    def test_conversation_message_rooms(self, chat, owner, member, rooms, recorder) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        watcher = recorder(member.id)
        rooms.subscribe(watcher, user_room(member.id))

        message = chat.post_conversation_message(conversation.id, owner.id, _msg("hi"))
        chat.delete_message(message.id, owner.id)

        assert _last(watcher) == {
            "event": "messageDelete",
            "data": {"id": message.id, "conversationId": conversation.id},
        }

    def test_list_conversation_messages(self, chat, owner, member) -> None:
        conversation, _ = chat.open_conversation(owner.id, member.id)
        for text in ("a", "b", "c"):
            chat.post_conversation_message(conversation.id, owner.id, _msg(text))
        messages = chat.list_conversation_messages(conversation.id, member.id)
        assert [m.content for m in messages] == ["a", "b", "c"]
        assert isinstance(messages[0], Message)
