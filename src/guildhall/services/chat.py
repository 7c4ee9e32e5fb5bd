# src/guildhall/services/chat.py
"""Guild, channel, role, message and conversation operations.

Every mutating operation follows the same sequence: load the entities,
check the actor's membership, authorship or capability, mutate inside one
transaction, then publish the resulting event. A failed check raises before
anything is written and nothing is published.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import IntegrityError

from guildhall.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalFailureError,
    NotFoundError,
    ValidationFailedError,
)
from guildhall.core.settings import settings
from guildhall.db.time import utcnow
from guildhall.models.channel import DEFAULT_CHANNEL_CATEGORY, DEFAULT_CHANNEL_NAME, Channel
from guildhall.models.conversation import Conversation
from guildhall.models.guild import (
    ADMIN_ROLE_COLOR,
    ADMIN_ROLE_NAME,
    DEFAULT_ROLE_COLOR,
    EVERYONE_ROLE_NAME,
    Guild,
    GuildMember,
    Permission,
    Role,
    RoleMember,
)
from guildhall.models.message import Message
from guildhall.realtime.broadcast import BroadcastRouter, message_rooms
from guildhall.realtime.rooms import channel_room, guild_room, user_room
from guildhall.repositories.store import Store
from guildhall.schemas.channel import ChannelCreate, ChannelResponse, ChannelUpdate
from guildhall.schemas.conversation import ConversationResponse
from guildhall.schemas.guild import (
    GuildResponse,
    GuildUpdate,
    MemberResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)
from guildhall.schemas.message import MessageCreate, MessageResponse, MessageUpdate

from .permissions import (
    DEFAULT_ADMIN_PERMISSIONS,
    DEFAULT_EVERYONE_PERMISSIONS,
    has_capability,
    require_capability,
    require_member,
)

logger = logging.getLogger(__name__)


class ChatService:
    """Orchestrates the store, permission checks and event fanout."""

    def __init__(self, store: Store, broadcaster: BroadcastRouter) -> None:
        self.store = store
        self.broadcaster = broadcaster

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _guild(self, guild_id: int) -> Guild:
        guild = self.store.guilds.get(guild_id)
        if guild is None:
            raise NotFoundError("Guild not found")
        return guild

    def _channel(self, channel_id: int) -> tuple[Channel, Guild]:
        channel = self.store.channels.get(channel_id)
        if channel is None:
            raise NotFoundError("Channel not found")
        return channel, self._guild(channel.guild_id)

    def _role(self, guild: Guild, role_id: int) -> Role:
        role = guild.get_role(role_id)
        if role is None:
            raise NotFoundError("Role not found")
        return role

    def _message(self, message_id: int) -> Message:
        message = self.store.messages.get(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        return message

    def _conversation(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = self.store.conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation not found")
        if not conversation.has_participant(user_id):
            raise ForbiddenError("You are not a participant in this conversation")
        return conversation

    @staticmethod
    def _page_size(limit: int | None) -> int:
        if limit is None:
            return settings.message_page_limit
        return max(1, min(limit, settings.message_page_max))

    def _publish(self, event: str, payload: Any, rooms: set[str]) -> None:
        self.broadcaster.publish(event, payload, rooms)

    # ------------------------------------------------------------------
    # Guilds
    # ------------------------------------------------------------------

    def create_guild(self, owner_id: int, name: str, icon: str | None = None) -> Guild:
        """Create a guild with its default roles and ``general`` channel."""
        if self.store.users.get(owner_id) is None:
            raise NotFoundError("User not found")

        everyone = Role(
            name=EVERYONE_ROLE_NAME,
            color=DEFAULT_ROLE_COLOR,
            permissions=[perm.value for perm in DEFAULT_EVERYONE_PERMISSIONS],
            position=0,
            managed=True,
        )
        admin = Role(
            name=ADMIN_ROLE_NAME,
            color=ADMIN_ROLE_COLOR,
            permissions=[perm.value for perm in DEFAULT_ADMIN_PERMISSIONS],
            position=1,
            managed=True,
        )
        everyone.member_links = [RoleMember(user_id=owner_id)]
        admin.member_links = [RoleMember(user_id=owner_id)]
        guild = Guild(name=name, icon=icon, owner_id=owner_id)
        guild.roles = [everyone, admin]
        guild.member_links = [GuildMember(user_id=owner_id)]

        with self.store.atomic():
            self.store.guilds.add(guild)
            self.store.channels.add(
                Channel(
                    guild_id=guild.id,
                    name=DEFAULT_CHANNEL_NAME,
                    category=DEFAULT_CHANNEL_CATEGORY,
                )
            )
        logger.info("User %s created guild %s (%s)", owner_id, guild.id, guild.name)
        return guild

    def list_guilds(self, user_id: int) -> list[Guild]:
        return self.store.guilds.list_for_member(user_id)

    def get_guild(self, guild_id: int, user_id: int) -> Guild:
        guild = self._guild(guild_id)
        require_member(guild, user_id)
        return guild

    def update_guild(self, guild_id: int, user_id: int, changes: GuildUpdate) -> Guild:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.MANAGE_GUILD)

        with self.store.atomic():
            if changes.name is not None:
                guild.name = changes.name
            if "icon" in changes.model_fields_set:
                guild.icon = changes.icon
            guild.updated_at = utcnow()

        self._publish("guildUpdate", GuildResponse.model_validate(guild), {guild_room(guild.id)})
        return guild

    def delete_guild(self, guild_id: int, user_id: int) -> None:
        """Delete a guild. Only its owner may do this."""
        guild = self._guild(guild_id)
        if guild.owner_id != user_id:
            raise ForbiddenError("Only the guild owner can delete the guild")

        payload = GuildResponse.model_validate(guild)
        with self.store.atomic():
            self.store.guilds.delete(guild)
        logger.info("User %s deleted guild %s", user_id, guild_id)
        self._publish("guildDelete", payload, {guild_room(guild_id)})

    def list_members(self, guild_id: int, user_id: int) -> list[MemberResponse]:
        guild = self._guild(guild_id)
        require_member(guild, user_id)

        members = []
        for user in self.store.users.list_by_ids(guild.member_ids):
            members.append(
                MemberResponse(
                    user_id=user.id,
                    username=user.username,
                    avatar=user.avatar,
                    status=user.status,
                    role_ids=[role.id for role in guild.roles if role.has_member(user.id)],
                    is_owner=user.id == guild.owner_id,
                )
            )
        return members

    def kick_member(self, guild_id: int, actor_id: int, target_id: int) -> None:
        """Remove ``target_id`` from the guild and from all of its roles."""
        guild = self._guild(guild_id)
        require_capability(guild, actor_id, Permission.KICK_MEMBERS)
        if target_id == guild.owner_id:
            raise ForbiddenError("Cannot remove the guild owner")
        if target_id not in guild.member_ids:
            raise NotFoundError("Member not found")

        with self.store.atomic():
            self.store.guilds.remove_member(guild, target_id)
        logger.info("User %s kicked user %s from guild %s", actor_id, target_id, guild.id)

        self._publish(
            "memberRemove",
            {"guildId": guild.id, "userId": target_id},
            {guild_room(guild.id)},
        )
        self._publish(
            "kickedFromGuild",
            {"guildId": guild.id, "name": guild.name},
            {user_room(target_id)},
        )

    def leave_guild(self, guild_id: int, user_id: int) -> None:
        guild = self._guild(guild_id)
        require_member(guild, user_id)
        if user_id == guild.owner_id:
            raise ConflictError("The guild owner cannot leave the guild")

        with self.store.atomic():
            self.store.guilds.remove_member(guild, user_id)
        logger.info("User %s left guild %s", user_id, guild.id)
        self._publish(
            "memberRemove",
            {"guildId": guild.id, "userId": user_id},
            {guild_room(guild.id)},
        )

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    def _publish_role(self, event: str, guild_id: int, payload: RoleResponse) -> None:
        self._publish(event, {"guildId": guild_id, "role": payload}, {guild_room(guild_id)})

    def list_roles(self, guild_id: int, user_id: int) -> list[Role]:
        guild = self._guild(guild_id)
        require_member(guild, user_id)
        return list(guild.roles)

    def create_role(self, guild_id: int, user_id: int, data: RoleCreate) -> Role:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.MANAGE_ROLES)

        position = data.position
        if position is None:
            position = max((role.position for role in guild.roles), default=0) + 1
        role = Role(
            name=data.name,
            color=data.color,
            permissions=sorted({perm.value for perm in data.permissions}),
            position=position,
            managed=False,
        )
        with self.store.atomic():
            self.store.guilds.add_role(guild, role)

        self._publish_role("newRole", guild.id, RoleResponse.model_validate(role))
        return role

    def update_role(self, guild_id: int, role_id: int, user_id: int, changes: RoleUpdate) -> Role:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.MANAGE_ROLES)
        role = self._role(guild, role_id)
        if role.is_everyone and changes.name not in (None, EVERYONE_ROLE_NAME):
            raise ConflictError("The @everyone role cannot be renamed")
        if role.is_everyone and changes.position not in (None, 0):
            raise ConflictError("The @everyone role cannot be moved")
        if (
            role.is_admin
            and changes.permissions is not None
            and Permission.ADMINISTRATOR not in changes.permissions
        ):
            raise ConflictError("The Admin role must keep ADMINISTRATOR")

        with self.store.atomic():
            if changes.name is not None:
                role.name = changes.name
            if changes.color is not None:
                role.color = changes.color
            if changes.permissions is not None:
                role.permissions = sorted({perm.value for perm in changes.permissions})
            if changes.position is not None:
                role.position = changes.position

        self._publish_role("roleUpdate", guild.id, RoleResponse.model_validate(role))
        return role

    def delete_role(self, guild_id: int, role_id: int, user_id: int) -> None:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.MANAGE_ROLES)
        role = self._role(guild, role_id)
        if role.managed or role.is_everyone:
            raise ConflictError("Default roles cannot be deleted")

        payload = RoleResponse.model_validate(role)
        with self.store.atomic():
            self.store.guilds.delete_role(guild, role)
        self._publish_role("roleDelete", guild.id, payload)

    def _editable_role_member(
        self, guild_id: int, role_id: int, actor_id: int, target_id: int
    ) -> tuple[Guild, Role]:
        guild = self._guild(guild_id)
        require_capability(guild, actor_id, Permission.MANAGE_ROLES)
        role = self._role(guild, role_id)
        if role.is_everyone:
            raise ConflictError("Membership of @everyone follows guild membership")
        if target_id not in guild.member_ids:
            raise NotFoundError("Member not found")
        return guild, role

    def add_role_member(self, guild_id: int, role_id: int, actor_id: int, target_id: int) -> Role:
        guild, role = self._editable_role_member(guild_id, role_id, actor_id, target_id)
        if role.has_member(target_id):
            return role

        with self.store.atomic():
            self.store.guilds.add_role_member(role, target_id)
        self._publish_role("roleUpdate", guild.id, RoleResponse.model_validate(role))
        return role

    def remove_role_member(
        self, guild_id: int, role_id: int, actor_id: int, target_id: int
    ) -> Role:
        guild, role = self._editable_role_member(guild_id, role_id, actor_id, target_id)
        if not role.has_member(target_id):
            return role
        if role.is_admin and target_id == guild.owner_id:
            raise ConflictError("The guild owner cannot be removed from the Admin role")

        with self.store.atomic():
            self.store.guilds.remove_role_member(role, target_id)
        self._publish_role("roleUpdate", guild.id, RoleResponse.model_validate(role))
        return role

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def list_channels(self, guild_id: int, user_id: int) -> list[Channel]:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.VIEW_CHANNELS)
        return self.store.channels.list_for_guild(guild.id)

    def get_channel(self, channel_id: int, user_id: int) -> Channel:
        channel, guild = self._channel(channel_id)
        require_capability(guild, user_id, Permission.VIEW_CHANNELS)
        return channel

    def create_channel(self, guild_id: int, user_id: int, data: ChannelCreate) -> Channel:
        guild = self._guild(guild_id)
        require_capability(guild, user_id, Permission.MANAGE_CHANNELS)

        channel = Channel(
            guild_id=guild.id,
            name=data.name,
            topic=data.topic,
            category=data.category,
            kind=data.kind.value,
        )
        with self.store.atomic():
            self.store.channels.add(channel)

        self._publish("newChannel", ChannelResponse.model_validate(channel), {guild_room(guild.id)})
        return channel

    def update_channel(self, channel_id: int, user_id: int, changes: ChannelUpdate) -> Channel:
        channel, guild = self._channel(channel_id)
        require_capability(guild, user_id, Permission.MANAGE_CHANNELS)

        with self.store.atomic():
            if changes.name is not None:
                channel.name = changes.name
            if changes.topic is not None:
                channel.topic = changes.topic
            if changes.category is not None:
                channel.category = changes.category
            channel.updated_at = utcnow()

        self._publish(
            "channelUpdate",
            ChannelResponse.model_validate(channel),
            {channel_room(channel.id), guild_room(guild.id)},
        )
        return channel

    def delete_channel(self, channel_id: int, user_id: int) -> None:
        """Delete a channel and its messages, unless it is the guild's last."""
        channel, guild = self._channel(channel_id)
        require_capability(guild, user_id, Permission.MANAGE_CHANNELS)

        payload = ChannelResponse.model_validate(channel)
        with self.store.atomic():
            if not self.store.channels.delete_unless_last(channel):
                raise ConflictError("Cannot delete the last channel of a guild")
        self._publish("channelDelete", payload, {channel_room(channel_id), guild_room(guild.id)})

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def list_channel_messages(
        self,
        channel_id: int,
        user_id: int,
        *,
        limit: int | None = None,
        before: int | None = None,
    ) -> list[Message]:
        """Return a page of channel history, oldest first."""
        channel, guild = self._channel(channel_id)
        require_capability(guild, user_id, Permission.READ_MESSAGE_HISTORY)
        return self.store.messages.list_for_channel(
            channel.id, limit=self._page_size(limit), before=before
        )

    def post_channel_message(self, channel_id: int, user_id: int, data: MessageCreate) -> Message:
        channel, guild = self._channel(channel_id)
        require_capability(guild, user_id, Permission.SEND_MESSAGES)

        message = Message(
            content=data.content,
            author_id=user_id,
            channel_id=channel.id,
            attachments=list(data.attachments),
        )
        with self.store.atomic():
            self.store.messages.add(message)

        self._publish(
            "newMessage", MessageResponse.model_validate(message), message_rooms(message)
        )
        return message

    def _containing_conversation(self, message: Message) -> Conversation | None:
        if message.conversation_id is None:
            return None
        return self.store.conversations.get(message.conversation_id)

    def get_message(self, message_id: int, user_id: int) -> Message:
        message = self._message(message_id)
        if message.channel_id is not None:
            _, guild = self._channel(message.channel_id)
            require_capability(guild, user_id, Permission.READ_MESSAGE_HISTORY)
        else:
            self._conversation(message.conversation_id, user_id)
        return message

    def edit_message(self, message_id: int, user_id: int, changes: MessageUpdate) -> Message:
        """Edit a message's content. Only its author may do this."""
        message = self._message(message_id)
        if message.author_id != user_id:
            raise ForbiddenError("You can only edit your own messages")

        with self.store.atomic():
            message.content = changes.content
            message.updated_at = utcnow()

        conversation = self._containing_conversation(message)
        self._publish(
            "messageUpdate",
            MessageResponse.model_validate(message),
            message_rooms(message, conversation),
        )
        return message

    def delete_message(self, message_id: int, user_id: int) -> None:
        """Delete a message as its author, or as a channel moderator."""
        message = self._message(message_id)
        if message.author_id != user_id:
            if message.channel_id is None:
                raise ForbiddenError("You can only delete your own messages")
            _, guild = self._channel(message.channel_id)
            require_member(guild, user_id)
            if not has_capability(guild, user_id, Permission.MANAGE_MESSAGES):
                raise ForbiddenError("You can only delete your own messages")

        conversation = self._containing_conversation(message)
        rooms = message_rooms(message, conversation)
        payload: dict[str, Any] = {"id": message.id}
        if message.channel_id is not None:
            payload["channel"] = message.channel_id
        else:
            payload["conversationId"] = message.conversation_id

        with self.store.atomic():
            if conversation is not None and conversation.last_message_id == message.id:
                previous = self.store.messages.latest_in_conversation(
                    conversation.id, excluding=message.id
                )
                conversation.last_message_id = previous.id if previous else None
            self.store.messages.delete(message)

        self._publish("messageDelete", payload, rooms)

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def list_conversations(self, user_id: int) -> list[Conversation]:
        return self.store.conversations.list_for_user(user_id)

    def open_conversation(self, user_id: int, recipient_id: int) -> tuple[Conversation, bool]:
        """Return the conversation with ``recipient_id``, creating it if needed.

        Returns:
            The conversation and whether it was created by this call.
        """
        if recipient_id == user_id:
            raise ValidationFailedError("Cannot start a conversation with yourself")
        if self.store.users.get(recipient_id) is None:
            raise NotFoundError("User not found")

        existing = self.store.conversations.get_for_pair(user_id, recipient_id)
        if existing is not None:
            return existing, False

        low, high = Conversation.ordered_pair(user_id, recipient_id)
        now = utcnow()
        conversation = Conversation(
            participant_low=low,
            participant_high=high,
            creator_id=user_id,
            created_at=now,
            updated_at=now,
        )
        try:
            with self.store.atomic():
                self.store.conversations.add(conversation)
        except IntegrityError:
            # Another request created the pair first.
            existing = self.store.conversations.get_for_pair(user_id, recipient_id)
            if existing is None:
                logger.exception("Conversation insert failed for %s/%s", user_id, recipient_id)
                raise InternalFailureError() from None
            return existing, False

        self._publish(
            "newConversation",
            ConversationResponse.model_validate(conversation),
            {user_room(recipient_id)},
        )
        return conversation, True

    def get_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        return self._conversation(conversation_id, user_id)

    def list_conversation_messages(
        self,
        conversation_id: int,
        user_id: int,
        *,
        limit: int | None = None,
        before: int | None = None,
    ) -> list[Message]:
        conversation = self._conversation(conversation_id, user_id)
        return self.store.messages.list_for_conversation(
            conversation.id, limit=self._page_size(limit), before=before
        )

    def post_conversation_message(
        self, conversation_id: int, user_id: int, data: MessageCreate
    ) -> Message:
        conversation = self._conversation(conversation_id, user_id)

        message = Message(
            content=data.content,
            author_id=user_id,
            conversation_id=conversation.id,
            attachments=list(data.attachments),
        )
        with self.store.atomic():
            self.store.messages.add(message)
            conversation.last_message_id = message.id
            conversation.updated_at = utcnow()

        self._publish(
            "newMessage",
            MessageResponse.model_validate(message),
            message_rooms(message, conversation),
        )
        return message
