# src/guildhall/services/invites.py
"""Invite issuance and redemption."""

from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError

from guildhall.core.errors import (
    AlreadyMemberError,
    ExhaustedError,
    ExpiredError,
    ForbiddenError,
    InternalFailureError,
    NotFoundError,
)
from guildhall.core.settings import settings
from guildhall.db.time import utcnow
from guildhall.models.guild import Guild, Permission
from guildhall.models.invite import Invite
from guildhall.realtime.broadcast import BroadcastRouter
from guildhall.realtime.rooms import guild_room
from guildhall.repositories.store import Store
from guildhall.schemas.invite import InvitePreview
from guildhall.schemas.user import UserPublic

from .permissions import has_capability, require_capability, require_member

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits
_MAX_CODE_ATTEMPTS = 5


def generate_code(length: int | None = None) -> str:
    """Return a random invite code from a URL-safe alphabet."""
    size = length or settings.invite_code_length
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(size))


class InviteLedger:
    """Creates invites and turns valid codes into guild membership.

    Redemption is one transaction: the member row, the ``@everyone`` role
    membership and the use counter change together or not at all.
    """

    def __init__(
        self,
        store: Store,
        broadcaster: BroadcastRouter,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.broadcaster = broadcaster
        self.clock = clock

    def _get_guild(self, guild_id: int) -> Guild:
        guild = self.store.guilds.get(guild_id)
        if guild is None:
            raise NotFoundError("Guild not found")
        return guild

    def create_invite(
        self,
        guild_id: int,
        creator_id: int,
        *,
        max_uses: int = 0,
        max_age_seconds: int | None = None,
    ) -> Invite:
        """Issue a new invite for ``guild_id``.

        ``max_age_seconds`` of None applies the configured default; 0 makes
        an invite that never expires.
        """
        guild = self._get_guild(guild_id)
        require_capability(guild, creator_id, Permission.CREATE_INVITE)

        if max_age_seconds is None:
            max_age_seconds = settings.invite_default_ttl_seconds
        expires_at = None
        if max_age_seconds > 0:
            expires_at = self.clock() + timedelta(seconds=max_age_seconds)

        for attempt in range(1, _MAX_CODE_ATTEMPTS + 1):
            invite = Invite(
                code=generate_code(),
                guild_id=guild.id,
                creator_id=creator_id,
                uses=0,
                max_uses=max_uses,
                expires_at=expires_at,
            )
            try:
                with self.store.atomic():
                    self.store.invites.add(invite)
            except IntegrityError:
                logger.warning("Invite code collision (attempt %d)", attempt)
                continue
            logger.info("User %s created invite %s for guild %s", creator_id, invite.code, guild.id)
            return invite

        logger.error("Could not allocate a unique invite code for guild %s", guild.id)
        raise InternalFailureError()

    def list_invites(self, guild_id: int, requester_id: int) -> list[Invite]:
        guild = self._get_guild(guild_id)
        require_capability(guild, requester_id, Permission.MANAGE_GUILD)
        return self.store.invites.list_for_guild(guild.id)

    def preview(self, code: str) -> InvitePreview:
        """Return public details about an invite without redeeming it."""
        invite = self.store.invites.get_by_code(code)
        if invite is None:
            raise NotFoundError("Invalid invite code")
        if invite.is_expired(self.clock()):
            raise ExpiredError()
        guild = self._get_guild(invite.guild_id)
        return InvitePreview(
            code=invite.code,
            guild_id=guild.id,
            guild_name=guild.name,
            guild_icon=guild.icon,
            member_count=len(guild.member_links),
            expires_at=invite.expires_at,
        )

    def redeem(self, code: str, user_id: int) -> Guild:
        """Join the guild behind ``code``.

        Raises:
            NotFoundError: Unknown code.
            ExpiredError: The invite's expiry has passed.
            ExhaustedError: The invite has no uses left.
            AlreadyMemberError: The user is already in the guild.
        """
        invite = self.store.invites.get_by_code(code)
        if invite is None:
            raise NotFoundError("Invalid invite code")
        if invite.is_expired(self.clock()):
            raise ExpiredError()
        if invite.is_exhausted():
            raise ExhaustedError()

        guild = self._get_guild(invite.guild_id)
        if guild.is_member(user_id):
            raise AlreadyMemberError()

        user = self.store.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")

        try:
            with self.store.atomic():
                if not self.store.invites.consume_use(invite):
                    raise ExhaustedError()
                self.store.guilds.add_member(guild, user_id)
        except IntegrityError as err:
            # Lost a race with a concurrent join by the same user.
            raise AlreadyMemberError() from err

        logger.info("User %s joined guild %s via invite %s", user_id, guild.id, invite.code)
        self.broadcaster.publish(
            "memberJoin",
            {"guildId": guild.id, "user": UserPublic.model_validate(user)},
            {guild_room(guild.id)},
        )
        return guild

    def delete_invite(self, invite_id: int, requester_id: int) -> None:
        """Delete an invite. Allowed for its creator or a guild manager."""
        invite = self.store.invites.get(invite_id)
        if invite is None:
            raise NotFoundError("Invite not found")
        if invite.creator_id != requester_id:
            guild = self._get_guild(invite.guild_id)
            require_member(guild, requester_id)
            if not has_capability(guild, requester_id, Permission.MANAGE_GUILD):
                raise ForbiddenError("You cannot delete this invite")

        code = invite.code
        with self.store.atomic():
            self.store.invites.delete(invite)
        logger.info("User %s deleted invite %s", requester_id, code)
