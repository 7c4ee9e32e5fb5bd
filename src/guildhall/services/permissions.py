# src/guildhall/services/permissions.py
"""Capability resolution for guild-scoped actions.

Every function here is pure: it reads a loaded :class:`Guild` snapshot and
never touches the database, so results are re-evaluated on every call and
always reflect the current role state.
"""

from __future__ import annotations

import logging

from guildhall.core.errors import ForbiddenError
from guildhall.models.guild import ADMIN_ROLE_COLOR, Guild, Permission

logger = logging.getLogger(__name__)

ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)

DEFAULT_EVERYONE_PERMISSIONS: tuple[Permission, ...] = (
    Permission.VIEW_CHANNELS,
    Permission.SEND_MESSAGES,
    Permission.READ_MESSAGE_HISTORY,
)

DEFAULT_ADMIN_PERMISSIONS: tuple[Permission, ...] = (Permission.ADMINISTRATOR,)
DEFAULT_ADMIN_COLOR = ADMIN_ROLE_COLOR

_KNOWN = {perm.value: perm for perm in Permission}


def _parse(names: list[str]) -> set[Permission]:
    parsed: set[Permission] = set()
    for name in names or ():
        perm = _KNOWN.get(name)
        if perm is None:
            logger.debug("Ignoring unknown permission %r", name)
            continue
        parsed.add(perm)
    return parsed


def effective_capabilities(guild: Guild, user_id: int) -> frozenset[Permission]:
    """Return the capabilities ``user_id`` holds in ``guild``.

    The owner holds every permission regardless of roles. Anyone else holds
    the union of the permissions of every role whose member set contains
    them; ``@everyone`` takes part in that union like any other role.
    """
    if user_id == guild.owner_id:
        return ALL_PERMISSIONS

    granted: set[Permission] = set()
    for role in guild.roles:
        if role.has_member(user_id):
            granted |= _parse(role.permissions)
    return frozenset(granted)


def has_capability(guild: Guild, user_id: int, permission: Permission) -> bool:
    """Return True if the user holds ``permission`` or ``ADMINISTRATOR``."""
    capabilities = effective_capabilities(guild, user_id)
    return permission in capabilities or Permission.ADMINISTRATOR in capabilities


def require_member(guild: Guild, user_id: int) -> None:
    """Raise :class:`ForbiddenError` unless the user belongs to the guild."""
    if not guild.is_member(user_id):
        raise ForbiddenError("You are not a member of this guild")


def require_capability(guild: Guild, user_id: int, permission: Permission) -> None:
    """Raise :class:`ForbiddenError` unless the user is a member holding ``permission``."""
    require_member(guild, user_id)
    if not has_capability(guild, user_id, permission):
        raise ForbiddenError(f"Missing permission: {permission.value}")


__all__ = [
    "ALL_PERMISSIONS",
    "DEFAULT_ADMIN_COLOR",
    "DEFAULT_ADMIN_PERMISSIONS",
    "DEFAULT_EVERYONE_PERMISSIONS",
    "Permission",
    "effective_capabilities",
    "has_capability",
    "require_capability",
    "require_member",
]
