# src/guildhall/api/v1/endpoints/guilds.py
"""Guild, member and role endpoints."""

from fastapi import APIRouter, Response, status

from guildhall.api.v1.dependencies import ChatServiceDep, CurrentUserDep
from guildhall.models import Channel, Guild, Role
from guildhall.schemas.channel import ChannelCreate, ChannelResponse
from guildhall.schemas.guild import (
    GuildCreate,
    GuildResponse,
    GuildUpdate,
    MemberResponse,
    RoleCreate,
    RoleResponse,
    RoleUpdate,
)

router = APIRouter(prefix="/guilds", tags=["guilds"])


@router.get("/", response_model=list[GuildResponse])
def list_guilds(current_user: CurrentUserDep, chat: ChatServiceDep) -> list[Guild]:
    """List the guilds the current user belongs to."""
    return chat.list_guilds(current_user.id)


@router.post("/", response_model=GuildResponse, status_code=status.HTTP_201_CREATED)
def create_guild(
    payload: GuildCreate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Guild:
    """Create a guild owned by the current user."""
    return chat.create_guild(current_user.id, payload.name, payload.icon)


@router.get("/{guild_id}", response_model=GuildResponse)
def get_guild(guild_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Guild:
    return chat.get_guild(guild_id, current_user.id)


@router.put("/{guild_id}", response_model=GuildResponse)
def update_guild(
    guild_id: int,
    payload: GuildUpdate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Guild:
    return chat.update_guild(guild_id, current_user.id, payload)


@router.delete("/{guild_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_guild(guild_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Response:
    chat.delete_guild(guild_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{guild_id}/channels", response_model=list[ChannelResponse])
def list_channels(guild_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> list[Channel]:
    return chat.list_channels(guild_id, current_user.id)


@router.post(
    "/{guild_id}/channels",
    response_model=ChannelResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_channel(
    guild_id: int,
    payload: ChannelCreate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Channel:
    return chat.create_channel(guild_id, current_user.id, payload)


@router.get("/{guild_id}/members", response_model=list[MemberResponse])
def list_members(
    guild_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> list[MemberResponse]:
    return chat.list_members(guild_id, current_user.id)


# Declared before the {user_id} route so "me" is not parsed as an id.
@router.delete("/{guild_id}/members/me", status_code=status.HTTP_204_NO_CONTENT)
def leave_guild(guild_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> Response:
    """Leave a guild. The owner cannot leave."""
    chat.leave_guild(guild_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{guild_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def kick_member(
    guild_id: int,
    user_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Response:
    """Kick a member from the guild."""
    chat.kick_member(guild_id, current_user.id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{guild_id}/roles", response_model=list[RoleResponse])
def list_roles(guild_id: int, current_user: CurrentUserDep, chat: ChatServiceDep) -> list[Role]:
    return chat.list_roles(guild_id, current_user.id)


@router.post("/{guild_id}/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
def create_role(
    guild_id: int,
    payload: RoleCreate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Role:
    return chat.create_role(guild_id, current_user.id, payload)


@router.patch("/{guild_id}/roles/{role_id}", response_model=RoleResponse)
def update_role(
    guild_id: int,
    role_id: int,
    payload: RoleUpdate,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Role:
    return chat.update_role(guild_id, role_id, current_user.id, payload)


@router.delete("/{guild_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_role(
    guild_id: int,
    role_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Response:
    chat.delete_role(guild_id, role_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{guild_id}/roles/{role_id}/members/{user_id}", response_model=RoleResponse)
def add_role_member(
    guild_id: int,
    role_id: int,
    user_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Role:
    """Grant a role to a guild member."""
    return chat.add_role_member(guild_id, role_id, current_user.id, user_id)


@router.delete("/{guild_id}/roles/{role_id}/members/{user_id}", response_model=RoleResponse)
def remove_role_member(
    guild_id: int,
    role_id: int,
    user_id: int,
    current_user: CurrentUserDep,
    chat: ChatServiceDep,
) -> Role:
    """Revoke a role from a guild member."""
    return chat.remove_role_member(guild_id, role_id, current_user.id, user_id)
