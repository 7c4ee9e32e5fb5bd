# src/guildhall/api/v1/endpoints/invites.py
"""Invite endpoints."""

from fastapi import APIRouter, Response, status

from guildhall.api.v1.dependencies import CurrentUserDep, InviteLedgerDep
from guildhall.models import Guild, Invite
from guildhall.schemas.guild import GuildResponse
from guildhall.schemas.invite import InviteCreate, InviteJoin, InvitePreview, InviteResponse

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post(
    "/guilds/{guild_id}",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_invite(
    guild_id: int,
    payload: InviteCreate,
    current_user: CurrentUserDep,
    ledger: InviteLedgerDep,
) -> Invite:
    """Create an invite for a guild."""
    return ledger.create_invite(
        guild_id,
        current_user.id,
        max_uses=payload.max_uses,
        max_age_seconds=payload.max_age_seconds,
    )


@router.get("/guilds/{guild_id}", response_model=list[InviteResponse])
def list_invites(guild_id: int, current_user: CurrentUserDep, ledger: InviteLedgerDep) -> list[Invite]:
    return ledger.list_invites(guild_id, current_user.id)


@router.post("/join", response_model=GuildResponse)
def join_guild(payload: InviteJoin, current_user: CurrentUserDep, ledger: InviteLedgerDep) -> Guild:
    """Redeem an invite code and join its guild."""
    return ledger.redeem(payload.code, current_user.id)


@router.get("/{code}", response_model=InvitePreview)
def preview_invite(code: str, _current_user: CurrentUserDep, ledger: InviteLedgerDep) -> InvitePreview:
    return ledger.preview(code)


@router.delete("/{invite_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_invite(invite_id: int, current_user: CurrentUserDep, ledger: InviteLedgerDep) -> Response:
    """Delete an invite. Allowed for its creator or a guild manager."""
    ledger.delete_invite(invite_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
