"""Audit team assignment endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from stockaudit.core.permissions import Capability
from stockaudit.core.security import require_capability
from stockaudit.db.session import get_db
from stockaudit.models import AuditTeamMember, User
from stockaudit.schemas.team import TeamMemberCreate, TeamMemberRead
from stockaudit.services import audit_team_service

router: APIRouter = APIRouter()

team_manager = require_capability(Capability.CAN_FINALIZE)


def _serialize(member: AuditTeamMember) -> TeamMemberRead:
    return TeamMemberRead(
        id=member.id,
        user_id=member.user_id,
        warehouse_id=member.warehouse_id,
        manager_id=member.manager_id,
        username=member.user.username,
        warehouse_name=member.warehouse.name,
        created_at=member.created_at,
    )


@router.get("", response_model=list[TeamMemberRead])
def list_team(
    warehouse_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(team_manager),
) -> list[TeamMemberRead]:
    members = audit_team_service.list_members(db, current_user, warehouse_id)
    return [_serialize(member) for member in members]


@router.post("", response_model=TeamMemberRead, status_code=status.HTTP_201_CREATED)
def add_team_member(
    payload: TeamMemberCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(team_manager),
) -> TeamMemberRead:
    member = audit_team_service.assign_member(
        db,
        current_user,
        user_id=payload.user_id,
        warehouse_id=payload.warehouse_id,
    )
    return _serialize(member)


@router.delete("/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_member(
    member_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(team_manager),
) -> Response:
    audit_team_service.remove_member(db, current_user, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
