from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from origination.core.context import set_bank_id, set_user_id
from origination.core.permissions import Action, RoleType, Subject
from origination.core.security import decode_token
from origination.db.session import get_db
from origination.models.role_assignment import RoleAssignment
from origination.models.user_profile import UserProfile
from origination.services import authz
from origination.services.authz import Principal, RoleGrant


@dataclass(slots=True)
class BankContext:
    """Bank the request acts on; ``None`` only for platform-wide (SaaS admin) callers."""

    bank_id: UUID | None


bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session(db: AsyncSession = Depends(get_db)) -> AsyncSession:
    return db


async def _load_role_grants(db: AsyncSession, user_id: UUID) -> tuple[RoleGrant, ...]:
    stmt = (
        select(RoleAssignment)
        .where(RoleAssignment.user_id == user_id)
        .order_by(RoleAssignment.created_at.asc())
    )
    result = await db.execute(stmt)
    grants: list[RoleGrant] = []
    for assignment in result.scalars().all():
        try:
            role = RoleType(assignment.role)
        except ValueError:
            continue
        grants.append(RoleGrant(role=role, bank_id=assignment.bank_id))
    return tuple(grants)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    bank_header: str | None = Header(default=None, alias="X-Bank-ID"),
    db: AsyncSession = Depends(get_db_session),
) -> Principal:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    try:
        payload = decode_token(credentials.credentials)
        user_id = UUID(str(payload["sub"]))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc

    profile = await db.get(UserProfile, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    roles = await _load_role_grants(db, user_id)
    current_role = authz.resolve_current_role(roles, bank_header)
    if bank_header and current_role is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No role in the requested bank")

    set_user_id(str(user_id))
    return Principal(
        id=user_id,
        roles=roles,
        email=profile.email,
        name=profile.full_name,
        current_role=current_role,
    )


async def get_bank_context(principal: Principal = Depends(get_current_principal)) -> BankContext:
    bank_id = principal.bank_id
    if bank_id is None and not any(grant.role == RoleType.SAAS_ADMIN for grant in principal.roles):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No bank role assigned")
    if bank_id is not None:
        set_bank_id(str(bank_id))
    return BankContext(bank_id=bank_id)


def require_ability(action: Action, subject: Subject):
    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not authz.define_ability_for(principal).can(action, subject):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "forbidden",
                    "message": f"Missing ability: {action.value} {subject.value}",
                },
            )
        return principal

    return dependency
