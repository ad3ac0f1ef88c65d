from fastapi import APIRouter, Depends

from origination.api import deps
from origination.services import authz
from origination.services.authz import Principal

router = APIRouter(prefix="/me", tags=["me"])


@router.get("/abilities")
async def read_my_abilities(principal: Principal = Depends(deps.get_current_principal)) -> dict:
    ability = authz.define_ability_for(principal)
    return {
        "user_id": str(principal.id),
        "current_role": principal.role_name,
        "bank_id": str(principal.bank_id) if principal.bank_id else None,
        "rules": [rule.as_dict() for rule in ability.rules],
    }
