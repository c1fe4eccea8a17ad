from typing import List

from fastapi import APIRouter, Depends

from restaurant.application.orchestrator import Orchestrator
from restaurant.domain.caller import Caller
from restaurant.domain.enums import Role
from restaurant.domain.schemas import Message, PermissionOut, PermissionsUpdate
from restaurant.interfaces.dependencies import get_caller, get_orchestrator

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.get("", response_model=List[PermissionOut])
async def list_permissions(
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    return [PermissionOut.model_validate(p) for p in await orchestrator.list_permissions(caller)]


@router.get("/{role}", response_model=List[PermissionOut])
async def list_role_permissions(
    role: Role,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    return [PermissionOut.model_validate(p) for p in await orchestrator.list_permissions(caller, role)]


@router.put("", response_model=Message)
async def update_permissions(
    payload: PermissionsUpdate,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    entries = [p.model_dump(mode="json") for p in payload.permissions]
    await orchestrator.set_permissions(caller, entries)
    return Message(message="Permissions updated")
