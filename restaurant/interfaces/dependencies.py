from typing import Optional

from fastapi import Depends, Header, Request

from restaurant.application.orchestrator import Orchestrator
from restaurant.core.errors import Unauthorized
from restaurant.domain.caller import Caller
from restaurant.domain.enums import Role


def get_orchestrator(request: Request) -> Orchestrator:
    """Orchestrator lives on app.state (set by the composition root)."""
    return request.app.state.orchestrator


async def get_optional_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Optional[Caller]:
    """
    Identity forwarded by the upstream auth layer as X-User-Id / X-User-Role.
    Both absent means guest; anything partial or malformed is rejected.
    """
    if x_user_id is None and x_user_role is None:
        return None
    try:
        return Caller(user_id=int(x_user_id), role=Role(x_user_role))
    except (TypeError, ValueError):
        raise Unauthorized("Invalid caller identity")


async def get_caller(caller: Optional[Caller] = Depends(get_optional_caller)) -> Caller:
    if caller is None:
        raise Unauthorized("Missing caller identity")
    return caller
