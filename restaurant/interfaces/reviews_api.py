from fastapi import APIRouter, Depends

from restaurant.application.orchestrator import Orchestrator
from restaurant.domain.caller import Caller
from restaurant.domain.schemas import ReviewAccept, ReviewCreate, ReviewOut
from restaurant.interfaces.dependencies import get_caller, get_orchestrator

router = APIRouter(prefix="/api/reviews", tags=["reviews"])


@router.post("", response_model=ReviewOut, status_code=201)
async def create_review(
    payload: ReviewCreate,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    review = await orchestrator.create_review(caller, payload.order_id, payload.rating, payload.comment)
    return ReviewOut.model_validate(review)


@router.patch("/{review_id}/accept", response_model=ReviewOut)
async def accept_review(
    review_id: int,
    payload: ReviewAccept,
    caller: Caller = Depends(get_caller),
    orchestrator: Orchestrator = Depends(get_orchestrator),
):
    review = await orchestrator.accept_review(caller, review_id, payload.menu_item_ids)
    return ReviewOut.model_validate(review)
