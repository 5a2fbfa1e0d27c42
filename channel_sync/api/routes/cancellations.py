"""
Cancellation quote endpoint.
"""
from datetime import timedelta

from fastapi import APIRouter, Depends

from ..dependencies import get_service
from ..models import CancellationRequest, CancellationResponse, CancellationOutcomeData
from ...utils.models import CancellationPolicy, CancellationRule, CanonicalBooking


router = APIRouter(prefix="/cancellations", tags=["cancellations"])


@router.post("/evaluate", response_model=CancellationResponse, summary="Quote a cancellation refund")
def evaluate_cancellation(request: CancellationRequest, service=Depends(get_service)) -> CancellationResponse:
    policy = CancellationPolicy(
        policy_type=request.policy_type,
        rules=[CancellationRule(r.days_before, r.refund_percent) for r in request.rules],
    )
    booking = CanonicalBooking(
        id="quote",
        unit_id="",
        check_in=request.check_in,
        check_out=request.check_in + timedelta(days=1),
        total_price=request.total_price,
    )
    outcome = service.evaluate_cancellation(policy, booking, request.requested_at)
    return CancellationResponse(
        success=True,
        message="Cancellation evaluated",
        data=CancellationOutcomeData(**outcome.to_dict()),
    )
