"""Payment session API routes"""

from fastapi import APIRouter, Depends

from ..models.payment import PaymentMethodInfo, SelectMethodRequest, SessionActionRequest, SessionSnapshot
from ..services.drivers.registry import list_methods
from ..services.orchestrator import CheckoutOrchestrator
from .deps import get_orchestrator

router = APIRouter(prefix="/api/payments", tags=["Payments"])


@router.get("/methods", response_model=list[PaymentMethodInfo])
async def get_methods():
    """List supported payment methods"""
    return list_methods()


@router.post("/session", response_model=SessionSnapshot)
async def select_method(
    request: SelectMethodRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """Mount the driver for a payment method, replacing any current one"""
    return await orchestrator.select_method(request.method)


@router.get("/session", response_model=SessionSnapshot)
async def get_session(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Current payment screen"""
    return orchestrator.snapshot()


@router.post("/session/actions/{action}", response_model=SessionSnapshot)
async def perform_action(
    action: str,
    request: SessionActionRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """Run a user action on the active payment session"""
    return await orchestrator.perform(action, request.data)


@router.post("/session/cancel", response_model=SessionSnapshot)
async def cancel_session(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Cancel the payment and return to method selection"""
    return await orchestrator.cancel()
