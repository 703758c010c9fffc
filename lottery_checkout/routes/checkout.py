"""Checkout API routes"""

from fastapi import APIRouter, Depends

from ..models.order import CheckoutStatus, CreateOrderRequest, Order, Quote, QuoteRequest
from ..services.orchestrator import CheckoutOrchestrator
from .deps import get_orchestrator

router = APIRouter(prefix="/api/checkout", tags=["Checkout"])


@router.post("/quote", response_model=Quote)
async def quote(
    request: QuoteRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """Price a number selection without starting checkout"""
    return orchestrator.quote(request.game_id, request.tier, request.lines, request.has_multiplier)


@router.post("/orders", response_model=Order)
async def create_order(
    request: CreateOrderRequest,
    orchestrator: CheckoutOrchestrator = Depends(get_orchestrator),
):
    """
    Start checkout for a number selection.

    Only complete lines are included in the order. Fails while a payment
    session for another order is still mounted.
    """
    return orchestrator.create_order(request.game_id, request.tier, request.lines, request.has_multiplier)


@router.get("/status", response_model=CheckoutStatus)
async def get_status(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Current checkout view and order"""
    return orchestrator.status()


@router.post("/leave", response_model=CheckoutStatus)
async def leave_checkout(orchestrator: CheckoutOrchestrator = Depends(get_orchestrator)):
    """Abandon checkout and return to number selection"""
    orchestrator.leave_checkout()
    return orchestrator.status()
