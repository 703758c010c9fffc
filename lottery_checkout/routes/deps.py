"""Service instances shared by the API routes"""

import logging
from typing import Optional

from ..core.config import settings
from ..core.events import EventBus
from ..services.gateway import PaymentGateway, SimulatedGateway
from ..services.gateway_client import HttpPaymentGateway
from ..services.orchestrator import CheckoutOrchestrator

logger = logging.getLogger(__name__)

# Initialize services lazily so tests can override them
gateway: Optional[PaymentGateway] = None
sandbox_gateway: Optional[SimulatedGateway] = None
orchestrator: Optional[CheckoutOrchestrator] = None
event_bus = EventBus()


def get_gateway() -> PaymentGateway:
    """Get or create the payment gateway used by the drivers"""
    global gateway
    if gateway is None:
        if settings.use_http_gateway:
            gateway = HttpPaymentGateway(
                base_url=settings.gateway_base_url,
                timeout=settings.gateway_timeout_seconds,
            )
            logger.info(f"Using remote payment gateway at {settings.gateway_base_url}")
        else:
            gateway = SimulatedGateway()
            logger.info("Using in-process simulated payment gateway")
    return gateway


def get_sandbox_gateway() -> SimulatedGateway:
    """Get the simulated gateway served under /sandbox/gateway"""
    global sandbox_gateway
    if sandbox_gateway is None:
        current = get_gateway()
        sandbox_gateway = current if isinstance(current, SimulatedGateway) else SimulatedGateway()
    return sandbox_gateway


def get_event_bus() -> EventBus:
    """Event bus the orchestrator publishes session lifecycle events on"""
    return event_bus


def get_orchestrator() -> CheckoutOrchestrator:
    """Get or create the checkout orchestrator"""
    global orchestrator
    if orchestrator is None:
        orchestrator = CheckoutOrchestrator(gateway=get_gateway(), events=get_event_bus())
    return orchestrator


async def close_services() -> None:
    """Stop timers and close gateway connections"""
    global gateway, sandbox_gateway, orchestrator
    if orchestrator is not None:
        await orchestrator.shutdown()
    if gateway is not None:
        await gateway.close()
    gateway = None
    sandbox_gateway = None
    orchestrator = None
