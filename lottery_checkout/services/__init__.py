# Checkout services

from .currency import CurrencyConverter, converter
from .gateway import PaymentGateway, SimulatedGateway
from .gateway_client import HttpPaymentGateway
from .orchestrator import ActiveSession, CheckoutOrchestrator

__all__ = [
    "CurrencyConverter",
    "converter",
    "PaymentGateway",
    "SimulatedGateway",
    "HttpPaymentGateway",
    "ActiveSession",
    "CheckoutOrchestrator",
]
