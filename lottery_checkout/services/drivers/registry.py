"""Payment method registry: one entry per PaymentMethod, checked at import"""

from dataclasses import dataclass
from typing import Optional

from ...core.config import Settings
from ...core.timers import TimerEngine
from ...models.order import Order
from ...models.payment import Capability, PaymentMethod, PaymentMethodInfo
from ..currency import CurrencyConverter
from ..gateway import PaymentGateway
from .bank import BankTransferDriver
from .base import CancelCallback, PaymentDriver, SuccessCallback
from .card import CardDriver
from .omise import OmiseDriver
from .qr import AlipayDriver, PromptPayDriver, WeChatPayDriver
from .truemoney import TrueMoneyDriver
from .wise import WiseDriver


@dataclass(frozen=True)
class MethodEntry:
    method: PaymentMethod
    name: str
    capability: Capability
    driver: type[PaymentDriver]

    @property
    def settlement_currency(self) -> str:
        return self.driver.settlement_currency

    def info(self) -> PaymentMethodInfo:
        return PaymentMethodInfo(
            method=self.method,
            name=self.name,
            capability=self.capability,
            settlement_currency=self.settlement_currency,
        )


REGISTRY: dict[PaymentMethod, MethodEntry] = {
    entry.method: entry
    for entry in (
        MethodEntry(PaymentMethod.CARD, "Credit / Debit Card", Capability.SYNC_CHARGE, CardDriver),
        MethodEntry(PaymentMethod.PROMPTPAY, "PromptPay", Capability.QR_POLL, PromptPayDriver),
        MethodEntry(PaymentMethod.TRUEMONEY, "TrueMoney Wallet", Capability.OTP_CHALLENGE, TrueMoneyDriver),
        MethodEntry(PaymentMethod.BANK, "Bank Transfer", Capability.MANUAL_PROOF, BankTransferDriver),
        MethodEntry(PaymentMethod.WISE, "Wise", Capability.MANUAL_REFERENCE, WiseDriver),
        MethodEntry(PaymentMethod.ALIPAY, "Alipay", Capability.QR_POLL, AlipayDriver),
        MethodEntry(PaymentMethod.WECHAT, "WeChat Pay", Capability.QR_POLL, WeChatPayDriver),
        MethodEntry(PaymentMethod.OMISE, "Omise", Capability.DISPATCH, OmiseDriver),
    )
}


def _check_registry(registry: dict[PaymentMethod, MethodEntry]) -> None:
    missing = [m.value for m in PaymentMethod if m not in registry]
    if missing:
        raise RuntimeError(f"No payment driver registered for: {', '.join(missing)}")
    for method, entry in registry.items():
        if entry.driver.method != method:
            raise RuntimeError(f"{entry.driver.__name__} is registered for {method.value} but drives {entry.driver.method.value}")


_check_registry(REGISTRY)


def get_entry(method: PaymentMethod) -> MethodEntry:
    return REGISTRY[method]


def list_methods() -> list[PaymentMethodInfo]:
    """Registered methods in declaration order"""
    return [REGISTRY[m].info() for m in PaymentMethod]


def create_driver(
    method: PaymentMethod,
    order: Order,
    gateway: PaymentGateway,
    timer_engine: TimerEngine,
    on_success: SuccessCallback,
    on_cancel: CancelCallback,
    converter: Optional[CurrencyConverter] = None,
    config: Optional[Settings] = None,
) -> PaymentDriver:
    """Instantiate the driver for a payment method"""
    driver_class = REGISTRY[method].driver
    return driver_class(
        order,
        gateway,
        timer_engine,
        on_success=on_success,
        on_cancel=on_cancel,
        converter=converter,
        config=config,
    )
