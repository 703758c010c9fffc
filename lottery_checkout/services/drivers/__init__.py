# Payment method drivers

from .base import PaymentDriver
from .bank import BankStep, BankTransferDriver
from .card import CardDriver, CardStep
from .omise import OmiseDriver, OmiseStep
from .qr import AlipayDriver, OmisePromptPayDriver, PromptPayDriver, QRPushDriver, QRStep, WeChatPayDriver
from .registry import REGISTRY, MethodEntry, create_driver, get_entry, list_methods
from .truemoney import TrueMoneyDriver, TrueMoneyStep, is_valid_otp, is_valid_phone
from .wise import WiseDriver, WiseStep

__all__ = [
    "PaymentDriver",
    "BankStep",
    "BankTransferDriver",
    "CardDriver",
    "CardStep",
    "OmiseDriver",
    "OmiseStep",
    "AlipayDriver",
    "OmisePromptPayDriver",
    "PromptPayDriver",
    "QRPushDriver",
    "QRStep",
    "WeChatPayDriver",
    "REGISTRY",
    "MethodEntry",
    "create_driver",
    "get_entry",
    "list_methods",
    "TrueMoneyDriver",
    "TrueMoneyStep",
    "is_valid_otp",
    "is_valid_phone",
    "WiseDriver",
    "WiseStep",
]
