"""
Sandbox gateway API routes

Serves the simulated gateway over HTTP so HttpPaymentGateway has a peer,
and lets testers mark a QR reference as paid.
"""

import logging
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..models.order import Order
from ..models.payment import (
    BankDetails,
    CardDetails,
    OmiseSubMethod,
    OtpChallenge,
    PaymentMethod,
    QRPayload,
    SavedCard,
    SlipVerdict,
    TransactionResult,
    WiseTransferDetails,
)
from ..services.gateway import SimulatedGateway
from .deps import get_sandbox_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sandbox/gateway", tags=["Sandbox Gateway"])


class OrderRequest(BaseModel):
    order: Order


class CardChargeRequest(OrderRequest):
    card: CardDetails


class SavedCardChargeRequest(OrderRequest):
    card: SavedCard


class QRRequest(OrderRequest):
    method: PaymentMethod
    currency: str


class OtpRequest(OrderRequest):
    phone_number: str


class OtpConfirmRequest(OrderRequest):
    challenge_id: str
    otp: str


class SlipVerifyRequest(BaseModel):
    reference: str
    slip_sha256: str
    size: int


class WiseConfirmRequest(BaseModel):
    reference: str
    external_id: str


class OmiseChargeRequest(OrderRequest):
    sub_method: OmiseSubMethod


@router.post("/cards/charge", response_model=TransactionResult)
async def charge_card(request: CardChargeRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.charge_card(request.order, request.card)


@router.post("/cards/charge-saved", response_model=TransactionResult)
async def charge_saved_card(request: SavedCardChargeRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.charge_saved_card(request.order, request.card)


@router.post("/qr", response_model=QRPayload)
async def generate_qr(request: QRRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.generate_qr(request.order, request.method, request.currency)


@router.get("/qr/{reference}/status")
async def check_status(reference: str, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    status = await gateway.check_status(reference)
    return {"reference": reference, "status": status.value}


@router.post("/qr/{reference}/void")
async def void_reference(reference: str, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    await gateway.void_reference(reference)
    return {"reference": reference, "voided": True}


@router.post("/qr/{reference}/simulate-payment")
async def simulate_payment(reference: str, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    """Mark a QR reference as paid; the next status check reports COMPLETED"""
    if not gateway.mark_paid(reference):
        raise HTTPException(status_code=404, detail="Reference not found or voided")
    logger.info(f"Sandbox payment simulated for {reference}")
    return {"reference": reference, "paid": True}


@router.post("/truemoney/otp", response_model=OtpChallenge)
async def request_otp(request: OtpRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.request_otp(request.order, request.phone_number)


@router.post("/truemoney/confirm", response_model=TransactionResult)
async def confirm_otp(request: OtpConfirmRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.confirm_otp(request.order, request.challenge_id, request.otp)


@router.post("/bank/details", response_model=BankDetails)
async def get_bank_details(request: OrderRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.get_bank_details(request.order)


@router.post("/bank/slips/verify", response_model=SlipVerdict)
async def verify_bank_slip(request: SlipVerifyRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.verify_bank_slip(request.reference, request.slip_sha256, request.size)


@router.post("/wise/details", response_model=WiseTransferDetails)
async def get_wise_details(request: OrderRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.get_wise_details(request.order)


@router.post("/wise/confirm", response_model=TransactionResult)
async def confirm_wise(request: WiseConfirmRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.confirm_wise(request.reference, request.external_id)


@router.post("/omise/charge", response_model=TransactionResult)
async def charge_omise(request: OmiseChargeRequest, gateway: SimulatedGateway = Depends(get_sandbox_gateway)):
    return await gateway.charge_omise(request.order, request.sub_method)
