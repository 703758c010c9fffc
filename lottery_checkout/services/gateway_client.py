"""
Payment Gateway Client

HTTP client for a remote payment gateway. Speaks to the sandbox gateway
router (routes/sandbox.py) or anything exposing the same endpoints.
"""

import logging
from typing import Any, Optional

import httpx

from ..core.errors import GatewayError, NotFoundError, RejectionError
from ..models.order import Order
from ..models.payment import (
    BankDetails,
    CardDetails,
    OmiseSubMethod,
    OtpChallenge,
    PaymentMethod,
    PollStatus,
    QRPayload,
    SavedCard,
    SlipVerdict,
    TransactionResult,
    WiseTransferDetails,
)
from .gateway import PaymentGateway

logger = logging.getLogger(__name__)


class HttpPaymentGateway(PaymentGateway):
    """
    Client for a remote payment gateway.

    Transport failures and 5xx responses surface as GatewayError so the
    drivers can show them in-session and stay actionable.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize gateway client.

        Args:
            base_url: Base URL of the gateway API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (e.g. ASGITransport in tests)
        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        """Close HTTP client"""
        await self._http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[dict] = None,
    ) -> Any:
        """Make an HTTP request and decode the JSON response"""
        url = f"{self.base_url}{path}"
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            response = await self._http_client.request(
                method=method,
                url=url,
                headers=headers,
                json=body,
            )
        except httpx.HTTPError as e:
            logger.error(f"Gateway request {method} {path} failed: {e!r}")
            raise GatewayError("Payment service is unreachable, please try again") from e

        if response.status_code >= 400:
            logger.error(f"Request failed: {response.status_code} - {response.text}")
            raise self._error_from(response)

        return response.json()

    @staticmethod
    def _error_from(response: httpx.Response) -> Exception:
        try:
            payload = response.json()
        except ValueError:
            payload = {}

        detail = payload.get("detail") or f"Gateway returned {response.status_code}"
        code = payload.get("code")

        if code == "rejected":
            return RejectionError(detail)
        if response.status_code == 404:
            return NotFoundError("Gateway resource", response.request.url.path)
        return GatewayError(detail, details={"status": response.status_code})

    @staticmethod
    def _order(order: Order) -> dict:
        return order.model_dump(mode="json")

    # ==================== Card APIs ====================

    async def charge_card(self, order: Order, card: CardDetails) -> TransactionResult:
        data = await self._request(
            "POST",
            "/cards/charge",
            body={"order": self._order(order), "card": card.model_dump()},
        )
        return TransactionResult(**data)

    async def charge_saved_card(self, order: Order, card: SavedCard) -> TransactionResult:
        data = await self._request(
            "POST",
            "/cards/charge-saved",
            body={"order": self._order(order), "card": card.model_dump(mode="json")},
        )
        return TransactionResult(**data)

    # ==================== QR APIs ====================

    async def generate_qr(self, order: Order, method: PaymentMethod, currency: str) -> QRPayload:
        data = await self._request(
            "POST",
            "/qr",
            body={"order": self._order(order), "method": method.value, "currency": currency},
        )
        return QRPayload(**data)

    async def check_status(self, reference: str) -> PollStatus:
        data = await self._request("GET", f"/qr/{reference}/status")
        return PollStatus(data["status"])

    async def void_reference(self, reference: str) -> None:
        await self._request("POST", f"/qr/{reference}/void")

    async def simulate_payment(self, reference: str) -> dict:
        """Mark a sandbox QR reference as paid"""
        return await self._request("POST", f"/qr/{reference}/simulate-payment")

    # ==================== Wallet APIs ====================

    async def request_otp(self, order: Order, phone_number: str) -> OtpChallenge:
        data = await self._request(
            "POST",
            "/truemoney/otp",
            body={"order": self._order(order), "phone_number": phone_number},
        )
        return OtpChallenge(**data)

    async def confirm_otp(self, order: Order, challenge_id: str, otp: str) -> TransactionResult:
        data = await self._request(
            "POST",
            "/truemoney/confirm",
            body={"order": self._order(order), "challenge_id": challenge_id, "otp": otp},
        )
        return TransactionResult(**data)

    # ==================== Transfer APIs ====================

    async def get_bank_details(self, order: Order) -> BankDetails:
        data = await self._request("POST", "/bank/details", body={"order": self._order(order)})
        return BankDetails(**data)

    async def verify_bank_slip(self, reference: str, slip_sha256: str, size: int) -> SlipVerdict:
        data = await self._request(
            "POST",
            "/bank/slips/verify",
            body={"reference": reference, "slip_sha256": slip_sha256, "size": size},
        )
        return SlipVerdict(**data)

    async def get_wise_details(self, order: Order) -> WiseTransferDetails:
        data = await self._request("POST", "/wise/details", body={"order": self._order(order)})
        return WiseTransferDetails(**data)

    async def confirm_wise(self, reference: str, external_id: str) -> TransactionResult:
        data = await self._request(
            "POST",
            "/wise/confirm",
            body={"reference": reference, "external_id": external_id},
        )
        return TransactionResult(**data)

    # ==================== Omise APIs ====================

    async def charge_omise(self, order: Order, sub_method: OmiseSubMethod) -> TransactionResult:
        data = await self._request(
            "POST",
            "/omise/charge",
            body={"order": self._order(order), "sub_method": sub_method.value},
        )
        return TransactionResult(**data)
