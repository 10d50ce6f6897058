"""
Payment gateway client (Razorpay REST API over aiohttp).

Raw gateway calls only: retries and idempotency are applied by callers
through app.services.payment_retry.
"""

import asyncio
import hashlib
import hmac
from typing import Any

import aiohttp
from loguru import logger

from app.config.constants import PAYMENT_GATEWAY_TIMEOUT
from app.utils.exceptions import PaymentGatewayError
from app.utils.security import mask_sensitive, mask_upi


def compute_signature(order_id: str, payment_id: str, key_secret: str) -> str:
    """HMAC-SHA256 hex digest of ``order_id|payment_id``."""
    message = f"{order_id}|{payment_id}".encode()
    return hmac.new(key_secret.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(
    order_id: str, payment_id: str, signature: str, key_secret: str
) -> bool:
    """
    Verify the checkout signature returned to the client.

    Constant-time comparison; empty inputs never verify.
    """
    if not order_id or not payment_id or not signature:
        return False
    expected = compute_signature(order_id, payment_id, key_secret)
    return hmac.compare_digest(expected, signature)


class RazorpayGateway:
    """
    Minimal async Razorpay client.

    Every non-2xx response raises PaymentGatewayError carrying the HTTP
    status; network failures and timeouts raise it with status None so
    the retry helper treats them as transient.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = PAYMENT_GATEWAY_TIMEOUT,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(cls) -> "RazorpayGateway":
        from app.config.settings import settings

        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            base_url=settings.razorpay_base_url,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                auth=aiohttp.BasicAuth(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def _request(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        session = await self._get_session()
        url = f"{self.base_url}{path}"

        try:
            async with session.request(method, url, json=payload) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                if response.status >= 400:
                    description = _error_description(body)
                    logger.warning(
                        f"Gateway {method} {path} returned {response.status}: "
                        f"{description}"
                    )
                    raise PaymentGatewayError(description, status_code=response.status)
                return body or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Gateway {method} {path} network error: {type(e).__name__}")
            raise PaymentGatewayError(
                f"Payment gateway unreachable: {type(e).__name__}"
            ) from e

    async def create_order(
        self,
        amount_paise: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Create an order (auto-captured on payment).

        Args:
            amount_paise: Amount in the currency's minor unit
            currency: ISO currency (INR)
            receipt: Our reference (idempotency key)
            notes: Free-form metadata shown in the dashboard

        Returns:
            Gateway order object (``id``, ``amount``, ``currency``, ``status``)
        """
        if amount_paise <= 0:
            raise PaymentGatewayError("Order amount must be positive", status_code=400)

        order = await self._request(
            "POST",
            "/orders",
            {
                "amount": amount_paise,
                "currency": currency,
                "receipt": receipt[:40],
                "payment_capture": 1,
                "notes": notes or {},
            },
        )
        logger.info(
            f"Gateway order created: {mask_sensitive(order.get('id'))} "
            f"for {amount_paise} paise"
        )
        return order

    async def create_refund(
        self, payment_id: str, amount_paise: int, notes: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Refund (part of) a captured payment."""
        refund = await self._request(
            "POST",
            f"/payments/{payment_id}/refund",
            {"amount": amount_paise, "notes": notes or {}},
        )
        logger.info(
            f"Gateway refund {mask_sensitive(refund.get('id'))} created for "
            f"payment {mask_sensitive(payment_id)}"
        )
        return refund

    async def validate_vpa(self, vpa: str) -> bool:
        """
        Check that a UPI id exists.

        Returns:
            True when the gateway confirms the VPA
        """
        result = await self._request(
            "POST", "/payments/validate/vpa", {"vpa": vpa}
        )
        verified = result.get("success") is True
        logger.debug(f"VPA {mask_upi(vpa)} verified={verified}")
        return verified

    def verify_payment_signature(
        self, order_id: str, payment_id: str, signature: str
    ) -> bool:
        return verify_signature(order_id, payment_id, signature, self.key_secret)


def _error_description(body: Any) -> str:
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("description"):
            return str(error["description"])
    return "Payment gateway request failed"


# Singleton instance
_gateway: RazorpayGateway | None = None


def get_payment_gateway() -> RazorpayGateway:
    """Get gateway singleton, building it from settings on first use."""
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway.from_settings()
    return _gateway
