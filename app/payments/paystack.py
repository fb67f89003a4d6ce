"""
Paystack REST client

Docs: https://paystack.com/docs/api/transaction/
All amounts are in the currency's minor unit (pesewas for GHS).
"""

import logging
from typing import List, Optional

import httpx

from app.core import config
from app.core.errors import GatewayError
from app.payments.payment_models import (
    GatewayInitialization, GatewayVerification, TransactionStatus
)

logger = logging.getLogger(__name__)


class PaystackClient:

    def __init__(
        self,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.secret_key = secret_key if secret_key is not None else config.PAYSTACK_SECRET_KEY
        self._client = httpx.AsyncClient(
            base_url=base_url or config.PAYSTACK_BASE_URL,
            timeout=timeout or config.PAYSTACK_TIMEOUT_SECONDS,
            transport=transport
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, body: dict = None) -> dict:
        if not self.secret_key:
            logger.error("❌ Paystack secret key is not configured")
            raise GatewayError("Payment gateway is not configured")

        headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json"
        }

        try:
            response = await self._client.request(method, path, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"❌ Paystack {method} {path} failed: {e}")
            raise GatewayError("Payment gateway unavailable")

        try:
            result = response.json()
        except ValueError:
            logger.error(f"❌ Paystack returned non-JSON ({response.status_code}) for {path}")
            raise GatewayError("Invalid response from payment gateway")

        if response.status_code >= 400 or not result.get("status"):
            message = result.get("message") or "Invalid response from payment gateway"
            logger.error(f"❌ Paystack rejected {path} ({response.status_code}): {message}")
            raise GatewayError(message)

        return result.get("data") or {}

    async def initialize_transaction(
        self,
        email: str,
        amount: int,
        currency: str,
        reference: str,
        callback_url: str,
        metadata: dict = None,
        channels: List[str] = None
    ) -> GatewayInitialization:
        payload = {
            "email": email,
            "amount": amount,
            "currency": currency,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata or {}
        }
        if channels:
            payload["channels"] = channels

        data = await self._request("POST", "/transaction/initialize", payload)

        if not data.get("authorization_url"):
            raise GatewayError("Payment gateway did not return an authorization URL")

        logger.info(f"✅ Paystack initialized {data.get('reference', reference)}")
        return GatewayInitialization(
            reference=data.get("reference") or reference,
            authorization_url=data["authorization_url"],
            access_code=data.get("access_code")
        )

    async def verify_transaction(self, reference: str) -> GatewayVerification:
        data = await self._request("GET", f"/transaction/verify/{reference}")

        status = (
            TransactionStatus.SUCCESS if data.get("status") == "success"
            else TransactionStatus.FAILED
        )
        logger.info(f"Paystack verify {reference}: {data.get('status')}")
        return GatewayVerification(status=status, payload=data)
