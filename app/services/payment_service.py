"""
Flutterwave payment verification and gift recording
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PaymentVerificationError, PersistenceError
from app.services.mappers import gift_from_payment
from app.services.repositories import GiftRepo

logger = logging.getLogger(__name__)


def _as_decimal(value: Any) -> Optional[Decimal]:
    """Finite decimal for a numeric value, otherwise None"""
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


class PaymentService:
    """Confirms a transaction with Flutterwave, then records it as a gift"""

    def __init__(self, db: Session, client: Optional[httpx.AsyncClient] = None):
        self.db = db
        self.client = client

    async def fetch_transaction(self, transaction_id: str) -> Dict[str, Any]:
        url = f"{settings.FLW_BASE_URL}/transactions/{transaction_id}/verify"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {settings.FLW_SECRET_KEY}",
        }
        try:
            if self.client is not None:
                response = await self.client.get(url, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=15.0) as client:
                    response = await client.get(url, headers=headers)
            body = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Flutterwave verification call failed for {transaction_id}: {e}")
            raise PaymentVerificationError("Transaction not found on Flutterwave") from e

        if body.get("status") != "success" or not body.get("data"):
            raise PaymentVerificationError("Transaction not found on Flutterwave")
        return body["data"]

    async def verify_and_record(self, transaction_id: Optional[str], expected_amount: Any) -> Dict[str, Any]:
        """Return the verified payment payload after saving the gift row"""
        if not transaction_id:
            raise PaymentVerificationError("Transaction ID is required")
        expected = _as_decimal(expected_amount)
        if expected is None:
            raise PaymentVerificationError("Expected amount is required")

        payment = await self.fetch_transaction(str(transaction_id))
        status = payment.get("status")
        amount = _as_decimal(payment.get("amount"))

        if status != "successful" or amount is None or amount < expected:
            raise PaymentVerificationError(
                f"Verification failed: Expected {expected_amount}, got {payment.get('amount')}. Status: {status}"
            )

        row = gift_from_payment(payment)
        row["amount"] = amount
        try:
            if not row.get("event_id") or not row.get("payment_ref"):
                raise PersistenceError("Payment metadata is missing the event or reference")
            GiftRepo.insert(self.db, row)
        except PersistenceError as e:
            # Money has moved but there is no gift row: left for manual reconciliation
            logger.error(
                f"Payment {transaction_id} (ref {row.get('payment_ref')}) verified but not recorded: {e.message}"
            )
            raise PaymentVerificationError("Payment verified but failed to save to database") from e

        logger.info(f"Gift recorded for event {row['event_id']} from transaction {transaction_id}")
        return payment
