"""
Flutterwave payment verification callback.

A standalone ASGI app so it can be deployed on its own
(``uvicorn app.functions.flutterwave_verify:app``); main.py also mounts it
under /functions.
"""

import json
import logging
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import PaymentVerificationError
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

app = FastAPI(title="flutterwave-verify", docs_url=None, redoc_url=None, openapi_url=None)

def get_http_client() -> Optional[httpx.AsyncClient]:
    """Overridden in tests; None lets the service open its own client"""
    return None

def get_payment_service(
    db: Session = Depends(get_db),
    client: Optional[httpx.AsyncClient] = Depends(get_http_client)
) -> PaymentService:
    return PaymentService(db, client=client)

@app.options("/flutterwave-verify")
async def preflight():
    return PlainTextResponse("ok", headers=CORS_HEADERS)

@app.post("/flutterwave-verify")
async def verify_payment(
    request: Request,
    service: PaymentService = Depends(get_payment_service)
):
    """Verify a transaction and record the gift it paid for"""
    try:
        try:
            payload = await request.json()
        except json.JSONDecodeError:
            raise PaymentVerificationError("Request body must be JSON")
        if not isinstance(payload, dict):
            raise PaymentVerificationError("Request body must be a JSON object")

        payment = await service.verify_and_record(
            payload.get("transaction_id"),
            payload.get("expected_amount"),
        )
    except PaymentVerificationError as e:
        logger.error(f"Verify Function Error: {e.message}")
        return JSONResponse(
            {"success": False, "error": e.message},
            status_code=400,
            headers=CORS_HEADERS
        )

    return JSONResponse(
        {"success": True, "message": "Gift recorded successfully", "data": payment},
        status_code=200,
        headers=CORS_HEADERS
    )
