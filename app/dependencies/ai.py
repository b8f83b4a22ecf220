"""
AI gateway dependency wiring.
"""
from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status

from app.services.ai_gateway import AIGatewayClient, AIGatewayError

_ai_client: Optional[AIGatewayClient] = None


def get_ai_client() -> AIGatewayClient:
    """
    Return a singleton gateway client so the concurrency limit is shared across requests.
    """
    global _ai_client
    if _ai_client is None:
        _ai_client = AIGatewayClient()
    return _ai_client


def ai_error_to_http(exc: AIGatewayError) -> HTTPException:
    """Translate a gateway failure into the HTTP error returned to the caller."""
    if exc.status_code == 429:
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
        )
    if exc.status_code == 402:
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail="Payment required. Please add credits to your AI workspace.",
        )
    if exc.status_code == 503:
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=exc.message,
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"AI gateway error: {exc.message}",
    )
