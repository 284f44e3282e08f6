"""x-api-key header authentication for the OTP Insight routes.

The expected key is read from API_KEY on every request so a rotated key
takes effect without a restart.
"""

import os
import secrets

from dotenv import load_dotenv
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

load_dotenv()

API_KEY_NAME = "x-api-key"
DEFAULT_API_KEY = "otp-insight-dev-key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


def expected_api_key() -> str:
    return os.getenv("API_KEY") or DEFAULT_API_KEY


async def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """401 when the header is absent or does not match."""
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing API key. Please provide the '{API_KEY_NAME}' header.",
        )

    if not secrets.compare_digest(api_key, expected_api_key()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key.",
        )

    return api_key
