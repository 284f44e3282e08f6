"""Pydantic request/response models for the OTP Insight API."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_timestamp(value: Union[str, int, float, datetime, None]) -> Optional[datetime]:
    """Accept ISO-8601 strings or epoch seconds / milliseconds."""
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Mobile clients send Date.now() milliseconds
        try:
            seconds = value / 1000.0 if value > 1e11 else float(value)
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise ValueError(f"Epoch timestamp out of range: {value}") from exc
    text = str(value).strip()
    if not text:
        return None
    if text.isdigit():
        return parse_timestamp(int(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class AnalyzeRequest(BaseModel):
    """Incoming payload on POST /analyze."""

    model_config = ConfigDict(extra="ignore")

    text: str = Field(...)
    sender: Optional[str] = Field(default=None)
    timestamp: Optional[datetime] = Field(default=None)
    sendNotification: bool = Field(default=True)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        """Clients send either epoch ints or ISO strings."""
        return parse_timestamp(value)


class InteractionRequest(BaseModel):
    """Payload on POST /interaction. An empty body means 'now'."""

    model_config = ConfigDict(extra="ignore")

    timestamp: Optional[datetime] = Field(default=None)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        return parse_timestamp(value)


class AnalyzeResponse(BaseModel):
    """Verdict returned to the caller."""

    status: str = Field(default="success")
    riskLevel: str
    recommendation: str
    reasons: list = Field(default_factory=list)
    senderVerdict: Dict[str, Any]
    contentAnalysis: Dict[str, Any]
    fraudVerdict: Dict[str, Any]
    contextFlags: Dict[str, bool]
    notification: Optional[Dict[str, Any]] = None
    arrivalTime: str


class ErrorResponse(BaseModel):
    """Body of every non-validation error response."""

    status: str = Field(default="error")
    message: str
