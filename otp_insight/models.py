"""
models.py — Message and Verdict Value Types
============================================

Value objects flowing through the analysis pipeline:

    Message → SenderVerdict + ContentAnalysis + FraudVerdict + ContextFlags
            → RiskLevel + recommendation → AnalysisResult

Design decisions:
    - Message is frozen; each analysis pass is a pure function of a Message
      plus the current tracker state.
    - Every verdict is produced fresh per message and never persisted.
    - RiskLevel is an ordered enum so escalation can use max().
    - ContentAnalysis fields are independently optional: None means
      "not detected", never "detected as false".
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

from otp_insight.errors import MalformedInputError


# Sender values meaning "not an SMS, a manual/app-originated analysis request".
MANUAL_SENDERS = frozenset(["UNKNOWN_APP", "MANUAL_INPUT", "USER_INPUT"])


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# INPUT
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Message:
    """An incoming or manually-entered message.

    Attributes:
        text:         Message body, already stripped. Never empty.
        sender:       Claimed sender id (DLT header, phone number...).
                      None means manual-input mode.
        arrival_time: When the message arrived (timezone-aware UTC).
    """
    text: str
    sender: Optional[str] = None
    arrival_time: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        # Empty or whitespace-only text fails fast, however the Message is built
        if self.text is None or not str(self.text).strip():
            raise MalformedInputError("Message text cannot be empty.")
        object.__setattr__(self, "text", str(self.text).strip())
        if self.sender is not None:
            object.__setattr__(self, "sender", str(self.sender).strip() or None)
        if self.arrival_time.tzinfo is None:
            object.__setattr__(self, "arrival_time", self.arrival_time.replace(tzinfo=timezone.utc))

    @classmethod
    def create(
        cls,
        text: Optional[str],
        sender: Optional[str] = None,
        arrival_time: Optional[datetime] = None,
    ) -> "Message":
        """Build a Message, defaulting arrival_time to now."""
        return cls(text=text, sender=sender, arrival_time=arrival_time or utc_now())

    @property
    def is_manual(self) -> bool:
        return self.sender is None or self.sender in MANUAL_SENDERS


# ═══════════════════════════════════════════════════════════════════════
# COMPONENT VERDICTS
# ═══════════════════════════════════════════════════════════════════════

class SenderRisk(str, Enum):
    SAFE = "SAFE"
    SUSPICIOUS = "SUSPICIOUS"
    HIGH_RISK_FORGERY = "HIGH_RISK_FORGERY"


@dataclass
class SenderVerdict:
    """Sender check outcome. Exactly one risk bucket; flags combine freely."""
    risk: SenderRisk = SenderRisk.SAFE
    missing_from_allowlist: bool = False
    bad_url_found: bool = False
    looks_like_bare_ten_digit_number: bool = False
    unlisted_alphanumeric_code: bool = False
    offending_domain: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "risk": self.risk.value,
            "details": {
                "missingFromAllowlist": self.missing_from_allowlist,
                "badUrlFound": self.bad_url_found,
                "looksLikeBareTenDigitNumber": self.looks_like_bare_ten_digit_number,
                "unlistedAlphanumericCode": self.unlisted_alphanumeric_code,
            },
            "offendingDomain": self.offending_domain,
        }


class TransactionDirection(str, Enum):
    PAYMENT_OUT = "PAYMENT_OUT"
    PAYMENT_IN = "PAYMENT_IN"
    LOGIN = "LOGIN"


@dataclass(frozen=True)
class ContentAnalysis:
    """Structured fields pulled from the message body."""
    otp_code: Optional[str] = None
    direction: Optional[TransactionDirection] = None
    amount: Optional[str] = None          # digits, separators stripped ("20000")
    merchant: Optional[str] = None

    @property
    def amount_value(self) -> Optional[Decimal]:
        if self.amount is None:
            return None
        try:
            return Decimal(self.amount)
        except InvalidOperation:
            return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "otpCode": self.otp_code,
            "direction": self.direction.value if self.direction else None,
            "amount": self.amount,
            "merchant": self.merchant,
        }


@dataclass
class FraudVerdict:
    """Heuristic scorer output.

    confidence is always certainty in the *stated* verdict: a safe verdict
    with confidence 0.9 means 90% sure the message is safe.
    """
    is_fraud: bool
    confidence: float
    details: str = ""
    adjusted_score: float = 0.0
    indicators: Dict[str, List[str]] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "isFraud": self.is_fraud,
            "confidence": round(self.confidence, 4),
            "details": self.details,
            "adjustedScore": round(self.adjusted_score, 4),
        }


@dataclass(frozen=True)
class ContextFlags:
    context_suspicious: bool = False
    possible_attack: bool = False

    def as_dict(self) -> Dict[str, bool]:
        return {
            "contextSuspicious": self.context_suspicious,
            "possibleAttack": self.possible_attack,
        }


class RiskLevel(IntEnum):
    """Ordinal severity. Aggregation escalates, never de-escalates."""
    SAFE = 0
    SUSPICIOUS = 1
    HIGH_RISK = 2
    CRITICAL = 3


# ═══════════════════════════════════════════════════════════════════════
# OUTPUT
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Notification:
    """A filled notification template. Rendering and delivery happen outside."""
    template: str            # standard | suspicious | payment_alert | forgery_warning
    title: str
    body: str
    priority: str = "default"
    sound: bool = False
    data: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "template": self.template,
            "title": self.title,
            "body": self.body,
            "priority": self.priority,
            "sound": self.sound,
            "data": dict(self.data),
        }


@dataclass
class AnalysisResult:
    """Everything analyze() hands back to its caller."""
    message: Message
    risk_level: RiskLevel
    sender_verdict: SenderVerdict
    content_analysis: ContentAnalysis
    fraud_verdict: FraudVerdict
    context_flags: ContextFlags
    recommendation: str
    reasons: List[str] = field(default_factory=list)
    notification: Optional[Notification] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "riskLevel": self.risk_level.name,
            "recommendation": self.recommendation,
            "reasons": list(self.reasons),
            "senderVerdict": self.sender_verdict.as_dict(),
            "contentAnalysis": self.content_analysis.as_dict(),
            "fraudVerdict": self.fraud_verdict.as_dict(),
            "contextFlags": self.context_flags.as_dict(),
            "notification": self.notification.as_dict() if self.notification else None,
            "arrivalTime": self.message.arrival_time.isoformat(),
        }
