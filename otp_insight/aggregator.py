"""
aggregator.py — Risk Aggregation
================================

Combines the four component signals into one RiskLevel. A single, terminal
decision per message with no persisted state:

    1. Sender HIGH_RISK_FORGERY                  → CRITICAL (conclusive)
    2. Scorer fraud with confidence > 0.8        → CRITICAL
    3. Otherwise count concerning factors:
           sender SUSPICIOUS
           scorer fraud
           context suspicious (no recent user activity)
           possible OTP-bombing attack
           PAYMENT_OUT with amount > 10000
       ≥3 → CRITICAL, 2 → HIGH_RISK, 1 → SUSPICIOUS, 0 → SAFE

The result is the supremum of the individual signals, never an average.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

from otp_insight.models import (
    ContentAnalysis,
    ContextFlags,
    FraudVerdict,
    RiskLevel,
    SenderRisk,
    SenderVerdict,
    TransactionDirection,
)

logger = logging.getLogger(__name__)


HIGH_CONFIDENCE_FRAUD: float = 0.8
LARGE_PAYMENT_THRESHOLD: Decimal = Decimal("10000")

RECOMMENDATIONS: Dict[RiskLevel, str] = {
    RiskLevel.SAFE: "Message appears safe to proceed",
    RiskLevel.SUSPICIOUS: "Exercise caution - Verify sender independently",
    RiskLevel.HIGH_RISK: "VERIFY CAREFULLY - Contact your bank/service directly",
    RiskLevel.CRITICAL: "BLOCK IMMEDIATELY - Do not follow any instructions in this message",
}


@dataclass
class RiskAssessment:
    risk_level: RiskLevel
    reasons: List[str] = field(default_factory=list)
    recommendation: str = ""


def level_for_factor_count(count: int) -> RiskLevel:
    if count >= 3:
        return RiskLevel.CRITICAL
    if count == 2:
        return RiskLevel.HIGH_RISK
    if count == 1:
        return RiskLevel.SUSPICIOUS
    return RiskLevel.SAFE


def is_large_outgoing_payment(content: ContentAnalysis) -> bool:
    if content.direction != TransactionDirection.PAYMENT_OUT:
        return False
    amount = content.amount_value
    return amount is not None and amount > LARGE_PAYMENT_THRESHOLD


class RiskAggregator:
    """Pure escalation rules over one message's component verdicts."""

    def aggregate(
        self,
        sender_verdict: SenderVerdict,
        content: ContentAnalysis,
        fraud_verdict: FraudVerdict,
        context_flags: ContextFlags,
    ) -> RiskAssessment:
        if sender_verdict.risk == SenderRisk.HIGH_RISK_FORGERY:
            reasons = ["Sender appears to be forged"]
            if sender_verdict.offending_domain:
                reasons.append(f"Link to untrusted domain {sender_verdict.offending_domain}")
            return self._assessment(RiskLevel.CRITICAL, reasons)

        if fraud_verdict.is_fraud and fraud_verdict.confidence > HIGH_CONFIDENCE_FRAUD:
            return self._assessment(
                RiskLevel.CRITICAL,
                [f"Fraud patterns detected ({fraud_verdict.confidence * 100:.0f}% confidence)"],
            )

        reasons = self._concerning_factors(sender_verdict, content, fraud_verdict, context_flags)
        return self._assessment(level_for_factor_count(len(reasons)), reasons)

    @staticmethod
    def _concerning_factors(
        sender_verdict: SenderVerdict,
        content: ContentAnalysis,
        fraud_verdict: FraudVerdict,
        context_flags: ContextFlags,
    ) -> List[str]:
        reasons: List[str] = []
        if sender_verdict.risk == SenderRisk.SUSPICIOUS:
            reasons.append("Sender could not be verified")
        if fraud_verdict.is_fraud:
            reasons.append("Message content matches fraud patterns")
        if context_flags.context_suspicious:
            reasons.append("OTP arrived without recent app activity")
        if context_flags.possible_attack:
            reasons.append("Unusually many OTPs received in a short time")
        if is_large_outgoing_payment(content):
            reasons.append(f"Large outgoing payment of Rs.{content.amount}")
        return reasons

    @staticmethod
    def _assessment(level: RiskLevel, reasons: List[str]) -> RiskAssessment:
        logger.debug(f"Aggregated risk={level.name} factors={reasons}")
        return RiskAssessment(
            risk_level=level,
            reasons=reasons,
            recommendation=RECOMMENDATIONS[level],
        )
