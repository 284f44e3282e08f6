"""
OTP Insight — Core Package
==========================

This package contains all core modules for the SMS/OTP fraud-risk pipeline:
    - aggregator.py : Combines component verdicts into one ordinal risk level
    - config.py     : Environment configuration and trust-list loading
    - context.py    : Thread-safe interaction / OTP-frequency tracker
    - detector.py   : Deterministic heuristic fraud scorer (weighted evidence)
    - errors.py     : Error taxonomy surfaced to callers
    - extractor.py  : OTP code, amount, direction and merchant extraction
    - models.py     : Message and verdict value types
    - notifier.py   : Notification templates and delivery sinks
    - sender.py     : DLT-header and URL-domain sender verification
    - service.py    : The analyze() pipeline tying everything together
    - storage.py    : Optional persistent OTP event log
"""

from otp_insight.errors import (
    AnalysisFailedError,
    MalformedInputError,
    ModelNotReadyError,
    OtpInsightError,
    TrustListError,
)
from otp_insight.models import (
    AnalysisResult,
    ContentAnalysis,
    ContextFlags,
    FraudVerdict,
    Message,
    RiskLevel,
    SenderRisk,
    SenderVerdict,
    TransactionDirection,
)
from otp_insight.service import OtpInsightService

__all__ = [
    "AnalysisFailedError",
    "AnalysisResult",
    "ContentAnalysis",
    "ContextFlags",
    "FraudVerdict",
    "MalformedInputError",
    "Message",
    "ModelNotReadyError",
    "OtpInsightError",
    "OtpInsightService",
    "RiskLevel",
    "SenderRisk",
    "SenderVerdict",
    "TransactionDirection",
    "TrustListError",
]
