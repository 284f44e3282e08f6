"""errors.py — Failure conditions surfaced by the analysis pipeline.

Every failure is local to the message being analyzed:
    MalformedInputError  → empty / whitespace-only text, rejected at the boundary
    ModelNotReadyError   → scorer used before its load gate completed
    AnalysisFailedError  → unexpected exception inside a sub-step
    TrustListError       → trust-list file missing or invalid at startup
"""


class OtpInsightError(Exception):
    """Base class for all pipeline errors."""


class MalformedInputError(OtpInsightError, ValueError):
    """Message text is empty or whitespace-only."""


class ModelNotReadyError(OtpInsightError):
    """The fraud scorer was called before load_model() completed."""


class AnalysisFailedError(OtpInsightError):
    """A sub-step raised unexpectedly. Never treat as a safe verdict."""


class TrustListError(OtpInsightError):
    """The trust-list data source could not be loaded."""
