"""
service.py — OTP Analysis Pipeline
==================================

OtpInsightService owns one instance of every component and runs the single
core operation, analyze(Message) → AnalysisResult:

    1. Sender verification      (trust list + format heuristics)
    2. Content extraction       (OTP code, amount, direction, merchant)
    3. Heuristic fraud scoring  (refuses to run before initialize())
    4. Context observation      (records this OTP, then reads both flags)
    5. Risk aggregation         (escalation to one RiskLevel + advice)
    6. Persistence              (optional event log)
    7. Notification             (template chosen here, delivered by a sink)

Failure handling:
    - MalformedInputError / ModelNotReadyError propagate unchanged.
    - Anything else becomes AnalysisFailedError, never a safe verdict.
    - A message that fails before or during aggregation is not left in the
      tracker's OTP log.
    - Persistence and notification failures are logged and ignored.
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from otp_insight.aggregator import RiskAggregator
from otp_insight.config import ServiceConfig, TrustList, load_trust_list
from otp_insight.context import ContextTracker
from otp_insight.detector import HeuristicScorer
from otp_insight.errors import AnalysisFailedError, OtpInsightError
from otp_insight.extractor import ContentExtractor
from otp_insight.models import AnalysisResult, ContextFlags, Message, RiskLevel
from otp_insight.notifier import (
    LoggingNotificationSink,
    NotificationSink,
    WebhookNotificationSink,
    build_notification,
)
from otp_insight.sender import SenderVerifier
from otp_insight.storage import EventLog, JsonFileEventLog, NullEventLog

logger = logging.getLogger(__name__)


class OtpInsightService:
    """Runs the analysis pipeline over caller-owned components."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        trust_list: Optional[TrustList] = None,
        tracker: Optional[ContextTracker] = None,
        scorer: Optional[HeuristicScorer] = None,
        sink: Optional[NotificationSink] = None,
        event_log: Optional[EventLog] = None,
    ) -> None:
        self.config = config or ServiceConfig()
        self.trust_list = trust_list or load_trust_list(self.config.trust_list_path)

        self.verifier = SenderVerifier(self.trust_list)
        self.extractor = ContentExtractor()
        self.scorer = scorer or HeuristicScorer()
        self.aggregator = RiskAggregator()
        self.tracker = tracker or ContextTracker()

        if sink is None:
            if self.config.webhook_url:
                sink = WebhookNotificationSink(self.config.webhook_url)
            else:
                sink = LoggingNotificationSink()
        self.sink = sink

        if event_log is None:
            if self.config.enable_persistence:
                event_log = JsonFileEventLog(self.config.event_log_path)
            else:
                event_log = NullEventLog()
        self.event_log = event_log

        self._initialized = False
        self._init_lock = asyncio.Lock()
        self._stats_lock = threading.Lock()
        self._counts: Dict[RiskLevel, int] = {level: 0 for level in RiskLevel}
        self._failed = 0

    # ==================== Lifecycle ====================

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Load the scorer and restore tracker state. Safe to call repeatedly."""
        await self.scorer.load_model()
        if self._initialized:
            return
        async with self._init_lock:
            if self._initialized:
                return

            if self.config.enable_context_rules:
                since = self.tracker.now() - self.tracker.retention
                events = self._safely("load OTP events", self.event_log.load_otp_events, since) or []
                last = self._safely("load last interaction", self.event_log.load_last_interaction)
                if events or last:
                    self.tracker.restore(events, last)

            self._initialized = True
            logger.info("OTP Insight service initialized")

    # ==================== Core Operation ====================

    def analyze(self, message: Message, send_notification: bool = True) -> AnalysisResult:
        recorded = False
        try:
            sender_verdict = self.verifier.verify(message.sender, message.text)
            content = self.extractor.extract(message.text)
            sender_hint = None if message.is_manual else message.sender
            fraud_verdict = self.scorer.score(message.text, sender_hint=sender_hint)

            if self.config.enable_context_rules:
                context_flags = self.tracker.observe(message.arrival_time)
                recorded = True
            else:
                context_flags = ContextFlags()

            assessment = self.aggregator.aggregate(
                sender_verdict, content, fraud_verdict, context_flags
            )
        except OtpInsightError:
            self._rollback(message, recorded)
            raise
        except Exception as exc:
            self._rollback(message, recorded)
            logger.error(f"Analysis failed: {exc}", exc_info=True)
            raise AnalysisFailedError(f"Analysis failed: {exc}") from exc

        result = AnalysisResult(
            message=message,
            risk_level=assessment.risk_level,
            sender_verdict=sender_verdict,
            content_analysis=content,
            fraud_verdict=fraud_verdict,
            context_flags=context_flags,
            recommendation=assessment.recommendation,
            reasons=assessment.reasons,
        )
        result.notification = build_notification(
            result.risk_level, sender_verdict, content, result.reasons, sender=message.sender
        )

        with self._stats_lock:
            self._counts[result.risk_level] += 1

        logger.info(
            f"Analyzed message sender={message.sender or 'manual'} "
            f"risk={result.risk_level.name} sender_risk={sender_verdict.risk.value} "
            f"fraud={fraud_verdict.is_fraud} confidence={fraud_verdict.confidence:.2f}"
        )

        if recorded:
            self._persist_otp_event(message.arrival_time)
        if send_notification:
            self._notify(result)
        return result

    def analyze_text(
        self,
        text: Optional[str],
        sender: Optional[str] = None,
        arrival_time: Optional[datetime] = None,
    ) -> AnalysisResult:
        return self.analyze(Message.create(text, sender=sender, arrival_time=arrival_time))

    def _rollback(self, message: Message, recorded: bool) -> None:
        with self._stats_lock:
            self._failed += 1
        if recorded:
            self.tracker.forget_otp_event(message.arrival_time)

    # ==================== Side Effects ====================

    def _persist_otp_event(self, ts: datetime) -> None:
        self._safely("save OTP event", self.event_log.save_otp_event, ts)
        cutoff = ts - self.tracker.retention
        self._safely("prune OTP events", self.event_log.delete_otp_events_before, cutoff)

    def _notify(self, result: AnalysisResult) -> None:
        if not self.config.enable_notifications or result.notification is None:
            return
        if result.risk_level == RiskLevel.SAFE and not self.config.notify_safe:
            return
        self._safely("deliver notification", self.sink.deliver, result.notification)

    @staticmethod
    def _safely(action: str, func, *args):
        try:
            return func(*args)
        except Exception as exc:
            logger.warning(f"Failed to {action}: {exc}")
            return None

    # ==================== Interaction / Stats ====================

    def record_interaction(self, now: Optional[datetime] = None) -> datetime:
        ts = self.tracker.record_interaction(now)
        self._safely("save last interaction", self.event_log.save_last_interaction, ts)
        return ts

    def statistics(self) -> Dict[str, Any]:
        with self._stats_lock:
            by_level = {level.name: count for level, count in self._counts.items()}
            failed = self._failed
        return {
            "totalAnalyzed": sum(by_level.values()),
            "failed": failed,
            "byRiskLevel": by_level,
            "recentOtpEvents": len(self.tracker.otp_events()),
        }

    def clear_data(self) -> None:
        self.tracker.reset()
        with self._stats_lock:
            self._counts = {level: 0 for level in RiskLevel}
            self._failed = 0
        self._safely("clear event log", self.event_log.clear)
        logger.info("All analysis data cleared")

    def status(self) -> Dict[str, Any]:
        return {
            "initialized": self._initialized,
            "model": self.scorer.model_info(),
            "features": {
                "contextRules": self.config.enable_context_rules,
                "notifications": self.config.enable_notifications,
                "notifySafe": self.config.notify_safe,
                "persistence": self.config.enable_persistence,
            },
            "trustList": {
                "dltHeaders": len(self.trust_list.dlt_headers),
                "whitelistedDomains": len(self.trust_list.whitelisted_domains),
                "urlShorteners": len(self.trust_list.url_shorteners),
            },
        }
