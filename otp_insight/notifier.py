"""
notifier.py — Notification Templates and Delivery Sinks
=======================================================

Selects one of four templates for an analysed message and fills its
parameters. Rendering and delivery belong to a NotificationSink.

Template selection (first match wins):
    sender HIGH_RISK_FORGERY                       → forgery_warning
    risk ≥ SUSPICIOUS, PAYMENT_OUT with an amount  → payment_alert
    risk ≥ SUSPICIOUS                              → suspicious (with reason)
    otherwise                                      → standard

Sinks:
    LoggingNotificationSink  — writes the notification to the log (default)
    WebhookNotificationSink  — POSTs JSON with bounded retries (1s, 2s, 4s)

A sink failure is logged and never fails the analysis that produced it.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Protocol

import requests

from otp_insight.models import (
    ContentAnalysis,
    Notification,
    RiskLevel,
    SenderRisk,
    SenderVerdict,
    TransactionDirection,
)

logger = logging.getLogger(__name__)


TEMPLATE_STANDARD = "standard"
TEMPLATE_SUSPICIOUS = "suspicious"
TEMPLATE_PAYMENT_ALERT = "payment_alert"
TEMPLATE_FORGERY_WARNING = "forgery_warning"

# Retry configuration for webhook delivery
MAX_RETRIES: int = 3
RETRY_DELAYS: tuple = (1, 2, 4)
WEBHOOK_TIMEOUT_SECONDS: int = 15


# ═══════════════════════════════════════════════════════════════════════
# TEMPLATES
# ═══════════════════════════════════════════════════════════════════════

def forgery_warning() -> Notification:
    return Notification(
        template=TEMPLATE_FORGERY_WARNING,
        title="⚠️ SENDER WARNING!",
        body="This message appears to be a forgery. Do NOT trust this OTP.",
        priority="high",
        sound=True,
    )


def payment_alert(amount: str) -> Notification:
    return Notification(
        template=TEMPLATE_PAYMENT_ALERT,
        title="🚨 PAYMENT ALERT!",
        body=f"This OTP will authorize a PAYMENT of ₹{amount}.",
        priority="high",
        sound=True,
    )


def suspicious(reason: str) -> Notification:
    return Notification(
        template=TEMPLATE_SUSPICIOUS,
        title="⚠️ Suspicious OTP detected.",
        body=f"Reason: {reason}.",
        priority="high",
        sound=True,
    )


def standard() -> Notification:
    return Notification(
        template=TEMPLATE_STANDARD,
        title="🔒 OTP Insight: Standard Code",
        body="This appears to be a standard login/verification code.",
        priority="default",
        sound=False,
    )


def build_notification(
    risk_level: RiskLevel,
    sender_verdict: SenderVerdict,
    content: ContentAnalysis,
    reasons: List[str],
    sender: Optional[str] = None,
) -> Notification:
    """Pick and fill the template for one analysed message."""
    if sender_verdict.risk == SenderRisk.HIGH_RISK_FORGERY:
        notification = forgery_warning()
    elif (
        risk_level >= RiskLevel.SUSPICIOUS
        and content.direction == TransactionDirection.PAYMENT_OUT
        and content.amount
    ):
        notification = payment_alert(content.amount)
    elif risk_level >= RiskLevel.SUSPICIOUS:
        reason = "; ".join(reasons) if reasons else "Unverified message"
        notification = suspicious(reason)
    else:
        notification = standard()

    notification.data.update({
        "riskLevel": risk_level.name,
        "otpCode": content.otp_code,
        "amount": content.amount,
        "merchant": content.merchant,
        "sender": sender,
    })
    return notification


# ═══════════════════════════════════════════════════════════════════════
# SINKS
# ═══════════════════════════════════════════════════════════════════════

class NotificationSink(Protocol):
    def deliver(self, notification: Notification) -> bool:
        ...


class LoggingNotificationSink:
    """Writes notifications to the application log."""

    def deliver(self, notification: Notification) -> bool:
        logger.info(
            f"NOTIFICATION [{notification.template}] {notification.title} "
            f"{notification.body} (priority={notification.priority})"
        )
        return True


class WebhookNotificationSink:
    """POSTs notifications as JSON with exponential-backoff retry.

    With background=True (the default) delivery runs on a daemon thread and
    deliver() returns immediately.
    """

    def __init__(
        self,
        url: str,
        timeout: int = WEBHOOK_TIMEOUT_SECONDS,
        background: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        on_failure: Optional[Callable[[Notification], None]] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self.background = background
        self._sleep = sleep
        self._on_failure = on_failure

    def deliver(self, notification: Notification) -> bool:
        if not self.background:
            return self._send_with_retry(notification)

        thread = threading.Thread(
            target=self._send_with_retry, args=(notification,), daemon=True
        )
        thread.start()
        return True

    def _send_with_retry(self, notification: Notification) -> bool:
        for attempt in range(MAX_RETRIES):
            if self._do_send(notification):
                return True
            if attempt < MAX_RETRIES - 1:
                delay = RETRY_DELAYS[attempt]
                logger.info(f"Notification retry {attempt + 1} in {delay}s")
                self._sleep(delay)

        logger.error(f"Notification delivery failed after {MAX_RETRIES} attempts")
        if self._on_failure:
            self._on_failure(notification)
        return False

    def _do_send(self, notification: Notification) -> bool:
        """Single POST. True on 2xx."""
        try:
            response = requests.post(
                self.url,
                json=notification.as_dict(),
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        except requests.exceptions.Timeout:
            logger.warning(f"Notification webhook timed out ({self.url})")
            return False
        except requests.exceptions.RequestException as exc:
            logger.warning(f"Notification webhook network error: {exc}")
            return False

        if response.status_code in (200, 201, 202, 204):
            logger.info(f"Notification accepted ({response.status_code})")
            return True

        logger.warning(
            f"Notification rejected: {response.status_code} {response.text[:200]}"
        )
        return False
