"""Notification template selection and delivery sinks."""

import pytest
import requests

from otp_insight import notifier
from otp_insight.models import (
    ContentAnalysis,
    RiskLevel,
    SenderRisk,
    SenderVerdict,
    TransactionDirection,
)
from otp_insight.notifier import (
    LoggingNotificationSink,
    WebhookNotificationSink,
    build_notification,
    standard,
)

PAYMENT = ContentAnalysis(
    otp_code="123456", direction=TransactionDirection.PAYMENT_OUT, amount="25000"
)


# ==================== Template selection ====================

def test_forgery_wins_over_everything():
    n = build_notification(
        RiskLevel.CRITICAL, SenderVerdict(risk=SenderRisk.HIGH_RISK_FORGERY), PAYMENT, []
    )
    assert n.template == "forgery_warning"
    assert n.title == "⚠️ SENDER WARNING!"
    assert n.priority == "high"


def test_risky_payment_gets_payment_alert():
    n = build_notification(RiskLevel.SUSPICIOUS, SenderVerdict(), PAYMENT, ["x"])
    assert n.template == "payment_alert"
    assert n.body == "This OTP will authorize a PAYMENT of ₹25000."
    assert n.data["otpCode"] == "123456"


def test_risky_non_payment_gets_reason():
    n = build_notification(
        RiskLevel.HIGH_RISK,
        SenderVerdict(risk=SenderRisk.SUSPICIOUS),
        ContentAnalysis(),
        ["Sender could not be verified", "Unusually many OTPs received in a short time"],
    )
    assert n.template == "suspicious"
    assert "Sender could not be verified" in n.body
    assert n.data["riskLevel"] == "HIGH_RISK"


def test_safe_payment_gets_standard():
    n = build_notification(RiskLevel.SAFE, SenderVerdict(), PAYMENT, [], sender="HDFCBK")
    assert n.template == "standard"
    assert n.sound is False
    assert n.data["sender"] == "HDFCBK"


def test_template_instances_are_independent():
    first = standard()
    first.data["x"] = 1
    assert standard().data == {}


def test_logging_sink_accepts(caplog):
    caplog.set_level("INFO", logger="otp_insight.notifier")
    assert LoggingNotificationSink().deliver(standard()) is True
    assert "NOTIFICATION [standard]" in caplog.text


# ==================== Webhook sink ====================

class _Response:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_webhook_posts_json(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None, headers=None):
        calls.append((url, json, timeout))
        return _Response(200)

    monkeypatch.setattr(notifier.requests, "post", fake_post)
    sink = WebhookNotificationSink("https://hooks.example/otp", background=False)
    assert sink.deliver(standard()) is True
    assert calls[0][0] == "https://hooks.example/otp"
    assert calls[0][1]["template"] == "standard"
    assert calls[0][2] == notifier.WEBHOOK_TIMEOUT_SECONDS


def test_webhook_retries_with_backoff(monkeypatch):
    responses = [_Response(500, "boom"), _Response(503), _Response(201)]
    monkeypatch.setattr(notifier.requests, "post", lambda *a, **kw: responses.pop(0))
    sleeps = []
    sink = WebhookNotificationSink("https://hooks.example", background=False, sleep=sleeps.append)
    assert sink.deliver(standard()) is True
    assert sleeps == [1, 2]


@pytest.mark.parametrize("exc", [requests.exceptions.Timeout, requests.exceptions.ConnectionError])
def test_webhook_gives_up_after_max_retries(monkeypatch, exc):
    attempts = []

    def failing_post(*args, **kwargs):
        attempts.append(1)
        raise exc("down")

    failed = []
    monkeypatch.setattr(notifier.requests, "post", failing_post)
    sink = WebhookNotificationSink(
        "https://hooks.example",
        background=False,
        sleep=lambda _: None,
        on_failure=failed.append,
    )
    assert sink.deliver(standard()) is False
    assert len(attempts) == notifier.MAX_RETRIES
    assert len(failed) == 1
