"""Heuristic fraud scorer: step ordering, escalation and confidence."""

import asyncio

import pytest

from otp_insight.detector import (
    FRAUD_THRESHOLD,
    MODEL_VERSION,
    SAFE_CONVERSATION_FLAG,
    VERIFIED_SENDER_FLAG,
    HeuristicScorer,
    confidence_for,
    split_tagged_message,
)
from otp_insight.errors import ModelNotReadyError


LEGIT_BANK_TEXT = (
    "Dear Customer, your account ending 1234 has been credited with Rs.5000 on 15-Jan. "
    "Available balance: Rs.25000. Do not share your OTP with anyone."
)


# ==================== Load gate ====================

def test_score_before_load_raises():
    with pytest.raises(ModelNotReadyError):
        HeuristicScorer().score("hello")


def test_load_is_idempotent_under_concurrency():
    class CountingScorer(HeuristicScorer):
        compiles = 0

        def _compile_patterns(self):
            CountingScorer.compiles += 1
            super()._compile_patterns()

    scorer = CountingScorer()

    async def _load_many():
        await asyncio.gather(*(scorer.load_model() for _ in range(5)))
        await scorer.load_model()

    asyncio.run(_load_many())
    assert scorer.is_loaded
    assert CountingScorer.compiles == 1


def test_model_info(scorer):
    info = scorer.model_info()
    assert info["version"] == MODEL_VERSION
    assert info["isLoaded"] is True


# ==================== Legitimate suppression ====================

def test_trusted_bank_message_is_safe_with_high_confidence(scorer):
    verdict = scorer.score(LEGIT_BANK_TEXT, sender_hint="SBIINB")
    assert verdict.is_fraud is False
    assert verdict.adjusted_score == -1.0
    assert verdict.confidence == 0.9
    assert VERIFIED_SENDER_FLAG in verdict.indicators["legitimate"]
    assert "SAFE" in verdict.details


def test_official_sender_prefix_match(scorer):
    verdict = scorer.score("Some update for you", sender_hint="hdfcbank-alerts")
    assert VERIFIED_SENDER_FLAG in verdict.indicators["legitimate"]


@pytest.mark.parametrize("text", ["Hi", "ok", "Hello, how are you?", "thanks a lot", "good morning"])
def test_conversational_text_short_circuits(scorer, text):
    verdict = scorer.score(text)
    assert verdict.is_fraud is False
    assert verdict.adjusted_score == -1.0
    assert verdict.indicators["legitimate"] == [SAFE_CONVERSATION_FLAG]
    assert "conversational" in verdict.details


def test_tagged_message_supplies_sender(scorer):
    verdict = scorer.score("FROM: HDFCBANK\nMESSAGE: Your OTP is 482913. Valid for 5 minutes.")
    assert VERIFIED_SENDER_FLAG in verdict.indicators["legitimate"]
    assert verdict.is_fraud is False


def test_split_tagged_message():
    assert split_tagged_message("FROM: X\nMESSAGE: body") == ("X", "body")
    assert split_tagged_message("plain body") == (None, "plain body")


# ==================== Fraud escalation ====================

def test_multiple_critical_phrases_with_shortener_is_fraud(scorer):
    verdict = scorer.score(
        "URGENT ACTION REQUIRED: account suspended. Verify immediately at http://bit.ly/abc123"
    )
    assert verdict.is_fraud is True
    assert verdict.adjusted_score == 1.0
    assert len(verdict.indicators["critical"]) >= 2
    assert verdict.indicators["url"]
    assert "FRAUD" in verdict.details


def test_government_refund_archetype(scorer):
    verdict = scorer.score("IRS notice: tax refund approved. Click here now to receive it")
    assert verdict.is_fraud is True
    assert "tax refund approved" in verdict.indicators["critical"]


def test_arrest_bail_archetype(scorer):
    verdict = scorer.score("Police here. Your son arrested today, bail money required immediately")
    assert verdict.is_fraud is True


def test_single_critical_phrase_is_not_fraud(scorer):
    verdict = scorer.score("This is the final warning about your library books due next week")
    assert verdict.indicators["critical"] == ["final warning"]
    assert verdict.is_fraud is False
    assert verdict.adjusted_score == pytest.approx(0.4)


def test_compound_pattern_skipped_in_legitimate_context(scorer):
    loose = scorer.score("urgent: we need you to verify your account details today or it will close")
    banking = scorer.score(
        "Dear customer, urgent: we need you to verify your account via internet banking"
    )
    assert loose.indicators["suspicious"]
    assert not banking.indicators["suspicious"]


def test_stylistic_signals_alone_are_not_fraud(scorer):
    verdict = scorer.score("WIN BIG TODAY!!!! CALL US FOR DETAILS ABOUT THIS OFFER TONIGHT")
    assert verdict.is_fraud is False
    assert 0 < verdict.adjusted_score <= 0.3


def test_large_amount_with_urgency_flagged(scorer):
    verdict = scorer.score("Transfer to this account the sum of $5000 before noon")
    assert "large_amount_request" in verdict.indicators["suspicious"]


# ==================== Confidence orientation ====================

def test_fraud_threshold_is_exclusive():
    assert FRAUD_THRESHOLD == 0.8
    assert confidence_for(0.8, False) == pytest.approx(0.3)


def test_safe_confidence_rises_as_score_falls():
    scores = [s / 100.0 for s in range(80, -101, -5)]
    confidences = [confidence_for(s, False) for s in scores]
    assert confidences == sorted(confidences)
    assert confidences[-1] == 0.9
    assert all(0.0 <= c <= 1.0 for c in confidences)


def test_fraud_confidence_tracks_score():
    assert confidence_for(0.95, True) == 0.95
    assert confidence_for(1.0, True) == 1.0
