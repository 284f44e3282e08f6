"""Innocent chat and genuine bank / merchant messages must not be flagged."""

import pytest

from otp_insight.models import RiskLevel

INNOCENT_MESSAGES = [
    "Hi",
    "Just checking in.",
    "Hope you are well.",
    "Let me know if you need anything.",
    "Hello, how are you?",
]

BANK_MESSAGES = [
    ("SBIINB",
     "Your OTP for login to SBI Internet Banking is 482913. Valid for 5 minutes. "
     "Do not share this OTP with anyone."),
    ("HDFCBK",
     "Dear Customer, Rs.2,500.00 has been debited from account **4321 to VPA swiggy@icici "
     "on 12-01-26. UPI payment reference number 401234567890. Not you? Call customer care."),
    ("AMAZON",
     "Your Amazon order #402-1234567 has been processed. Thank you for using Amazon Pay."),
    ("ICICIB",
     "Dear Customer, INR 15,000.00 credited to your account XX123 on 10-Jan via NEFT. "
     "Available balance INR 42,500.00."),
    ("PAYTM",
     "Dear user, your OTP is 771205 for transaction at Zomato. Valid for 10 minutes. "
     "Do not share your OTP."),
]


@pytest.mark.parametrize("text", INNOCENT_MESSAGES)
def test_innocent_chat_is_not_fraud(scorer, text):
    verdict = scorer.score(text)
    assert verdict.is_fraud is False
    assert verdict.adjusted_score <= 0


@pytest.mark.parametrize("sender,text", BANK_MESSAGES)
def test_genuine_bank_messages_are_safe(make_service, sender, text):
    result = make_service().analyze_text(text, sender=sender)
    assert len(result.fraud_verdict.indicators["legitimate"]) >= 2
    assert result.fraud_verdict.indicators["critical"] == []
    assert result.fraud_verdict.is_fraud is False
    assert result.fraud_verdict.confidence >= 0.7
    assert result.risk_level == RiskLevel.SAFE
