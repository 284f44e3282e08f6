"""extractor.py — OTP / Amount / Direction / Merchant Extraction
==============================================================

Pulls structured fields out of a message body with pattern matching.
Each rule runs independently; a rule that finds nothing leaves its field
as None. The extractor is pure and total: it never raises, and the same
text always yields the same ContentAnalysis.

    otp_code  → first exactly-6-digit token bounded by word breaks
    amount    → first "Rs." / "INR" amount, thousands separators stripped
    direction → debit/purchase/payment > credit/refund/received > login/verify/otp
    merchant  → first known merchant, case-insensitive substring
"""

import re
from typing import Optional, Tuple

from otp_insight.models import ContentAnalysis, TransactionDirection


class ContentExtractor:
    """Stateless pattern extractor for OTP / transaction messages."""

    OTP_PATTERN = re.compile(r'\b(\d{6})\b')

    # Rs. 20,000.50 / Rs 500 / INR 1,25,000 / rs.99
    AMOUNT_PATTERN = re.compile(r'(?:Rs\.?\s?|INR\s?)([\d,]+(?:\.\d{1,2})?)', re.IGNORECASE)

    # Checked in priority order; first category with any hit wins
    DIRECTION_KEYWORDS: Tuple[Tuple[TransactionDirection, Tuple[str, ...]], ...] = (
        (TransactionDirection.PAYMENT_OUT, ("debit", "purchase", "payment")),
        (TransactionDirection.PAYMENT_IN,  ("credit", "refund", "received")),
        (TransactionDirection.LOGIN,       ("login", "verify", "otp")),
    )

    MERCHANTS: Tuple[str, ...] = (
        "amazon", "flipkart", "swiggy", "zomato", "paytm", "google pay", "phonepe",
    )

    def extract(self, message_text: Optional[str]) -> ContentAnalysis:
        text = message_text or ""
        lowered = text.lower()
        return ContentAnalysis(
            otp_code=self._otp_code(text),
            direction=self._direction(lowered),
            amount=self._amount(text),
            merchant=self._merchant(lowered),
        )

    def _otp_code(self, text: str) -> Optional[str]:
        match = self.OTP_PATTERN.search(text)
        return match.group(1) if match else None

    def _amount(self, text: str) -> Optional[str]:
        match = self.AMOUNT_PATTERN.search(text)
        if not match:
            return None
        amount = match.group(1).replace(",", "")
        # "Rs.," has no digits at all
        return amount if any(ch.isdigit() for ch in amount) else None

    def _direction(self, lowered: str) -> Optional[TransactionDirection]:
        for direction, keywords in self.DIRECTION_KEYWORDS:
            if any(keyword in lowered for keyword in keywords):
                return direction
        return None

    def _merchant(self, lowered: str) -> Optional[str]:
        for merchant in self.MERCHANTS:
            if merchant in lowered:
                return merchant
        return None
