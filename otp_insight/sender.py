"""
sender.py — DLT Header and URL-Domain Sender Verification
==========================================================

Classifies a claimed sender identity against the trust list and a small set
of format heuristics.

Two modes:
    Manual input (sender None / UNKNOWN_APP / MANUAL_INPUT / USER_INPUT):
        Only URLs in the body are inspected.
            shortener domain      → HIGH_RISK_FORGERY
            non-whitelisted domain → SUSPICIOUS (never higher)
            malformed URL          → SUSPICIOUS

    SMS:
        Sender format first:
            bare 10-digit number           → SUSPICIOUS
            header in DLT allow-list       → SAFE
            unlisted 6-char alphanumeric   → SUSPICIOUS
            other unlisted, short-code-ish → HIGH_RISK_FORGERY
            other unlisted                 → SUSPICIOUS
        Then URLs (escalate only):
            shortener domain       → HIGH_RISK_FORGERY
            non-whitelisted domain → HIGH_RISK_FORGERY
            malformed URL          → SUSPICIOUS unless already forgery

In both modes a shortener anywhere in the body outranks every other URL.

A trusted telecom header linking off-network is treated as the most dangerous
signal in the engine. Nothing here raises; a malformed URL is evidence.
"""

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlsplit

from otp_insight.config import TrustList
from otp_insight.models import MANUAL_SENDERS, SenderRisk, SenderVerdict

logger = logging.getLogger(__name__)


URL_PATTERN = re.compile(r'https?://[^\s]+')
TEN_DIGIT_PATTERN = re.compile(r'^\d{10}$')
SIX_ALNUM_PATTERN = re.compile(r'^[A-Z0-9]{6}$', re.IGNORECASE)

# Senders longer than this are unlikely to be a forged telecom header
SHORT_CODE_MAX_LEN: int = 15

# URL classification outcomes
_URL_OK = "ok"
_URL_SHORTENER = "shortener"
_URL_UNLISTED = "unlisted"
_URL_MALFORMED = "malformed"


def extract_urls(text: str) -> List[str]:
    return URL_PATTERN.findall(text or "")


def url_domain(url: str) -> Optional[str]:
    """Lower-cased hostname with a leading 'www.' removed, or None if unparsable."""
    try:
        hostname = urlsplit(url).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    return hostname[4:] if hostname.startswith("www.") else hostname


class SenderVerifier:
    """Verifies a claimed sender against the trust list."""

    def __init__(self, trust_list: TrustList) -> None:
        self._trust = trust_list

    @staticmethod
    def is_manual(sender_id: Optional[str]) -> bool:
        return sender_id is None or sender_id in MANUAL_SENDERS

    def verify(self, sender_id: Optional[str], message_text: str) -> SenderVerdict:
        if self.is_manual(sender_id):
            verdict = self._verify_manual(message_text)
        else:
            verdict = self._verify_sms(sender_id, message_text)

        logger.debug(f"Sender verdict sender={sender_id!r} risk={verdict.risk.value}")
        return verdict

    # ==================== Manual Input ====================

    def _verify_manual(self, message_text: str) -> SenderVerdict:
        verdict = SenderVerdict()
        outcome, domain = self._classify_urls(message_text)
        if outcome == _URL_OK:
            return verdict

        verdict.bad_url_found = True
        verdict.offending_domain = domain
        if outcome == _URL_SHORTENER:
            verdict.risk = SenderRisk.HIGH_RISK_FORGERY
        else:
            # No verified channel: unlisted or malformed links stay SUSPICIOUS
            verdict.risk = SenderRisk.SUSPICIOUS
        return verdict

    # ==================== SMS ====================

    def _verify_sms(self, sender_id: str, message_text: str) -> SenderVerdict:
        verdict = SenderVerdict()

        if TEN_DIGIT_PATTERN.match(sender_id):
            verdict.looks_like_bare_ten_digit_number = True
            verdict.risk = SenderRisk.SUSPICIOUS
        elif sender_id.upper() not in self._trust.dlt_headers:
            if SIX_ALNUM_PATTERN.match(sender_id):
                verdict.unlisted_alphanumeric_code = True
                verdict.risk = SenderRisk.SUSPICIOUS
            else:
                verdict.missing_from_allowlist = True
                if self._looks_like_short_code(sender_id):
                    verdict.risk = SenderRisk.HIGH_RISK_FORGERY
                else:
                    # Probably an app or other non-telecom source
                    verdict.risk = SenderRisk.SUSPICIOUS

        outcome, domain = self._classify_urls(message_text)
        if outcome == _URL_OK:
            return verdict

        verdict.bad_url_found = True
        verdict.offending_domain = domain
        if outcome in (_URL_SHORTENER, _URL_UNLISTED):
            verdict.risk = SenderRisk.HIGH_RISK_FORGERY
        elif verdict.risk != SenderRisk.HIGH_RISK_FORGERY:
            verdict.risk = SenderRisk.SUSPICIOUS
        return verdict

    @staticmethod
    def _looks_like_short_code(sender_id: str) -> bool:
        return (
            len(sender_id) <= SHORT_CODE_MAX_LEN
            and "_" not in sender_id
            and " " not in sender_id
        )

    # ==================== URL Checks ====================

    def _classify_urls(self, message_text: str) -> Tuple[str, Optional[str]]:
        """A shortener anywhere in the text wins. Otherwise report the first
        URL that is malformed or not whitelisted."""
        first_bad: Tuple[str, Optional[str]] = (_URL_OK, None)
        for url in extract_urls(message_text):
            domain = url_domain(url)
            if domain is None:
                outcome = _URL_MALFORMED
            elif domain in self._trust.url_shorteners:
                return _URL_SHORTENER, domain
            elif domain not in self._trust.whitelisted_domains:
                outcome = _URL_UNLISTED
            else:
                continue
            if first_bad[0] == _URL_OK:
                first_bad = (outcome, domain)
        return first_bad
