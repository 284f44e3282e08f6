"""
detector.py — Heuristic Fraud Scoring Engine
=============================================

A deterministic weighted-evidence accumulator that turns message text (and
an optional sender hint) into a FraudVerdict. It is a hand-tuned rule
engine, not a trained model, and its step order is significant: reordering
changes outcomes on boundary cases.

Scoring pipeline (score lives on [-1, 1]):
    1. Verified official sender hint          → -1.0
    2. Short safe conversational text         → -0.5 and stop
    3. Legitimate banking phrases             → -0.8 (2+) / -0.4 (1)
    4. Risk vocabularies, halved in legitimate context:
         critical phrases       +0.30 / +0.15 each
         compound patterns      +0.15 each (skipped in legitimate context)
         suspicious URLs        +0.25 / +0.10 each
         large amount + urgency +0.20 each
    5. Stylistic heuristics (caps, "!!!!", long+urgent, currency spam),
       reduced 70% in legitimate context, capped at 0.3
    6. Escalation pass on the clamped score:
         legitimate context, no critical phrase  -0.6
         2+ critical with URL/suspicious flag     +0.5
         2+ critical alone                        +0.3
         exactly one critical                     +0.1
         URL + suspicious + any critical          +0.3, else URL alone +0.1
         government-refund phrasing               +0.3
         arrest / bail phrasing                   +0.4
    7. is_fraud when the adjusted score exceeds 0.8
    8. Confidence oriented toward the stated verdict

Initialisation:
    load_model() is an idempotent async gate that compiles the pattern
    tables. score() refuses to run (ModelNotReadyError) until it completes.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from otp_insight.errors import ModelNotReadyError
from otp_insight.models import FraudVerdict

logger = logging.getLogger(__name__)


MODEL_VERSION: str = "heuristic-v2.2"

# Verdict threshold on the adjusted [-1, 1] score
FRAUD_THRESHOLD: float = 0.8

# Conversational messages must be shorter than this to short-circuit
SAFE_MESSAGE_MAX_LEN: int = 50

# Flag recorded for a verified sender hint
VERIFIED_SENDER_FLAG: str = "verified_official_sender"
SAFE_CONVERSATION_FLAG: str = "safe_conversational_message"
LEGITIMATE_PATTERN_FLAG: str = "legitimate_banking_pattern"
LARGE_AMOUNT_FLAG: str = "large_amount_request"


# ═══════════════════════════════════════════════════════════════════════
# VOCABULARIES
# ═══════════════════════════════════════════════════════════════════════

# Bank / merchant sender codes trusted by the scorer (prefix match)
OFFICIAL_SENDERS: Tuple[str, ...] = (
    "SBIINB", "HDFCBANK", "ICICIBANK", "AXISBANK", "PNBINB", "UBIBANK",
    "CANBNK", "BOBBANK", "UNIONBNK", "INDIANBK", "KOTAKBNK", "YESBANK",
    "AMAZON", "FLIPKART", "PAYTM", "PHONEPE", "GPAY", "BHARATPE",
    "SWIGGY", "ZOMATO", "UBEREATS", "OLA", "UBER", "MAKEMYTRIP",
    "IRCTC", "BSNL", "AIRTEL", "JIO", "VODAFONE", "TATA", "ADANI",
)

# Exact phrases, matched on lower-cased text
CRITICAL_PHRASES: Tuple[str, ...] = (
    # urgency
    "urgent action required", "account suspended", "verify immediately",
    "click here now", "act now or lose", "limited time offer",
    "final warning", "emergency payment",
    "account has been blocked", "account will be blocked", "kyc has expired",
    # lottery / prize
    "congratulations you won", "lottery winner", "claim your prize",
    "you won lottery", "prize of $", "won $", "claim prize",
    # government refund
    "tax refund approved", "government refund", "irs notice",
    "customs clearance fee",
    # advance-fee / payment rails
    "inheritance fund", "million dollars", "wire transfer required",
    "bitcoin payment", "western union",
    # legal / arrest
    "legal action", "arrest warrant", "your son arrested", "bail money required",
)

GOVERNMENT_SCAM_PHRASES = frozenset(["government refund", "irs notice", "tax refund approved"])
EMERGENCY_SCAM_PHRASES = frozenset(["your son arrested", "bail money required", "arrest warrant"])

# Compound patterns, only scored without legitimate context
SUSPICIOUS_PATTERNS: Tuple[str, ...] = (
    r'urgent.*verify.*account',
    r'suspended.*click.*link',
    r'winner.*claim.*prize',
    r'government.*refund.*\$\d+',
    r'arrested.*pay.*bail',
    r'block.*account.*verify',
)

# Strong positive indicators of a genuine bank / service message
LEGITIMATE_PATTERNS: Tuple[str, ...] = (
    r'dear (customer|user|member)',
    r'your otp (is|for)',
    r'valid for \d+ (minutes|mins|hours)',
    r'do not share (this|your|otp)',
    r'transaction (at|on|for|with)',
    r'payment.*successful',
    r'has been processed',
    r'thank you for using',
    r'reference number',
    r'transaction id',
    r'account balance',
    r'bill payment',
    r'debit.*credit card',
    r'credited.*account',
    r'debited.*account',
    r'balance.*rs\.?\s*\d+',
    r'available.*balance',
    r'mini.*statement',
    r'last.*transaction',
    r'transferred.*successfully',
    r'upi.*payment',
    r'neft.*rtgs',
    r'mobile.*banking',
    r'internet.*banking',
    r'atm.*transaction',
    r'card.*transaction',
    r'ifsc.*code',
    r'beneficiary.*added',
    r'standing.*instruction',
    r'fixed.*deposit',
    r'recurring.*deposit',
    r'loan.*payment',
    r'emi.*due',
    r'kyc.*verification',
    r'customer.*care',
    r'toll.*free',
    r'branch.*visit',
    r'account.*statement',
    r'cheque.*book',
)

# Greetings and acknowledgements
SAFE_KEYWORDS: Tuple[str, ...] = (
    "hi", "hello", "hey", "thanks", "ok", "yes", "no",
    "good", "morning", "evening", "night", "how", "what",
    "when", "where", "why", "please", "sorry", "welcome",
)

# Shortened / throwaway link hosts
SUSPICIOUS_URL_PATTERNS: Tuple[str, ...] = (
    r'bit\.ly/[a-zA-Z0-9]+',
    r'tinyurl\.com/[a-zA-Z0-9]+',
    r't\.co/[a-zA-Z0-9]+',
    r'goo\.gl/[a-zA-Z0-9]+',
    r'ow\.ly/[a-zA-Z0-9]+',
    r'short\.link',
    r'click\.me',
    r'https?://[^\s/]+\.(?:tk|ml|ga|cf|gq|xyz|top)\b',
)

# Large amounts paired with urgency
SUSPICIOUS_AMOUNT_PATTERNS: Tuple[str, ...] = (
    r'pay \$[1-9]\d{3,}',
    r'send ₹[1-9]\d{4,}',
    r'transfer.*\$[1-9]\d{3,}',
    r'urgent.*₹[1-9]\d{3,}',
)


@dataclass
class ScoreSheet:
    """Evidence accumulated for one message before the verdict is drawn."""
    score: float = 0.0
    critical_flags: List[str] = field(default_factory=list)
    suspicious_flags: List[str] = field(default_factory=list)
    legitimate_flags: List[str] = field(default_factory=list)
    url_flags: List[str] = field(default_factory=list)

    @property
    def has_legitimate_context(self) -> bool:
        return bool(self.legitimate_flags)

    @property
    def is_safe_conversation(self) -> bool:
        return SAFE_CONVERSATION_FLAG in self.legitimate_flags

    def indicators(self) -> Dict[str, List[str]]:
        return {
            "critical": list(self.critical_flags),
            "suspicious": list(self.suspicious_flags),
            "legitimate": list(self.legitimate_flags),
            "url": list(self.url_flags),
        }


def split_tagged_message(text: str) -> Tuple[Optional[str], str]:
    """Split 'FROM: <sender>\\nMESSAGE: <body>' into (sender, body)."""
    if "FROM:" not in text:
        return None, text
    parts = text.split("\nMESSAGE:")
    if len(parts) != 2:
        return None, text
    sender = parts[0].replace("FROM:", "").strip()
    return (sender or None), parts[1].strip()


class HeuristicScorer:
    """Deterministic fraud scorer with an async load gate."""

    def __init__(self) -> None:
        self._loaded: bool = False
        self._load_lock = asyncio.Lock()
        self._suspicious: List[Tuple[str, re.Pattern]] = []
        self._legitimate: List[re.Pattern] = []
        self._urls: List[Tuple[str, re.Pattern]] = []
        self._amounts: List[re.Pattern] = []
        self._urgency: Optional[re.Pattern] = None
        self._urgency_short: Optional[re.Pattern] = None
        self._money: Optional[re.Pattern] = None

    # ==================== Initialisation Gate ====================

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def load_model(self) -> None:
        """Compile the rule tables once. Repeated calls are no-ops."""
        if self._loaded:
            logger.debug("Scorer already loaded")
            return
        async with self._load_lock:
            if self._loaded:
                return
            logger.info(f"Loading fraud scorer {MODEL_VERSION}...")
            await asyncio.to_thread(self._compile_patterns)
            self._loaded = True
            logger.info(f"Fraud scorer {MODEL_VERSION} ready")

    def _compile_patterns(self) -> None:
        self._suspicious = [(p, re.compile(p, re.IGNORECASE)) for p in SUSPICIOUS_PATTERNS]
        self._legitimate = [re.compile(p, re.IGNORECASE) for p in LEGITIMATE_PATTERNS]
        self._urls = [(p, re.compile(p, re.IGNORECASE)) for p in SUSPICIOUS_URL_PATTERNS]
        self._amounts = [re.compile(p, re.IGNORECASE) for p in SUSPICIOUS_AMOUNT_PATTERNS]
        self._urgency = re.compile(r'urgent|immediate|asap', re.IGNORECASE)
        self._urgency_short = re.compile(r'urgent|now|immediate', re.IGNORECASE)
        self._money = re.compile(r'\$|₹|USD|INR|EUR')

    def model_info(self) -> Dict[str, object]:
        return {
            "version": MODEL_VERSION,
            "isLoaded": self._loaded,
            "type": "deterministic rule engine",
        }

    # ==================== Public API ====================

    def score(self, message_text: str, sender_hint: Optional[str] = None) -> FraudVerdict:
        """Score a message. Raises ModelNotReadyError before load_model()."""
        if not self._loaded:
            raise ModelNotReadyError("Fraud scorer not loaded. Await load_model() first.")

        tagged_sender, body = split_tagged_message(message_text)
        if sender_hint is None:
            sender_hint = tagged_sender

        sheet = self._analyze(body, sender_hint)
        verdict = self._verdict(sheet)
        logger.debug(
            f"Scored message len={len(body)} adjusted={verdict.adjusted_score:.3f} "
            f"fraud={verdict.is_fraud} critical={len(sheet.critical_flags)}"
        )
        return verdict

    # ==================== Evidence Accumulation ====================

    def _analyze(self, message_text: str, sender_hint: Optional[str]) -> ScoreSheet:
        sheet = ScoreSheet()
        text = message_text.lower().strip()

        # 1. Verified official sender
        if sender_hint and self._is_official_sender(sender_hint):
            sheet.legitimate_flags.append(VERIFIED_SENDER_FLAG)
            sheet.score -= 1.0

        # 2. Plain conversation short-circuits everything else
        if len(text) < SAFE_MESSAGE_MAX_LEN and self._is_safe_conversation(text):
            sheet.legitimate_flags.append(SAFE_CONVERSATION_FLAG)
            sheet.score = -0.5
            return sheet

        # 3. Legitimate banking language
        legitimate_count = sum(1 for p in self._legitimate if p.search(message_text))
        sheet.legitimate_flags.extend([LEGITIMATE_PATTERN_FLAG] * legitimate_count)
        if legitimate_count >= 2:
            sheet.score -= 0.8
        elif legitimate_count == 1:
            sheet.score -= 0.4

        legitimate = sheet.has_legitimate_context

        # 4. Risk vocabularies
        for phrase in CRITICAL_PHRASES:
            if phrase in text:
                sheet.critical_flags.append(phrase)
                sheet.score += 0.15 if legitimate else 0.3

        if not legitimate:
            for source, pattern in self._suspicious:
                if pattern.search(message_text):
                    sheet.suspicious_flags.append(source)
                    sheet.score += 0.15

        for source, pattern in self._urls:
            if pattern.search(message_text):
                sheet.url_flags.append(source)
                sheet.score += 0.1 if legitimate else 0.25

        for pattern in self._amounts:
            if pattern.search(message_text):
                sheet.suspicious_flags.append(LARGE_AMOUNT_FLAG)
                sheet.score += 0.2

        # 5. Stylistic heuristics
        sheet.score += self._stylistic_score(message_text, legitimate)
        return sheet

    @staticmethod
    def _is_official_sender(sender_hint: str) -> bool:
        upper = sender_hint.strip().upper()
        return any(upper == s or upper.startswith(s) for s in OFFICIAL_SENDERS)

    @staticmethod
    def _is_safe_conversation(text: str) -> bool:
        return any(
            text == kw
            or text.startswith(kw + " ")
            or text.endswith(" " + kw)
            or (" " + kw + " ") in text
            for kw in SAFE_KEYWORDS
        )

    def _stylistic_score(self, message_text: str, legitimate: bool) -> float:
        score = 0.0
        length = len(message_text)

        if length > 500 and self._urgency.search(message_text):
            score += 0.1

        upper_ratio = sum(1 for ch in message_text if "A" <= ch <= "Z") / max(length, 1)
        if upper_ratio > 0.5 and length > 50:
            score += 0.1

        if message_text.count("!") > 3:
            score += 0.1

        money_symbols = len(self._money.findall(message_text))
        if money_symbols > 2 and self._urgency_short.search(message_text):
            score += 0.15

        if legitimate:
            score *= 0.3

        return min(score, 0.3)

    # ==================== Verdict ====================

    def _verdict(self, sheet: ScoreSheet) -> FraudVerdict:
        adjusted = min(max(sheet.score, -1.0), 1.0)

        critical_count = len(sheet.critical_flags)
        has_multiple_critical = critical_count >= 2
        has_urls = bool(sheet.url_flags)
        has_suspicious = bool(sheet.suspicious_flags)
        has_legitimate = sheet.has_legitimate_context

        if has_legitimate and critical_count == 0:
            adjusted = max(adjusted - 0.6, -1.0)

        if sheet.is_safe_conversation:
            adjusted = -1.0

        if has_multiple_critical and (has_urls or has_suspicious):
            adjusted = min(adjusted + 0.5, 1.0)
        elif has_multiple_critical:
            adjusted = min(adjusted + 0.3, 1.0)
        elif critical_count == 1:
            adjusted = min(adjusted + 0.1, 1.0)

        if has_urls and has_suspicious and critical_count > 0:
            adjusted = min(adjusted + 0.3, 1.0)
        elif has_urls:
            adjusted = min(adjusted + 0.1, 1.0)

        # Distinct scam archetypes escalate on their own
        if any(flag in GOVERNMENT_SCAM_PHRASES for flag in sheet.critical_flags):
            adjusted = min(adjusted + 0.3, 1.0)
        if any(flag in EMERGENCY_SCAM_PHRASES for flag in sheet.critical_flags):
            adjusted = min(adjusted + 0.4, 1.0)

        is_fraud = adjusted > FRAUD_THRESHOLD
        confidence = confidence_for(adjusted, is_fraud)

        return FraudVerdict(
            is_fraud=is_fraud,
            confidence=confidence,
            details=self._details(sheet, is_fraud, confidence),
            adjusted_score=adjusted,
            indicators=sheet.indicators(),
        )

    @staticmethod
    def _details(sheet: ScoreSheet, is_fraud: bool, confidence: float) -> str:
        parts = [f"Heuristic analysis ({MODEL_VERSION}):"]
        if sheet.is_safe_conversation:
            parts.append("Normal conversational message detected.")
        elif sheet.has_legitimate_context:
            parts.append("Legitimate banking patterns found.")
        if sheet.critical_flags:
            parts.append(f"{len(sheet.critical_flags)} critical indicator(s).")
        if sheet.url_flags:
            parts.append("Suspicious URLs detected.")
        parts.append(f"{'FRAUD' if is_fraud else 'SAFE'} with {confidence * 100:.1f}% confidence")
        return " ".join(parts)


def confidence_for(adjusted_score: float, is_fraud: bool) -> float:
    """Certainty in the stated verdict, never residual fraud likelihood."""
    if is_fraud:
        return min(max(adjusted_score, 0.0), 1.0)
    if adjusted_score <= -0.3:
        return 0.9
    if adjusted_score <= 0.0:
        return 0.7
    return max(0.6 - adjusted_score, 0.3)
