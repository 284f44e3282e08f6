"""config.py — Environment Configuration and Trust-List Loading
==============================================================

Settings are read from environment variables (a .env file is honored via
python-dotenv). The trust list is a JSON document with three sets:

    {
        "dlt_headers":         ["SBIINB", "HDFCBK", ...],
        "whitelisted_domains": ["onlinesbi.sbi", "hdfcbank.com", ...],
        "url_shorteners":      ["bit.ly", "tinyurl.com", ...]
    }

It is loaded once at startup and treated as read-only afterwards.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import FrozenSet, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from otp_insight.errors import TrustListError

# Load environment variables from .env file (if present)
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TRUST_LIST_PATH: str = os.path.join(
    os.path.dirname(__file__), "data", "trusted_dlt_headers.json"
)


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# ═══════════════════════════════════════════════════════════════════════
# TRUST LIST
# ═══════════════════════════════════════════════════════════════════════

class TrustListFile(BaseModel):
    """On-disk trust-list schema. Unknown keys are ignored."""
    model_config = ConfigDict(extra="ignore")

    dlt_headers: List[str] = Field(default_factory=list)
    whitelisted_domains: List[str] = Field(default_factory=list)
    url_shorteners: List[str] = Field(default_factory=list)

    @field_validator("dlt_headers", mode="after")
    @classmethod
    def _upper_headers(cls, value: List[str]) -> List[str]:
        return [v.strip().upper() for v in value if v and v.strip()]

    @field_validator("whitelisted_domains", "url_shorteners", mode="after")
    @classmethod
    def _lower_domains(cls, value: List[str]) -> List[str]:
        return [v.strip().lower() for v in value if v and v.strip()]


@dataclass(frozen=True)
class TrustList:
    """Read-only sets consulted by the sender verifier."""
    dlt_headers: FrozenSet[str]
    whitelisted_domains: FrozenSet[str]
    url_shorteners: FrozenSet[str]

    @classmethod
    def from_iterables(cls, dlt_headers=(), whitelisted_domains=(), url_shorteners=()) -> "TrustList":
        parsed = TrustListFile(
            dlt_headers=list(dlt_headers),
            whitelisted_domains=list(whitelisted_domains),
            url_shorteners=list(url_shorteners),
        )
        return cls._from_file(parsed)

    @classmethod
    def _from_file(cls, parsed: TrustListFile) -> "TrustList":
        return cls(
            dlt_headers=frozenset(parsed.dlt_headers),
            whitelisted_domains=frozenset(parsed.whitelisted_domains),
            url_shorteners=frozenset(parsed.url_shorteners),
        )


def load_trust_list(path: Optional[str] = None) -> TrustList:
    """Load and validate the trust list. Raises TrustListError on any problem."""
    path = path or TRUST_LIST_PATH
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
        parsed = TrustListFile.model_validate(raw)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise TrustListError(f"Failed to load trust list from {path}: {exc}") from exc

    trust_list = TrustList._from_file(parsed)
    logger.info(
        f"Trust list loaded: {len(trust_list.dlt_headers)} headers, "
        f"{len(trust_list.whitelisted_domains)} domains, "
        f"{len(trust_list.url_shorteners)} shorteners"
    )
    return trust_list


# ═══════════════════════════════════════════════════════════════════════
# SERVICE SETTINGS
# ═══════════════════════════════════════════════════════════════════════

TRUST_LIST_PATH: str = os.getenv("OTP_INSIGHT_TRUST_LIST", DEFAULT_TRUST_LIST_PATH)
EVENT_LOG_PATH: str = os.getenv("OTP_INSIGHT_EVENT_LOG", "otp_events.json")
WEBHOOK_URL: Optional[str] = os.getenv("OTP_INSIGHT_WEBHOOK_URL") or None


@dataclass
class ServiceConfig:
    """Feature switches for OtpInsightService."""
    enable_context_rules: bool = True
    enable_notifications: bool = True
    notify_safe: bool = False
    enable_persistence: bool = False
    trust_list_path: str = DEFAULT_TRUST_LIST_PATH
    event_log_path: str = "otp_events.json"
    webhook_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            enable_context_rules=_env_flag("OTP_INSIGHT_CONTEXT_RULES", True),
            enable_notifications=_env_flag("OTP_INSIGHT_NOTIFICATIONS", True),
            notify_safe=_env_flag("OTP_INSIGHT_NOTIFY_SAFE", False),
            enable_persistence=_env_flag("OTP_INSIGHT_PERSISTENCE", False),
            trust_list_path=os.getenv("OTP_INSIGHT_TRUST_LIST", TRUST_LIST_PATH),
            event_log_path=os.getenv("OTP_INSIGHT_EVENT_LOG", EVENT_LOG_PATH),
            webhook_url=os.getenv("OTP_INSIGHT_WEBHOOK_URL") or WEBHOOK_URL,
        )
