"""Environment configuration and trust-list loading."""

import json

import pytest

from otp_insight.config import DEFAULT_TRUST_LIST_PATH, ServiceConfig, load_trust_list
from otp_insight.errors import TrustListError

ENV_VARS = [
    "OTP_INSIGHT_CONTEXT_RULES",
    "OTP_INSIGHT_NOTIFICATIONS",
    "OTP_INSIGHT_NOTIFY_SAFE",
    "OTP_INSIGHT_PERSISTENCE",
    "OTP_INSIGHT_EVENT_LOG",
    "OTP_INSIGHT_WEBHOOK_URL",
    "OTP_INSIGHT_TRUST_LIST",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_from_empty_environment():
    config = ServiceConfig.from_env()
    assert config.enable_context_rules is True
    assert config.enable_notifications is True
    assert config.notify_safe is False
    assert config.enable_persistence is False
    assert config.webhook_url is None


def test_flags_and_paths_from_environment(monkeypatch):
    monkeypatch.setenv("OTP_INSIGHT_CONTEXT_RULES", "false")
    monkeypatch.setenv("OTP_INSIGHT_NOTIFY_SAFE", "YES")
    monkeypatch.setenv("OTP_INSIGHT_PERSISTENCE", "1")
    monkeypatch.setenv("OTP_INSIGHT_EVENT_LOG", "/tmp/events.json")
    monkeypatch.setenv("OTP_INSIGHT_WEBHOOK_URL", "https://hooks.example/otp")

    config = ServiceConfig.from_env()
    assert config.enable_context_rules is False
    assert config.notify_safe is True
    assert config.enable_persistence is True
    assert config.event_log_path == "/tmp/events.json"
    assert config.webhook_url == "https://hooks.example/otp"


def test_packaged_trust_list_loads():
    trust = load_trust_list(DEFAULT_TRUST_LIST_PATH)
    assert "SBIINB" in trust.dlt_headers
    assert "onlinesbi.sbi" in trust.whitelisted_domains
    assert "bit.ly" in trust.url_shorteners


def test_trust_list_normalized_and_extra_keys_ignored(tmp_path):
    path = tmp_path / "trust.json"
    path.write_text(json.dumps({
        "dlt_headers": ["mybank", "  "],
        "whitelisted_domains": ["MyBank.COM"],
        "url_shorteners": [],
        "comment": "ignored",
    }), encoding="utf-8")
    trust = load_trust_list(str(path))
    assert trust.dlt_headers == frozenset({"MYBANK"})
    assert trust.whitelisted_domains == frozenset({"mybank.com"})


@pytest.mark.parametrize("content", ["{broken", json.dumps({"dlt_headers": "SBIINB"})])
def test_invalid_trust_list_raises(tmp_path, content):
    path = tmp_path / "trust.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(TrustListError):
        load_trust_list(str(path))


def test_missing_trust_list_raises(tmp_path):
    with pytest.raises(TrustListError):
        load_trust_list(str(tmp_path / "absent.json"))
