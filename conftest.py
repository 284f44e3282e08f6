"""Shared pytest fixtures: fixed clock, loaded scorer, packaged trust list."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from otp_insight.config import ServiceConfig, load_trust_list
from otp_insight.context import ContextTracker
from otp_insight.detector import HeuristicScorer
from otp_insight.service import OtpInsightService

BASE_TIME = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingSink:
    def __init__(self) -> None:
        self.delivered = []

    def deliver(self, notification) -> bool:
        self.delivered.append(notification)
        return True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def trust_list():
    return load_trust_list()


@pytest.fixture
def scorer():
    s = HeuristicScorer()
    asyncio.run(s.load_model())
    return s


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def make_service(trust_list, clock, sink):
    """Factory for an initialized service on the fake clock."""
    def _make(initialize: bool = True, **config_overrides) -> OtpInsightService:
        event_log = config_overrides.pop("event_log", None)
        svc = OtpInsightService(
            ServiceConfig(**config_overrides),
            trust_list=trust_list,
            tracker=ContextTracker(clock=clock),
            sink=sink,
            event_log=event_log,
        )
        if initialize:
            asyncio.run(svc.initialize())
        return svc
    return _make
