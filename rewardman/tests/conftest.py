"""Pytest fixtures for Rewardman tests."""

from datetime import datetime, timedelta, timezone as dt_timezone

import pytest

from rewardman.adapters.django_store import DjangoRewardsStore
from rewardman.service import RewardsService

USER = "USR-001"


@pytest.fixture
def t0():
    """Fixed earn instant.

    The month before its expiry is February, so T+11 months plus a 30-day
    lookahead reaches the expiry date.
    """
    return datetime(2025, 3, 10, 12, 0, tzinfo=dt_timezone.utc)


@pytest.fixture
def day():
    return timedelta(days=1)


@pytest.fixture
def store(db):
    return DjangoRewardsStore()


@pytest.fixture
def rewards(store):
    return RewardsService(store)


@pytest.fixture
def ledger(rewards):
    return rewards.ledger


@pytest.fixture
def tiers(rewards):
    return rewards.tiers


@pytest.fixture
def scheduler(rewards):
    return rewards.expiry


@pytest.fixture
def engine(rewards):
    return rewards.vouchers


@pytest.fixture
def reconciler(rewards):
    return rewards.reconciler


@pytest.fixture
def funded_user(ledger, t0):
    """USR-001 with 25,000 points from one S$2,500 order at t0."""
    ledger.record_order(USER, "ORD-001", 250_000, 25_000, occurred_at=t0)
    return USER
