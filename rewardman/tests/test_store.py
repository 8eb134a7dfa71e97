"""Tests for the Django store's per-user lock."""

import threading
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.db import connection, connections

from rewardman.adapters.django_store import DjangoRewardsStore
from rewardman.exceptions import InsufficientPoints
from rewardman.models import PointsAccount, PointsLedgerEntry
from rewardman.service import RewardsService
from rewardman.tests.conftest import USER


pytestmark = pytest.mark.django_db


class TestUserLock:
    """user_lock() is a transaction holding the account row lock."""

    def test_locks_account_row(self, store):
        manager = PointsAccount.objects
        with patch.object(manager, "select_for_update", wraps=manager.select_for_update) as lock:
            with store.user_lock(USER):
                pass

        lock.assert_called_once_with()
        assert PointsAccount.objects.filter(user_ref=USER).exists()

    def test_error_rolls_back_everything(self, store, t0):
        with pytest.raises(RuntimeError):
            with store.user_lock(USER):
                store.add_entry(user_ref=USER, kind="bonus", points=10, occurred_at=t0)
                raise RuntimeError("boom")

        assert not PointsLedgerEntry.objects.exists()
        assert not PointsAccount.objects.exists()

    def test_reentrant(self, store, t0):
        with store.user_lock(USER):
            with store.user_lock(USER):
                store.add_entry(user_ref=USER, kind="bonus", points=10, occurred_at=t0)

        assert PointsAccount.objects.filter(user_ref=USER).count() == 1


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(connection.vendor == "sqlite", reason="SQLite ignores SELECT ... FOR UPDATE")
def test_concurrent_redeems_are_serialized(t0):
    rewards = RewardsService(DjangoRewardsStore())
    rewards.record_order(USER, "ORD-1", 250_000, 25_000, occurred_at=t0)
    now = t0 + timedelta(days=1)
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            rewards.vouchers.redeem(USER, "voucher-500", now=now)
            outcomes.append("redeemed")
        except InsufficientPoints:
            outcomes.append("insufficient")
        finally:
            connections.close_all()

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["insufficient", "redeemed"]
    assert rewards.ledger.balance_as_of(USER, now) == 5_000
