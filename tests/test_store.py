"""Tests for the verifications table store."""

import pytest
from sqlalchemy import create_engine

from conftest import WALLET
from solana_token_gate.config import Settings
from solana_token_gate.errors import NotFound, StoreUnavailable
from solana_token_gate.store import VerificationStore, create_store_engine


def test_find_by_token(store):
    store.issue("abc123", "u1")
    assert store.find_by_token("abc123") == "u1"


def test_find_by_token_missing(store):
    with pytest.raises(NotFound):
        store.find_by_token("missing")


def test_issued_record_is_unverified(store):
    store.issue("abc123", "u1")
    record = store.get_record("abc123")
    assert record.identity_id == "u1"
    assert record.wallet_address is None
    assert record.verified is None
    assert record.verified_at is None


def test_issue_twice_rejected(store):
    store.issue("abc123", "u1")
    with pytest.raises(ValueError):
        store.issue("abc123", "u2")


def test_record_outcome_sets_wallet_and_timestamp_together(store):
    store.issue("abc123", "u1")
    assert store.record_outcome("u1", "abc123", WALLET, True) == 1

    record = store.get_record("abc123")
    assert record.wallet_address == WALLET
    assert record.verified is True
    assert record.verified_at is not None


def test_record_outcome_last_write_wins(store):
    store.issue("abc123", "u1")
    store.record_outcome("u1", "abc123", WALLET, True)
    store.record_outcome("u1", "abc123", "11111111111111111111111111111111", False)

    record = store.get_record("abc123")
    assert record.wallet_address == "11111111111111111111111111111111"
    assert record.verified is False


def test_record_outcome_identity_mismatch_touches_nothing(store):
    store.issue("abc123", "u1")
    assert store.record_outcome("u2", "abc123", WALLET, True) == 0
    assert store.get_record("abc123").verified is None


def test_missing_table_is_store_unavailable():
    engine = create_engine("sqlite://")
    store = VerificationStore(engine)
    with pytest.raises(StoreUnavailable):
        store.find_by_token("abc123")
    with pytest.raises(StoreUnavailable):
        store.record_outcome("u1", "abc123", WALLET, True)
    engine.dispose()


@pytest.mark.parametrize("url", ["postgresql://u:p@db/discord", "postgres://u:p@db/discord"])
def test_postgres_engine_is_time_bounded(url):
    engine = create_store_engine(Settings(database_url=url, db_timeout_s=3.0, db_pool_size=4))

    assert engine.url.drivername == "postgresql"
    assert engine.pool.timeout() == 3.0
    assert engine.pool.size() == 4
    engine.dispose()
