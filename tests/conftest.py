"""Pytest configuration and fixtures."""

import json
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from solana_token_gate.notifier import NotifierFailure
from solana_token_gate.store import VerificationStore

MINT = "F7Hwf8ib5DVCoiuyGr618Y3gon429Rnd1r5F9R5upump"
OTHER_MINT = "So11111111111111111111111111111111111111112"
WALLET = "9NrkmoqwF1rBjsfKZvn7ngCy6zqvb8A6A5RfTvR2pump"


def token_account(mint, ui_amount_string, ui_amount=None, pubkey="acct"):
    if ui_amount is None and ui_amount_string is not None:
        ui_amount = float(ui_amount_string)
    return {
        "pubkey": pubkey,
        "account": {
            "data": {
                "program": "spl-token",
                "parsed": {
                    "type": "account",
                    "info": {
                        "mint": mint,
                        "owner": WALLET,
                        "tokenAmount": {
                            "amount": "0",
                            "decimals": 6,
                            "uiAmount": ui_amount,
                            "uiAmountString": ui_amount_string,
                        },
                    },
                },
            },
        },
    }


def rpc_transport(accounts=None, error=None, status_code=200, calls=None):
    """MockTransport answering getTokenAccountsByOwner."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body)
        if error is not None:
            return httpx.Response(status_code, json={"jsonrpc": "2.0", "id": 1, "error": error})
        result = {"context": {"slot": 1}, "value": accounts or []}
        return httpx.Response(status_code, json={"jsonrpc": "2.0", "id": 1, "result": result})

    return httpx.MockTransport(handler)


@pytest.fixture
def store():
    """In-memory SQLite store with the schema created."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    store = VerificationStore(engine)
    store.create_schema()
    yield store
    engine.dispose()


class FakeLedger:
    def __init__(self, holds=True, exc=None):
        self.holds = holds
        self.exc = exc
        self.calls = []

    def holds_minimum_balance(self, wallet_address, token_mint, min_amount):
        self.calls.append((wallet_address, token_mint, min_amount))
        if self.exc is not None:
            raise self.exc
        return self.holds


class FakeNotifier:
    def __init__(self, failure=None):
        self.failure = failure
        self.pushes = []

    def push(self, identity_id, verified, token):
        self.pushes.append((identity_id, verified, token))
        return self.failure


@pytest.fixture
def ledger():
    return FakeLedger()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def failing_notifier():
    return FakeNotifier(failure=NotifierFailure(reason="ConnectError: refused"))


@pytest.fixture
def min_amount():
    return Decimal("1")
