from __future__ import annotations

import enum
import logging
from decimal import Decimal
from typing import Optional, Protocol

from .config import Settings
from .errors import InvalidAddress, LedgerUnavailable, NotFound, StoreUnavailable
from .notifier import BotNotifier, NotifierFailure
from .project_constants import MIN_BALANCE, TOKEN_MINT
from .rpc import RpcClient
from .store import VerificationStore, create_store_engine
from .token_accounts import validate_address

log = logging.getLogger(__name__)


class VerificationResult(enum.Enum):
    SUCCESS = ("Verification successful", 200)
    INSUFFICIENT_BALANCE = ("Insufficient token balance", 400)
    INVALID_REQUEST = ("Missing public key or token", 400)
    INVALID_TOKEN = ("Invalid token", 400)
    INTERNAL_ERROR = ("Internal server error", 500)

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code

    @property
    def ok(self) -> bool:
        return self is VerificationResult.SUCCESS


class Ledger(Protocol):
    def holds_minimum_balance(
        self, wallet_address: str, token_mint: str, min_amount: Decimal
    ) -> bool: ...


class Store(Protocol):
    def find_by_token(self, token: str) -> str: ...

    def record_outcome(
        self, identity_id: str, token: str, wallet_address: str, verified: bool
    ) -> int: ...


class Notifier(Protocol):
    def push(self, identity_id: str, verified: bool, token: str) -> Optional[NotifierFailure]: ...


class VerificationEngine:
    """
    Runs one verification attempt:

        start -> identity resolved -> ledger checked -> recorded -> notified

    The store write is the durability point. Anything that fails before it
    leaves the record untouched; anything after it (the bot push) is logged
    and cannot change the result. Instances hold no per-request state, so one
    engine can serve concurrent requests as long as its collaborators can.
    """

    def __init__(
        self,
        ledger: Ledger,
        store: Store,
        notifier: Notifier,
        token_mint: str = TOKEN_MINT,
        min_amount: Decimal = MIN_BALANCE,
    ) -> None:
        self.ledger = ledger
        self.store = store
        self.notifier = notifier
        self.token_mint = token_mint
        self.min_amount = min_amount

    def verify(self, wallet_address: Optional[str], token: Optional[str]) -> VerificationResult:
        if not wallet_address or not wallet_address.strip() or not token or not token.strip():
            log.info("Rejected request with missing wallet or token")
            return VerificationResult.INVALID_REQUEST
        # The token is opaque and looked up verbatim.
        wallet_address = wallet_address.strip()
        try:
            validate_address(wallet_address)
        except InvalidAddress as e:
            log.info("Rejected request for token %s: %s", token, e)
            return VerificationResult.INVALID_REQUEST

        # start -> identity resolved
        try:
            identity_id = self.store.find_by_token(token)
        except NotFound:
            log.info("Unknown verification token %s", token)
            return VerificationResult.INVALID_TOKEN
        except StoreUnavailable as e:
            log.error("Store unavailable while resolving token %s: %s", token, e)
            return VerificationResult.INTERNAL_ERROR
        log.debug("Token %s resolved to user %s", token, identity_id)

        # identity resolved -> ledger checked
        try:
            holds = self.ledger.holds_minimum_balance(
                wallet_address, self.token_mint, self.min_amount
            )
        except InvalidAddress as e:
            log.info("Ledger rejected wallet %s for token %s: %s", wallet_address, token, e)
            return VerificationResult.INVALID_REQUEST
        except LedgerUnavailable as e:
            # Not a negative result: the record must keep its previous outcome.
            log.error(
                "Ledger unavailable checking wallet %s for token %s: %s",
                wallet_address,
                token,
                e,
            )
            return VerificationResult.INTERNAL_ERROR
        log.debug("Wallet %s holds >= %s of %s: %s", wallet_address, self.min_amount, self.token_mint, holds)

        # ledger checked -> recorded
        try:
            rows = self.store.record_outcome(identity_id, token, wallet_address, holds)
        except StoreUnavailable as e:
            log.error("Failed to record outcome for token %s: %s", token, e)
            return VerificationResult.INTERNAL_ERROR
        if rows == 0:
            log.warning("Token %s no longer matches user %s at commit time", token, identity_id)
            return VerificationResult.INVALID_TOKEN

        # recorded -> notified
        failure = self.notifier.push(identity_id, holds, token)
        if failure is not None:
            log.warning(
                "Bot notification failed for user %s token %s: %s",
                identity_id,
                token,
                failure.reason,
            )

        if holds:
            log.info("Verified wallet %s for user %s", wallet_address, identity_id)
            return VerificationResult.SUCCESS
        log.info("Insufficient balance in wallet %s for user %s", wallet_address, identity_id)
        return VerificationResult.INSUFFICIENT_BALANCE


class Services:
    """Process-wide shared handles. Build once at startup, close on shutdown."""

    def __init__(self, settings: Settings) -> None:
        self.store = VerificationStore(create_store_engine(settings))
        self.rpc = RpcClient(settings.rpc_url, timeout_s=settings.rpc_timeout_s)
        self.notifier = BotNotifier(settings.notifier_url, timeout_s=settings.notifier_timeout_s)
        self.engine = VerificationEngine(
            ledger=self.rpc,
            store=self.store,
            notifier=self.notifier,
            token_mint=settings.token_mint,
            min_amount=settings.min_balance,
        )

    def close(self) -> None:
        self.rpc.close()
        self.notifier.close()
        self.store.engine.dispose()
