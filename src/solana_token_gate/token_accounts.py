from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, Optional

import base58

from .errors import InvalidAddress

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

PUBKEY_LENGTH = 32

log = logging.getLogger(__name__)


def validate_address(address: str) -> str:
    """
    Returns the address unchanged if it is a base58 encoded 32-byte key.
    Raises InvalidAddress otherwise. Does not check that the key is on curve.
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddress("Address is empty.")
    address = address.strip()
    try:
        raw = base58.b58decode(address)
    except ValueError as e:
        raise InvalidAddress(f"Address {address!r} is not base58: {e}")
    if len(raw) != PUBKEY_LENGTH:
        raise InvalidAddress(
            f"Address {address!r} decodes to {len(raw)} bytes, expected {PUBKEY_LENGTH}."
        )
    return address


def parse_mint_and_ui_amount(account: Dict[str, Any]) -> tuple[str, Decimal] | None:
    """
    jsonParsed token account layout:
    account.data.parsed.info.{mint, tokenAmount.{amount, decimals, uiAmount, uiAmountString}}
    """
    try:
        info = account["account"]["data"]["parsed"]["info"]
        mint = info["mint"]
        token_amount = info["tokenAmount"]
    except (KeyError, TypeError):
        return None
    if not isinstance(mint, str) or not isinstance(token_amount, dict):
        return None

    # uiAmountString is exact; uiAmount is a float and may be null
    raw_ui = token_amount.get("uiAmountString")
    if raw_ui is None:
        raw_ui = token_amount.get("uiAmount")
    if raw_ui is None:
        return mint, Decimal(0)
    try:
        ui_amount = Decimal(str(raw_ui))
    except InvalidOperation:
        return None
    if not ui_amount.is_finite():
        return None
    return mint, ui_amount


def iter_mint_balances(accounts: Iterable[Dict[str, Any]], mint: str) -> Iterator[Decimal]:
    for account in accounts:
        parsed = parse_mint_and_ui_amount(account)
        if parsed is None:
            pubkey = account.get("pubkey") if isinstance(account, dict) else None
            log.debug("Skipping unparseable token account %s", pubkey)
            continue
        account_mint, ui_amount = parsed
        if account_mint == mint:
            yield ui_amount


def find_qualifying_balance(
    accounts: Iterable[Dict[str, Any]],
    mint: str,
    min_amount: Decimal,
) -> Optional[Decimal]:
    # Existential check: one account over the threshold is enough, never summed.
    for ui_amount in iter_mint_balances(accounts, mint):
        if ui_amount >= min_amount:
            return ui_amount
    return None
