from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from .errors import InvalidAddress, LedgerUnavailable
from .token_accounts import TOKEN_PROGRAM_ID, find_qualifying_balance, validate_address

# JSON-RPC "invalid params"; the node returns it for malformed pubkeys
INVALID_PARAMS_CODE = -32602

log = logging.getLogger(__name__)


class RpcClient:
    """
    Read-only Solana JSON-RPC client.

    One instance is meant to be shared by the whole process: the underlying
    httpx.Client pools connections and is safe to use from several threads.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 10.0,
        max_connections: int = 20,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(
            timeout=timeout_s,
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max_connections,
            ),
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.client.post(self.rpc_url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise LedgerUnavailable(f"RPC request failed: {e}") from e
        except ValueError as e:
            raise LedgerUnavailable(f"RPC returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise LedgerUnavailable(f"RPC returned unexpected payload: {data!r}")
        if "error" in data:
            err = data["error"]
            if isinstance(err, dict) and err.get("code") == INVALID_PARAMS_CODE:
                raise InvalidAddress(f"RPC rejected params: {err.get('message')}")
            raise LedgerUnavailable(f"RPC error: {err}")
        if "result" not in data:
            raise LedgerUnavailable("RPC response has no result.")
        return data

    def get_parsed_token_accounts_by_owner(
        self,
        owner: str,
        program_id: str = TOKEN_PROGRAM_ID,
    ) -> List[Dict[str, Any]]:
        """
        Returns the jsonParsed token accounts owned by `owner` under `program_id`.
        Each item looks like {"pubkey": ..., "account": {"data": {"parsed": {"info": ...}}}}.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "getTokenAccountsByOwner",
            "params": [
                owner,
                {"programId": program_id},
                {"encoding": "jsonParsed"},
            ],
        }
        data = self._post(payload)
        result = data["result"]
        # Newer nodes wrap it as {"context": ..., "value": [...]}
        value = result.get("value") if isinstance(result, dict) else result
        if not isinstance(value, list):
            raise LedgerUnavailable(f"Unexpected getTokenAccountsByOwner result: {result!r}")
        return value

    def holds_minimum_balance(
        self,
        wallet_address: str,
        token_mint: str,
        min_amount: Decimal,
    ) -> bool:
        wallet_address = validate_address(wallet_address)
        token_mint = validate_address(token_mint)

        accounts = self.get_parsed_token_accounts_by_owner(wallet_address)
        log.debug("Wallet %s owns %d token accounts", wallet_address, len(accounts))

        match = find_qualifying_balance(accounts, token_mint, min_amount)
        if match is None:
            return False
        log.debug("Wallet %s holds %s of %s (min %s)", wallet_address, match, token_mint, min_amount)
        return True
