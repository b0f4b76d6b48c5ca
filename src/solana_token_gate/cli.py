from __future__ import annotations

import argparse
import logging

from .config import Settings
from .engine import Services
from .errors import InvalidAddress, LedgerUnavailable, NotFound, TokenGateError
from .rpc import RpcClient
from .store import VerificationStore, create_store_engine


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        rpc_url_override=args.rpc_url,
        rpc_timeout_override=args.timeout,
    )


def cmd_verify(args: argparse.Namespace) -> int:
    services = Services(_settings(args))
    try:
        result = services.engine.verify(args.wallet, args.token)
    finally:
        services.close()

    print(f"{result.status_code} {result.message}")
    return 0 if result.ok else 1


def cmd_check_balance(args: argparse.Namespace) -> int:
    settings = _settings(args)
    log = logging.getLogger("check-balance")

    rpc = RpcClient(settings.rpc_url, timeout_s=settings.rpc_timeout_s)
    try:
        holds = rpc.holds_minimum_balance(args.wallet, settings.token_mint, settings.min_balance)
    except InvalidAddress as e:
        log.error("%s", e)
        return 2
    except LedgerUnavailable as e:
        log.error("Ledger unavailable: %s", e)
        return 1
    finally:
        rpc.close()

    print(f"Wallet        : {args.wallet}")
    print(f"Mint          : {settings.token_mint}")
    print(f"Minimum       : {settings.min_balance}")
    print(f"Qualifies     : {'yes' if holds else 'no'}")
    return 0 if holds else 1


def _store(args: argparse.Namespace) -> VerificationStore:
    return VerificationStore(create_store_engine(_settings(args)))


def cmd_status(args: argparse.Namespace) -> int:
    store = _store(args)
    try:
        record = store.get_record(args.token)
    except NotFound:
        print(f"No verification for token {args.token}")
        return 1
    finally:
        store.engine.dispose()

    verified_at = record.verified_at.isoformat() if record.verified_at else "-"
    print(f"Token         : {record.token}")
    print(f"User          : {record.identity_id}")
    print(f"Wallet        : {record.wallet_address or '-'}")
    print(f"Verified      : {'-' if record.verified is None else record.verified}")
    print(f"Verified at   : {verified_at}")
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    store = _store(args)
    try:
        store.create_schema()
    finally:
        store.engine.dispose()
    print("verifications table ready")
    return 0


def cmd_issue(args: argparse.Namespace) -> int:
    store = _store(args)
    try:
        store.issue(args.token, args.user)
    except ValueError as e:
        logging.getLogger("issue").error("%s", e)
        return 1
    finally:
        store.engine.dispose()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="solana-token-gate",
        description="Verify Solana token holders for a Discord role.",
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=None, help="RPC timeout seconds.")

    sub = p.add_subparsers(dest="cmd", required=True)

    v = sub.add_parser("verify", help="Verify a wallet against a one-time token.")
    v.add_argument("--wallet", required=True, help="Wallet public key (base58).")
    v.add_argument("--token", required=True, help="Verification token issued by the bot.")
    v.set_defaults(func=cmd_verify)

    b = sub.add_parser(
        "check-balance", help="Check the holding threshold without touching the store."
    )
    b.add_argument("--wallet", required=True, help="Wallet public key (base58).")
    b.set_defaults(func=cmd_check_balance)

    s = sub.add_parser("status", help="Show the stored verification for a token.")
    s.add_argument("--token", required=True)
    s.set_defaults(func=cmd_status)

    i = sub.add_parser("init-db", help="Create the verifications table if missing.")
    i.set_defaults(func=cmd_init_db)

    iss = sub.add_parser("issue", help="Issue a verification token (development only).")
    iss.add_argument("--token", required=True)
    iss.add_argument("--user", required=True, help="Discord user id.")
    iss.set_defaults(func=cmd_issue)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except TokenGateError as e:
        logging.getLogger("solana-token-gate").error("%s", e)
        code = 1
    raise SystemExit(code)
