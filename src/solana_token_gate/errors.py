from __future__ import annotations


class TokenGateError(RuntimeError):
    pass


class ConfigError(TokenGateError):
    pass


class InvalidAddress(TokenGateError):
    """Address is not a base58 encoded 32-byte public key."""


class LedgerUnavailable(TokenGateError):
    """The RPC node could not answer. Says nothing about the balance."""


class NotFound(TokenGateError):
    pass


class StoreUnavailable(TokenGateError):
    pass
