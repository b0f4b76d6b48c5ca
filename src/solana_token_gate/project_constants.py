"""
Defaults for the holder verification gate.

TOKEN_MINT and MIN_BALANCE decide who gets the role.
Changing them changes eligibility and MUST be announced to the community.
"""

from decimal import Decimal

# Token mint (MAINNET)
TOKEN_MINT = "F7Hwf8ib5DVCoiuyGr618Y3gon429Rnd1r5F9R5upump"

# Minimum balance to qualify (UI units, inclusive)
MIN_BALANCE = Decimal("1")

# Public mainnet endpoint; rate limited, use a dedicated RPC in production
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

# Discord bot callback
DEFAULT_NOTIFIER_URL = "http://localhost:3001/verify-status"

DEFAULT_RPC_TIMEOUT_S = 10.0
DEFAULT_NOTIFIER_TIMEOUT_S = 5.0
DEFAULT_DB_TIMEOUT_S = 5.0
DEFAULT_DB_POOL_SIZE = 5
