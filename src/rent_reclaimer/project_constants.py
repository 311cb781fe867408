"""
Network-level parameters for reclaiming token-account rent on Solana mainnet.

Amounts are expressed in lamports unless the name says otherwise.
"""

LAMPORTS_PER_SOL = 1_000_000_000

# Classic SPL Token program (the only program whose accounts we enumerate)
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

# Rent-exempt minimum of a 165-byte token account (0.00203928 SOL).
# Used only for reporting estimates, never for on-chain accounting.
RENT_EXEMPT_REFUND_LAMPORTS = 2_039_280

# A wallet must hold at least this much to pay for close transactions (0.001 SOL)
MIN_FEE_RESERVE_LAMPORTS = 1_000_000

# Left behind by a collect transfer so the source ends at (ideally) zero
COLLECT_FEE_RESERVE_LAMPORTS = 5_000

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"

# Check-stage artifacts, consumed by fund / claim / collect
ELIGIBLE_KEYS_FILE = "eligible_wallets_keys.txt"
ELIGIBLE_ADDRESS_FILE = "eligible_wallets_address.txt"
