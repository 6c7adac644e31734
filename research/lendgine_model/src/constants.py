# Fixed point scale factors
SCALE = 1_000_000_000_000_000_000  # 1e18 for rates, bounds and reward accumulators
YEAR_IN_SECONDS = 365 * 24 * 60 * 60  # Seconds in a year

# Machine word the protocol runs on
WORD_BITS = 256
MAX_UINT256 = 2**WORD_BITS - 1

# Jump rate curve defaults
DEFAULT_KINK = SCALE * 8 // 10  # 80% utilization
DEFAULT_MULTIPLIER = 1375 * SCALE // 10_000  # 13.75% APR at 100% below the kink
DEFAULT_JUMP_MULTIPLIER = 445 * SCALE // 100  # 445% APR slope past the kink

# Token decimals are normalized to 18
TOKEN_DECIMALS = 18
