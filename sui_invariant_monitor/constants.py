"""Constants and configuration for the invariant monitor."""

from decimal import Decimal

# Public Sui fullnodes. Use --rpc-url / SUI_RPC_URL to point at a private node.
SUI_RPC_MAINNET = "https://fullnode.mainnet.sui.io:443"
SUI_RPC_TESTNET = "https://fullnode.testnet.sui.io:443"
NETWORK_RPC_URLS: dict[str, str] = {
    "mainnet": SUI_RPC_MAINNET,
    "testnet": SUI_RPC_TESTNET,
}

SUI_COIN_TYPE = "0x2::sui::SUI"

# Sui object ids are 32-byte hex strings: 0x + 64 hex chars.
OBJECT_ID_LENGTH = 66

# Move integer widths. Quantities are u128 on-chain, epochs are u64.
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

# Interest index is a fixed-point number scaled by 1e9 (1_000_000_000 == 1.0).
INTEREST_INDEX_SCALE = 1_000_000_000
INTEREST_INDEX_DECIMALS = 9
INTEREST_INDEX_SCALE_DEC = Decimal(INTEREST_INDEX_SCALE)

# Minimum collateral ratio as percentage (150 == 150%).
MIN_COLLATERAL_RATIO_PERCENT = 150
PERCENT = 100

# Raw record field names recognized by the aggregator.
U128_FIELDS: tuple[str, ...] = (
    "total_supply",
    "total_borrowed",
    "total_reserves",
    "collateral_value",
    "outstanding_shares",
    "interest_index",
)
U64_FIELDS: tuple[str, ...] = ("last_update_epoch",)

# Service defaults
DEFAULT_POLLING_INTERVAL_SECS = 10
DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 30
LLM_TIMEOUT = 120  # LLM analysis routinely takes longer than an RPC round-trip
MAX_ALERT_WORKERS = 8

# LLM providers
OPENROUTER_CHAT_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_LLM_MODEL = "llama3.2"
LLM_TEMPERATURE = 0.3
LLM_MAX_TOKENS = 2000

# Discord embed colours per status
DISCORD_COLOR_OK = 0x00FF00
DISCORD_COLOR_VIOLATED = 0xFF0000
DISCORD_COLOR_ERROR = 0xFFAA00

# Cache configuration
CACHE_DIR_NAME = ".sui_invariant_monitor_cache"
CACHE_VERSION = "1"  # Increment to invalidate all caches
