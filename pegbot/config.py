import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()

REQUIRED_ENV = [
    "USER_KEYPAIR_PATH",
]


def missing_required_env() -> list[str]:
    return [var for var in REQUIRED_ENV if not os.getenv(var)]


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


# Solana
CLUSTER = os.getenv("CLUSTER", "mainnet-beta")
_DEFAULT_RPC = {
    "devnet": "https://api.devnet.solana.com",
    "mainnet-beta": "https://api.mainnet-beta.solana.com",
}
RPC_URL = os.getenv("SOLANA_RPC_URL") or _DEFAULT_RPC.get(CLUSTER, _DEFAULT_RPC["mainnet-beta"])
SOLANA_RPC_TIMEOUT_SEC = int(os.getenv("SOLANA_RPC_TIMEOUT_SEC", "8"))  # per-call soft timeout safeguard
SOLANA_CONFIRM_TIMEOUT_SEC = int(os.getenv("SOLANA_CONFIRM_TIMEOUT_SEC", "60"))
EXPLORER_TX_URL = os.getenv("EXPLORER_TX_URL", "https://explorer.solana.com/tx")

# Wallet
USER_KEYPAIR_PATH = os.getenv("USER_KEYPAIR_PATH")

# Token mints
INPUT_MINT_ADDRESS = os.getenv("INPUT_MINT_ADDRESS", "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v")  # USDC
OUTPUT_MINT_ADDRESS = os.getenv("OUTPUT_MINT_ADDRESS", "USDH1SM1ojwWUga67PGrgFWUHibbjqMvuMaDkRJTgkX")  # USDH

# Jupiter
JUPITER_API_URL = os.getenv("JUPITER_API_URL", "https://quote-api.jup.ag/v6").rstrip("/")
_DEFAULT_TOKEN_LIST = {
    "devnet": "https://api.jup.ag/api/tokens/devnet",
    "mainnet-beta": "https://cache.jup.ag/tokens",
}
TOKEN_LIST_URL = os.getenv("TOKEN_LIST_URL") or _DEFAULT_TOKEN_LIST.get(CLUSTER, _DEFAULT_TOKEN_LIST["mainnet-beta"])
CACHE_DURATION_MS = int(os.getenv("CACHE_DURATION_MS", "4000"))
HTTP_TIMEOUT_SEC = int(os.getenv("HTTP_TIMEOUT_SEC", "15"))

# Polling
POLL_INTERVAL_SEC = int(os.getenv("POLL_INTERVAL_SEC", "20"))
STOP_ON_ERROR = _flag("STOP_ON_ERROR", "false")  # true = first fault ends the loop
DRY_RUN = _flag("DRY_RUN", "false")
SHOW_POSSIBLE_PAIRS = _flag("SHOW_POSSIBLE_PAIRS", "false")

# Trading (amounts in UI units of the token being sold)
SLIPPAGE_PCT = float(os.getenv("SLIPPAGE_PCT", "0.5"))  # 0.5 = 0.5%
SELL_AMOUNT = Decimal(os.getenv("SELL_AMOUNT", "27000"))
SELL_MIN_BALANCE = Decimal(os.getenv("SELL_MIN_BALANCE", "27000"))
BUY_AMOUNT = Decimal(os.getenv("BUY_AMOUNT", "26000"))
BUY_MIN_BALANCE = Decimal(os.getenv("BUY_MIN_BALANCE", "26000"))

# Ratio bands. With RATIO_NORMALIZE_DECIMALS=false the ratio is taken on raw
# smallest-unit amounts and these values must be scaled accordingly.
RATIO_NORMALIZE_DECIMALS = _flag("RATIO_NORMALIZE_DECIMALS", "true")
SELL_RATIO_ABOVE = Decimal(os.getenv("SELL_RATIO_ABOVE", "0.985"))
BUY_RATIO_BELOW = Decimal(os.getenv("BUY_RATIO_BELOW", "0.970"))
BUY_CONFIRM_RATIO_ABOVE = Decimal(os.getenv("BUY_CONFIRM_RATIO_ABOVE", "1.030"))
CONFIRM_MAX_AGE_SEC = float(os.getenv("CONFIRM_MAX_AGE_SEC", str(CACHE_DURATION_MS / 1000)))
