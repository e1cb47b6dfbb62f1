import os
from dotenv import load_dotenv

# Load Environment Variables from project root .env
env_path = os.path.join(os.path.dirname(__file__), "../.env")
load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # ═══════════════════════════════════════════════════════════════════
    # PUMP BATCH ENGINE CONFIGURATION (.env-Based)
    # ═══════════════════════════════════════════════════════════════════

    # --- Console ---
    SILENT_MODE = _env_bool("SILENT_MODE", False)
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Paths
    LOG_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../logs"))

    # RPC
    RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
    COMMITMENT = os.getenv("SOLANA_COMMITMENT", "confirmed")

    # --- Batch Packing ---
    BATCH_MAX_OPS_PER_BATCH = int(os.getenv("BATCH_MAX_OPS_PER_BATCH", "3"))
    BATCH_MAX_PARALLEL = int(os.getenv("BATCH_MAX_PARALLEL", "1"))  # Batches in flight
    BATCH_DELAY_BETWEEN_MS = int(os.getenv("BATCH_DELAY_BETWEEN_MS", "1000"))
    BATCH_MAX_PROBE_SIZE = int(os.getenv("BATCH_MAX_PROBE_SIZE", "20"))
    BATCH_DYNAMIC_SIZING = _env_bool("BATCH_DYNAMIC_SIZING", False)

    # --- Failure Policy ---
    BATCH_RETRY_FAILED = _env_bool("BATCH_RETRY_FAILED", False)
    BATCH_DISABLE_FALLBACK_RETRY = _env_bool("BATCH_DISABLE_FALLBACK_RETRY", False)
    BATCH_FAIL_FAST = _env_bool("BATCH_FAIL_FAST", False)

    # --- Slippage ---
    BONDING_CURVE_BUY_SLIPPAGE_BPS = 1000  # 10% ceiling on SOL paid
    AMM_SLIPPAGE_BPS = 100  # 1%
    MIN_SOL_OUTPUT_LAMPORTS = 1_000  # 0.000001 SOL floor on sells

    # Pump program uses the expected token amount only as an estimate
    BUY_EXPECTED_TOKEN_AMOUNT = 100_000_000
    INCLUDE_FEE_ACCOUNTS = _env_bool("PUMP_INCLUDE_FEE_ACCOUNTS", True)

    # --- Submission ---
    SUBMIT_MAX_RETRIES = int(os.getenv("SUBMIT_MAX_RETRIES", "3"))
    SUBMIT_RETRY_BASE_DELAY_SEC = float(os.getenv("SUBMIT_RETRY_BASE_DELAY_SEC", "1.0"))
    SKIP_PREFLIGHT = _env_bool("SKIP_PREFLIGHT", False)
