import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

# Keep receipts next to this module so the till finds them regardless of cwd.
BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_int(env, name, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(env, name, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_bool(env, name, default):
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Till configuration."""

    api_url: str = "http://localhost:8080/api"
    http_timeout: float = 10.0
    notice_timeout_ms: int = 2000
    confirmation_delay_ms: int = 2500
    receipts_dir: str = os.path.join(BASE_DIR, "receipts")
    default_vat_rate: Decimal = Decimal(0)
    log_level: str = "INFO"
    log_json: bool = False

    @classmethod
    def from_env(cls, env=None):
        env = os.environ if env is None else env
        defaults = cls()
        raw_vat = env.get("POS_DEFAULT_VAT_RATE") or str(defaults.default_vat_rate)
        try:
            vat = Decimal(raw_vat)
        except InvalidOperation:
            raise ValueError(f"POS_DEFAULT_VAT_RATE must be a number, got {raw_vat!r}")
        if not 0 <= vat <= 100:
            raise ValueError("POS_DEFAULT_VAT_RATE must be between 0 and 100")
        return cls(
            api_url=env.get("POS_API_URL", defaults.api_url).rstrip("/"),
            http_timeout=_env_float(env, "POS_HTTP_TIMEOUT", defaults.http_timeout),
            notice_timeout_ms=_env_int(env, "POS_NOTICE_TIMEOUT_MS", defaults.notice_timeout_ms),
            confirmation_delay_ms=_env_int(env, "POS_CONFIRMATION_DELAY_MS", defaults.confirmation_delay_ms),
            receipts_dir=env.get("POS_RECEIPTS_DIR") or defaults.receipts_dir,
            default_vat_rate=vat,
            log_level=env.get("POS_LOG_LEVEL", defaults.log_level).upper(),
            log_json=_env_bool(env, "POS_LOG_JSON", defaults.log_json),
        )
