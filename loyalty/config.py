# loyalty/config.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from loyalty.errors import ConfigError
from utils.time import parse_interval

DEFAULT_ACCRUAL_ADDRESS = "http://localhost:8080"


@dataclass
class LoyaltySettings:
    """Accrual worker runtime configuration."""
    accrual_base_url: str = DEFAULT_ACCRUAL_ADDRESS
    accrual_timeout_s: float = 10.0
    default_retry_after_s: float = 60.0

    base_interval_s: float = 1.0
    unavailable_interval_s: float = 10.0
    batch_limit: Optional[int] = None       # None = fetch every pending order

    control_host: str = "127.0.0.1"
    control_port: int = 8081
    control_token: Optional[str] = None

    seed_orders: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_cfg(cls, cfg: Mapping[str, Any]) -> "LoyaltySettings":
        accrual_cfg = cfg.get("accrual") or {}
        rec_cfg = cfg.get("reconciler") or {}
        control_cfg = cfg.get("control") or {}

        try:
            base_url = str(accrual_cfg.get("base_url") or DEFAULT_ACCRUAL_ADDRESS).rstrip("/")
            if "://" not in base_url:
                base_url = f"http://{base_url}"

            batch_limit = int(rec_cfg.get("batch_limit", 0) or 0)
            settings = cls(
                accrual_base_url=base_url,
                accrual_timeout_s=parse_interval(accrual_cfg.get("timeout_s", 10)),
                default_retry_after_s=parse_interval(accrual_cfg.get("default_retry_after_s", 60)),
                base_interval_s=parse_interval(rec_cfg.get("base_interval", "1s")),
                unavailable_interval_s=parse_interval(rec_cfg.get("unavailable_interval", "10s")),
                batch_limit=batch_limit if batch_limit > 0 else None,
                control_host=str(control_cfg.get("host", "127.0.0.1")),
                control_port=int(control_cfg.get("port", 8081)),
                control_token=control_cfg.get("token") or None,
                seed_orders=list(cfg.get("seed_orders") or []),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid config: {e}") from e

        if settings.accrual_timeout_s <= 0:
            raise ConfigError("accrual.timeout_s must be positive")
        if settings.base_interval_s <= 0:
            raise ConfigError("reconciler.base_interval must be positive")
        return settings
