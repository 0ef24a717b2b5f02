# utils/config.py
import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from utils.logger import logger


def _resolve_env(obj):
    if isinstance(obj, dict):
        return {k: _resolve_env(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve_env(v) for v in obj]
    if isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
        varname = obj[2:-1]
        return os.getenv(varname, "")
    return obj


def load_cfg(cfg_path: str | None = None) -> Dict[str, Any]:
    """
    Load config.yaml (or cfg_path) and substitute ${VAR} values from the
    environment. A .env file next to the config is loaded first.
    """
    base_dir = Path(__file__).resolve().parents[1]

    cfg_file = Path(cfg_path) if cfg_path else (base_dir / "config.yaml")

    load_dotenv(cfg_file.parent / ".env")

    with open(cfg_file, "r", encoding="utf-8") as f:
        raw_cfg = yaml.safe_load(f) or {}

    cfg = _resolve_env(raw_cfg)

    accrual_cfg = cfg.get("accrual") or {}
    if not accrual_cfg.get("base_url"):
        logger.warning(f"accrual.base_url is empty in {cfg_file}, the default address will be used")

    return cfg
