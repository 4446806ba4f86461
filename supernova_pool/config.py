# supernova_pool/config.py
import copy
import logging
import os
from typing import Any, Dict

import yaml

log = logging.getLogger(__name__)

CONFIG_FILENAME = "supernova_config.yaml"

# 1% expressed in 18-decimal bonus fixed point
PERCENT = 10**16

# -------- Defaults --------
_DEFAULT: Dict[str, Any] = {
    "pool": {
        # time bonus grows from +33% to +100% over five days
        "bonus_min_percent": 33,
        "bonus_max_percent": 100,
        "bonus_period": 432000,
    },
    "persistence": {
        "data_dir": "data",
        "filename": "pool_state.json",
        "keep_backups": 2,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    },
}

# -------- ENV overrides --------
_ENV_MAP = {
    ("pool", "bonus_min_percent"): ("SUPERNOVA_BONUS_MIN_PERCENT", int),
    ("pool", "bonus_max_percent"): ("SUPERNOVA_BONUS_MAX_PERCENT", int),
    ("pool", "bonus_period"): ("SUPERNOVA_BONUS_PERIOD", int),
    ("persistence", "data_dir"): ("SUPERNOVA_DATA_DIR", str),
    ("logging", "level"): ("SUPERNOVA_LOG_LEVEL", str),
}


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in (overlay or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    for (section, key), (env_name, cast) in _ENV_MAP.items():
        val = os.getenv(env_name)
        if val is None:
            continue
        try:
            casted = cast(val)
        except ValueError:
            log.warning("ignoring %s=%r: not a valid %s", env_name, val, cast.__name__)
            continue
        cfg.setdefault(section, {})
        cfg[section][key] = casted
    return cfg


def load_config(repo_root: str) -> Dict[str, Any]:
    """
    Loads the YAML config from repo_root/supernova_config.yaml.
    Returns defaults if the file doesn't exist or can't be parsed.
    Also applies ENV overrides for the keys in _ENV_MAP.
    """
    path = os.path.join(repo_root, CONFIG_FILENAME)
    cfg = copy.deepcopy(_DEFAULT)

    if os.path.exists(path):
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            cfg = _deep_merge(cfg, data)
        except (OSError, yaml.YAMLError) as e:
            log.warning("could not read %s, using defaults: %s", path, e)

    return _apply_env_overrides(cfg)


# -------- Small helpers --------
def get_bonus_params(cfg: Dict[str, Any]) -> Dict[str, int]:
    """
    Time bonus parameters in 18-decimal fixed point, ready to pass to
    SuperNovaPool(bonus_min=..., bonus_max=..., bonus_period=...).
    """
    pool = cfg.get("pool", {})
    return {
        "bonus_min": int(pool.get("bonus_min_percent", 33)) * PERCENT,
        "bonus_max": int(pool.get("bonus_max_percent", 100)) * PERCENT,
        "bonus_period": int(pool.get("bonus_period", 432000)),
    }


def get_store_params(cfg: Dict[str, Any]) -> Dict[str, Any]:
    persistence = cfg.get("persistence", {})
    return {
        "data_dir": str(persistence.get("data_dir", "data")),
        "filename": str(persistence.get("filename", "pool_state.json")),
        "keep_backups": int(persistence.get("keep_backups", 2)),
    }


def configure_logging(cfg: Dict[str, Any]) -> None:
    section = cfg.get("logging", {})
    level = str(section.get("level", "INFO")).upper()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=level, format=section.get("format", _DEFAULT["logging"]["format"]))
    else:
        logging.getLogger().setLevel(level)
