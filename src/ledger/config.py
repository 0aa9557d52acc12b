"""
Ledger Layer - Configuration
Loads config/config.json over built-in defaults
"""
import json
import os
from typing import Any, Dict, Optional

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), '..', '..', 'config', 'config.json')

DEFAULT_CONFIG: Dict[str, Any] = {
    "chain_id": "utxo-ledger-1",
    "scan_order": "submission",
    "verbose": False,
    # simulation only
    "num_owners": 4,
    "chain_length": 3,
    "seed": 0,
}


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration, falling back to defaults for missing keys.

    A missing or unparsable file yields the defaults unchanged.
    """
    config = dict(DEFAULT_CONFIG)
    config_path = path or DEFAULT_CONFIG_PATH
    try:
        with open(config_path, 'r', encoding='utf-8') as cf:
            loaded = json.load(cf)
    except (OSError, json.JSONDecodeError):
        return config

    if isinstance(loaded, dict):
        config.update(loaded)
    return config
