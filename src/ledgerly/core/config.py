"""Settings management for ledgerly.

Loads a JSON settings file over built-in defaults. Environment variables:

- LEDGERLY_CONFIG: path to the settings file
- LEDGERLY_DATA_ROOT: directory holding the database (default ./Data)
- LEDGERLY_DB_PATH: explicit database path, overrides the settings file
"""

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

FIAT_CURRENCIES = [
    "EUR", "USD", "GBP", "CHF", "JPY", "CAD", "AUD",
    "NOK", "SEK", "DKK", "PLN", "CZK", "HUF", "RON",
]
CRYPTO_CURRENCIES = ["BTC", "ETH", "SOL", "USDC", "USDT", "XRP", "BNB", "ADA"]

DEFAULT_SETTINGS = {
    "$schema": "ledgerly_settings_v1",
    "version": "1.0",

    "database": {
        "path": None  # Computed from the data root
    },

    "imports": {
        "default_currency": "EUR",
        "store_row_details": True,
        "supported_currencies": FIAT_CURRENCIES + CRYPTO_CURRENCIES
    },

    "logging": {
        "level": "WARNING"
    }
}


def get_data_root() -> Path:
    """Get ledgerly data root directory."""
    if "LEDGERLY_DATA_ROOT" in os.environ:
        return Path(os.environ["LEDGERLY_DATA_ROOT"])
    return Path.cwd() / "Data"


@dataclass
class ImportSettings:
    """Configuration for statement imports."""
    default_currency: str = "EUR"
    store_row_details: bool = True
    supported_currencies: List[str] = field(
        default_factory=lambda: FIAT_CURRENCIES + CRYPTO_CURRENCIES
    )

    def is_supported_currency(self, code: str) -> bool:
        """Check whether a currency code may be stored."""
        return code in self.supported_currencies


@dataclass
class DatabaseSettings:
    """Configuration for the SQLite store."""
    path: Path = field(default_factory=lambda: get_data_root() / "ledgerly.db")


class Settings:
    """
    Application settings with fallback to defaults.

    Usage:
        settings = Settings.load()
        conn = DatabaseManager().init(str(settings.database.path))
        pipeline = ImportPipeline(conn, settings.imports)
    """

    def __init__(self, data: Dict[str, Any]):
        """Initialize from settings dictionary."""
        self._raw = data

        imports = data.get("imports", {})
        self.imports = ImportSettings(
            default_currency=imports.get("default_currency", "EUR"),
            store_row_details=imports.get("store_row_details", True),
            supported_currencies=[
                code.upper()
                for code in imports.get(
                    "supported_currencies", FIAT_CURRENCIES + CRYPTO_CURRENCIES
                )
            ],
        )

        db_path = os.environ.get("LEDGERLY_DB_PATH") or data.get("database", {}).get("path")
        self.database = DatabaseSettings(
            path=Path(db_path) if db_path else get_data_root() / "ledgerly.db"
        )

        self.log_level = data.get("logging", {}).get("level", "WARNING").upper()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        """
        Load settings with fallback to defaults.

        Args:
            config_path: Settings JSON file. Falls back to LEDGERLY_CONFIG,
                then to <data root>/config/settings.json.

        Returns:
            Settings instance
        """
        data = copy.deepcopy(DEFAULT_SETTINGS)

        if config_path is None:
            env_path = os.environ.get("LEDGERLY_CONFIG")
            config_path = Path(env_path) if env_path else get_data_root() / "config" / "settings.json"

        config_path = Path(config_path)
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    user_data = json.load(f)
                data = cls._deep_merge(data, user_data)
                logger.debug(f"Loaded settings from {config_path}")
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to load settings from {config_path}: {e}")

        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = Settings._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Return the merged settings dictionary."""
        return copy.deepcopy(self._raw)
