"""JSON file implementation of the configuration repository."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from idxwatch.config import app_config
from idxwatch.domain.entities import DEFAULT_NEWS_SOURCES, UserConfig, Watchlist
from idxwatch.domain.errors import PersistenceError, StartupError
from idxwatch.domain.interfaces import ConfigRepository

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

# Feeds that stopped publishing; dropped on load.
DEAD_NEWS_SOURCES = ["https://www.kontan.co.id/rss/investasi"]


def migrate_raw(raw: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
    """Bring an older on-disk shape up to date.

    Returns the migrated dict and whether anything changed.
    """
    changed = False
    raw = dict(raw)

    # Single flat holdings list -> named portfolios
    if "portfolio" in raw:
        flat = raw.pop("portfolio") or []
        if not raw.get("portfolios"):
            raw["portfolios"] = [{"name": "Default", "holdings": flat}]
            raw.setdefault("active_portfolio", 0)
        changed = True

    if "news_sources" in raw:
        sources = [u for u in raw["news_sources"] if u not in DEAD_NEWS_SOURCES]
        for url in DEFAULT_NEWS_SOURCES:
            if url not in sources:
                sources.append(url)
        if sources != raw["news_sources"]:
            raw["news_sources"] = sources
            changed = True

    return raw, changed


def normalize(config: UserConfig) -> bool:
    """Repair structural invariants in place. Returns True if anything changed."""
    changed = False
    if not config.watchlists:
        config.watchlists.append(
            Watchlist(name="Default", symbols=["BBCA", "BBRI", "TLKM", "ASII"])
        )
        changed = True
    if not config.portfolios:
        config.portfolios = UserConfig().portfolios
        changed = True
    if not 0 <= config.active_watchlist < len(config.watchlists):
        config.active_watchlist = 0
        changed = True
    if not 0 <= config.active_portfolio < len(config.portfolios):
        config.active_portfolio = len(config.portfolios) - 1
        changed = True
    return changed


class JsonConfigStore(ConfigRepository):
    """Stores the user configuration as pretty-printed JSON."""

    def __init__(self, directory: Optional[str] = None):
        directory = directory or app_config.CONFIG_DIR
        if not directory:
            raise StartupError("Could not determine a configuration directory")
        self.directory = Path(directory)
        self.path = self.directory / CONFIG_FILENAME

    def ensure_directory(self) -> None:
        """Create the configuration directory if needed."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create config directory {self.directory}: {e}")
            raise StartupError(f"Cannot create {self.directory}: {e}") from e

    def load(self) -> UserConfig:
        """Load the configuration, writing back any migration."""
        self.ensure_directory()
        if not self.path.exists():
            config = UserConfig()
            self.save(config)
            logger.info(f"Created default config at {self.path}")
            return config

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            raw, migrated = migrate_raw(raw)
            config = UserConfig.model_validate(raw)
        except (json.JSONDecodeError, ValidationError) as e:
            backup = self.path.with_suffix(".json.corrupt")
            logger.error(f"Unreadable config {self.path}, moving it to {backup}: {e}")
            try:
                self.path.replace(backup)
            except OSError as err:
                raise PersistenceError(f"Cannot move corrupt config: {err}") from err
            config = UserConfig()
            self.save(config)
            return config
        except OSError as e:
            raise PersistenceError(f"Cannot read {self.path}: {e}") from e

        if normalize(config) or migrated:
            logger.info("Config migrated, writing back")
            self.save(config)
        return config

    def save(self, config: UserConfig) -> None:
        """Write the configuration to disk."""
        try:
            self.path.write_text(config.model_dump_json(indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save config to {self.path}: {e}")
            raise PersistenceError(str(e)) from e
