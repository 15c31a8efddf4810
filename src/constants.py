"""Constants and runtime tunables used across the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class InstallScopes(Enum):
    """Install/uninstall scopes understood by the catalog gateway.

    Args:
        Enum (string): Scope values forwarded to the gateway.
    """

    ANY = "any"
    USER = "user"
    SYSTEM = "system"


class CatalogConfigError(ValueError):
    """Raised when a configuration file carries an unusable value."""


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    SEARCH_RESULT_LIMIT = 25
    DEFAULT_INSTALL_SCOPE = InstallScopes.ANY.value
    TASK_THREAD_NAME_PREFIX = "catalog-scout"
    SHUTDOWN_TIMEOUT_SEC = 5.0
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    LOG_LEVEL = "INFO"

    ENV_LOG_LEVEL = "CATALOG_SCOUT_LOG_LEVEL"
    ENV_CONFIG_PATH = "CATALOG_SCOUT_CONFIG"
    DEFAULT_CONFIG_PATHS = [
        os.path.join("~", ".config", "catalog-scout", "config.yml"),
        os.path.join("~", ".config", "catalog-scout", "config.yaml"),
    ]

    EMPTY_SEARCH_TITLE = "Start typing to search for packages"
    NO_RESULTS_TITLE = "No packages found"


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first available YAML config file.

    Lookup order is the explicit ``path``, then ``$CATALOG_SCOUT_CONFIG``,
    then the default locations under ``~/.config/catalog-scout``.

    Returns:
        Parsed mapping, or an empty dict when no file is found.
    """
    import yaml

    candidates = []
    if path:
        candidates.append(path)
    env_path = os.environ.get(Constants.ENV_CONFIG_PATH)
    if env_path and env_path.strip():
        candidates.append(env_path.strip())
    candidates.extend(Constants.DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        full = os.path.expanduser(candidate)
        if not os.path.isfile(full):
            continue
        with open(full, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise CatalogConfigError(f"Config file {full} must contain a mapping")
        logger.debug("Loaded config from %s", full)
        return data
    return {}


def apply_config_overrides(cfg: Dict[str, Any]) -> None:
    """Apply a parsed config mapping onto ``Constants``.

    Recognised keys: ``search.result_limit``, ``operations.scope`` and
    ``logging.level``. Unknown keys are ignored.

    Raises:
        CatalogConfigError: if a recognised key carries an invalid value.
    """
    search = cfg.get("search") or {}
    if "result_limit" in search:
        try:
            limit = int(search["result_limit"])
        except (TypeError, ValueError) as exc:
            raise CatalogConfigError(
                f"search.result_limit must be an integer, got {search['result_limit']!r}"
            ) from exc
        if limit <= 0:
            raise CatalogConfigError("search.result_limit must be positive")
        Constants.SEARCH_RESULT_LIMIT = limit

    operations = cfg.get("operations") or {}
    if "scope" in operations:
        scope = str(operations["scope"]).strip().lower()
        valid = [s.value for s in InstallScopes]
        if scope not in valid:
            raise CatalogConfigError(
                f"operations.scope must be one of {', '.join(valid)}, got {scope!r}"
            )
        Constants.DEFAULT_INSTALL_SCOPE = scope

    log_cfg = cfg.get("logging") or {}
    if "level" in log_cfg:
        level = str(log_cfg["level"]).strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise CatalogConfigError(f"logging.level {level!r} is not a logging level")
        Constants.LOG_LEVEL = level
