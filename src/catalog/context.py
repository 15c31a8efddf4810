"""Process-wide catalog context.

Built once at start-up and passed explicitly to the search coordinator and
operation controllers, so tests can swap the gateway or the executor.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from common.tasks import ThreadPerTaskExecutor
from constants import Constants, InstallScopes, _load_yaml_config, apply_config_overrides

from .gateway import CatalogGateway

logger = logging.getLogger(__name__)


@dataclass
class CatalogContext:
    """Gateway plus the runtime settings the core needs."""

    gateway: CatalogGateway
    executor: Executor = field(default_factory=ThreadPerTaskExecutor)
    result_limit: int = Constants.SEARCH_RESULT_LIMIT
    install_scope: InstallScopes = InstallScopes.ANY

    @classmethod
    def from_config(
        cls,
        gateway: CatalogGateway,
        config_path: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        executor: Optional[Executor] = None,
    ) -> "CatalogContext":
        """Create a context from a YAML config file or an already parsed mapping.

        Values are applied onto ``Constants`` first and then snapshotted, so
        later changes to ``Constants`` do not affect this context.

        Raises:
            CatalogConfigError: if the config carries invalid values.
        """
        cfg = config if config is not None else _load_yaml_config(config_path)
        apply_config_overrides(cfg)
        logger.debug(
            "Catalog context: result_limit=%d scope=%s",
            Constants.SEARCH_RESULT_LIMIT,
            Constants.DEFAULT_INSTALL_SCOPE,
        )
        return cls(
            gateway=gateway,
            executor=executor or ThreadPerTaskExecutor(),
            result_limit=Constants.SEARCH_RESULT_LIMIT,
            install_scope=InstallScopes(Constants.DEFAULT_INSTALL_SCOPE),
        )

    def shutdown(self, wait: bool = True) -> None:
        self.executor.shutdown(wait=wait)
