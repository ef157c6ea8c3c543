"""Console context: the objects every page shares, built from configuration.

Construct one ``ConsoleContext`` at process start (or per test) and pass it to
page code. Nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from typing import Optional

from console.shared.core.configuration import ConsoleConfig
from console.shared.infrastructure.api import ApiClient, RequestClient
from console.state.app_state import SHELL_SEGMENT, create_shell_segment
from console.state.attempts import AttemptTracker
from console.state.orchestrator import Orchestrator
from console.state.store import Store

logger = logging.getLogger(__name__)


class ConsoleContext:
    """Store, shell segment, attempt tracker, orchestrator and API client.

    Usage:
        context = ConsoleContext(config)
        context.orchestrator.run("fetch-nodes", context.api.get("/nodes"))
    """

    def __init__(self, config: Optional[ConsoleConfig] = None, api: Optional[RequestClient] = None) -> None:
        self.config = config or ConsoleConfig()
        self.store = Store(self.config.store)
        self.store.register(SHELL_SEGMENT, create_shell_segment(self.config.store.max_notifications))
        self.attempts = AttemptTracker(self.store)
        self.orchestrator = Orchestrator(
            self.store,
            self.attempts,
            fallback_message=self.config.api.fallback_error_message,
        )
        self._api = api
        self._owns_api = api is None
        logger.debug(f"ConsoleContext: Initialized with segments {self.store.segment_names}")

    @property
    def api(self) -> RequestClient:
        """Request collaborator, created from ``config.api`` on first use."""
        if self._api is None:
            self._api = ApiClient(self.config.api)
        return self._api

    async def aclose(self) -> None:
        """Wait for running operations, then close the client this context created."""
        await self.orchestrator.wait_until_idle()
        if self._owns_api and isinstance(self._api, ApiClient):
            await self._api.aclose()
