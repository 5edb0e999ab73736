"""Steps run to bring up a cluster once its node containers exist."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

from kindcluster.config import Cluster


class ActionContext:
    """Data shared by all actions, with a cached node list."""

    def __init__(self, logger: Any, status: Any, provider: Any, config: Cluster) -> None:
        self.logger = logger
        self.status = status
        self.provider = provider
        self.config = config
        self._lock = threading.Lock()
        self._nodes: list[Any] | None = None

    def nodes(self) -> list[Any]:
        """Return the cluster's nodes, asking the provider only once."""
        with self._lock:
            cached = self._nodes
        if cached is not None:
            return cached
        found = self.provider.list_nodes(self.config.name)
        with self._lock:
            self._nodes = found
        return found


class Action(ABC):
    """One step of cluster bring-up."""

    @abstractmethod
    def execute(self, ctx: ActionContext) -> None:
        """Run the step; raise on failure."""