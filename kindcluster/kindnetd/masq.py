"""IP masquerade rules for traffic leaving the pod network."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from typing import Protocol

logger = logging.getLogger(__name__)

MASQ_CHAIN_NAME = "KIND-MASQ-AGENT"

_LOCAL_TRAFFIC_COMMENT = "kind-masq-agent: local traffic is not subject to MASQUERADE"
_OUTBOUND_COMMENT = (
    "kind-masq-agent: outbound traffic is subject to MASQUERADE (must be last in chain)"
)
_POSTROUTING_COMMENT = (
    "kind-masq-agent: ensure nat POSTROUTING directs all non-LOCAL destination "
    "traffic to our custom KIND-MASQ-AGENT chain"
)

_MAX_CONSECUTIVE_FAILURES = 3


class IPTables(Protocol):
    """The iptables operations the agent needs."""

    def list_chains(self, table: str) -> list[str]: ...

    def new_chain(self, table: str, chain: str) -> None: ...

    def append_unique(self, table: str, chain: str, *rulespec: str) -> None: ...


class MasqSyncError(RuntimeError):
    """Raised when the masquerade rules cannot be synchronised."""


class IPMasqAgent:
    """Keeps non-masquerade rules for cluster CIDRs installed in the nat table."""

    def __init__(
        self,
        iptables: IPTables,
        no_masquerade_cidrs: Iterable[str],
        masq_chain: str = MASQ_CHAIN_NAME,
    ) -> None:
        self.iptables = iptables
        self.no_masquerade_cidrs = list(no_masquerade_cidrs)
        self.masq_chain = masq_chain

    def sync_rules(self) -> None:
        """Ensure the masquerade chain and its rules exist."""
        try:
            chains = self.iptables.list_chains("nat")
        except Exception as exc:
            raise MasqSyncError(f"failed to list chains: {exc}") from exc
        if self.masq_chain not in chains:
            self.iptables.new_chain("nat", self.masq_chain)

        # pods should be able to talk to other pods without masquerade
        for cidr in self.no_masquerade_cidrs:
            self.iptables.append_unique(
                "nat", self.masq_chain,
                "-d", cidr, "-j", "RETURN",
                "-m", "comment", "--comment", _LOCAL_TRAFFIC_COMMENT,
            )

        self.iptables.append_unique(
            "nat", self.masq_chain,
            "-j", "MASQUERADE",
            "-m", "comment", "--comment", _OUTBOUND_COMMENT,
        )

        self.iptables.append_unique(
            "nat", "POSTROUTING",
            "-m", "addrtype", "!", "--dst-type", "LOCAL",
            "-j", self.masq_chain,
            "-m", "comment", "--comment", _POSTROUTING_COMMENT,
        )

    def sync_rules_forever(
        self,
        interval: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Resync the rules every interval seconds.

        Raises MasqSyncError once more than three consecutive syncs fail.
        """
        failures = 0
        while True:
            try:
                self.sync_rules()
            except Exception as exc:
                failures += 1
                logger.warning("failed to sync masquerade rules: %s", exc)
                if failures > _MAX_CONSECUTIVE_FAILURES:
                    raise MasqSyncError(
                        f"Can't synchronize rules after 3 attempts: {exc}"
                    ) from exc
            else:
                failures = 0
            sleep(interval)