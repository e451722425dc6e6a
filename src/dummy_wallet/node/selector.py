"""Node selection with bounded retries.

A :class:`RetryingNode` wraps one host and retries failed calls a fixed
number of times. A :class:`RoundRobinSelector` hands out the next node that
answers a health probe, cycling through the configured hosts.
"""

from __future__ import annotations

import logging
import threading

import httpx

from dummy_wallet.errors import DummyWalletError
from dummy_wallet.network.models import NoHostSpecifiedError


class NodeRequestError(DummyWalletError):
    """A node didn't answer successfully within its retry budget."""


class NoHealthyNodeError(DummyWalletError):
    def __init__(self) -> None:
        super().__init__("no healthy node available")


class RetryingNode:
    """One node, every call retried up to ``retries`` extra times."""

    def __init__(
        self,
        logger: logging.Logger,
        host: str,
        retries: int,
        client: httpx.Client | None = None,
    ) -> None:
        self.logger = logger
        self.host = host.rstrip("/")
        self.retries = retries
        self._client = client or httpx.Client(timeout=10.0)

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request, retrying on transport errors and 5xx answers."""
        url = f"{self.host}{path}"
        last_error: Exception | None = None
        for attempt in range(self.retries + 1):
            try:
                resp = self._client.request(method, url, **kwargs)
                if resp.status_code < 500:
                    resp.raise_for_status()
                    return resp
                last_error = httpx.HTTPStatusError(
                    f"server error {resp.status_code}", request=resp.request, response=resp
                )
            except httpx.HTTPStatusError as exc:
                # 4xx answers aren't worth retrying.
                raise NodeRequestError(f"{method} {url} failed: {exc}") from exc
            except httpx.HTTPError as exc:
                last_error = exc
            self.logger.debug(f"Node request failed (host={self.host}, attempt={attempt + 1}, error={last_error})")
        raise NodeRequestError(
            f"{method} {url} failed after {self.retries + 1} attempts: {last_error}"
        ) from last_error

    def statistics(self) -> dict:
        return self.request("GET", "/statistics").json().get("statistics", {})

    def health_check(self) -> bool:
        try:
            self.request("GET", "/statistics")
        except NodeRequestError as exc:
            self.logger.warning(f"Node is not healthy (host={self.host}, error={exc})")
            return False
        return True

    def get_chain_id(self) -> str:
        return str(self.statistics()["chainId"])

    def send_transaction(self, tx: dict) -> str:
        """Submit a signed transaction and return its hash."""
        resp = self.request("POST", "/transaction", json=tx)
        return str(resp.json()["txHash"])

    def stop(self) -> None:
        self._client.close()


class RoundRobinSelector:
    """Cycle through nodes, skipping the ones failing their health probe."""

    def __init__(self, logger: logging.Logger, nodes: list[RetryingNode]) -> None:
        if not nodes:
            raise NoHostSpecifiedError()
        self.logger = logger
        self.nodes = nodes
        self._next = 0
        self._lock = threading.Lock()

    def select_node(self) -> RetryingNode:
        with self._lock:
            start = self._next
            self._next = (self._next + 1) % len(self.nodes)

        for offset in range(len(self.nodes)):
            node = self.nodes[(start + offset) % len(self.nodes)]
            if node.health_check():
                self.logger.debug(f"Node selected (host={node.host})")
                return node

        self.logger.error("No healthy node available")
        raise NoHealthyNodeError()

    def stop(self) -> None:
        for node in self.nodes:
            node.stop()


def build_round_robin_selector_with_retrying_nodes(
    logger: logging.Logger,
    hosts: list[str],
    retries: int,
    client: httpx.Client | None = None,
) -> RoundRobinSelector:
    """Build a selector with one :class:`RetryingNode` per host."""
    hosts = [h for h in hosts if h.strip()]
    if not hosts:
        raise NoHostSpecifiedError()
    nodes = [RetryingNode(logger, host, retries, client=client) for host in hosts]
    return RoundRobinSelector(logger, nodes)
