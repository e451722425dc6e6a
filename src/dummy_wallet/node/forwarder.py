"""Relays signed transactions to the network's nodes."""

from __future__ import annotations

import logging
import threading

import httpx

from dummy_wallet.errors import DummyWalletError
from dummy_wallet.network.models import NodeConfig, NoHostSpecifiedError


class ForwarderError(DummyWalletError):
    """No node accepted the transaction."""


class Forwarder:
    """Submit transactions round-robin across hosts, ``retries`` extra tries each."""

    def __init__(
        self,
        logger: logging.Logger,
        node_config: NodeConfig,
        client: httpx.Client | None = None,
    ) -> None:
        hosts = [h.rstrip("/") for h in node_config.hosts if h.strip()]
        if not hosts:
            raise NoHostSpecifiedError()
        self.logger = logger
        self.hosts = hosts
        self.retries = node_config.retries
        self._client = client or httpx.Client(timeout=10.0)
        self._next = 0
        self._lock = threading.Lock()

    def _next_host(self) -> str:
        with self._lock:
            host = self.hosts[self._next]
            self._next = (self._next + 1) % len(self.hosts)
        return host

    def send_tx(self, tx: dict) -> str:
        """Forward *tx* and return the transaction hash reported by the node."""
        errors: list[str] = []
        for _ in range(len(self.hosts)):
            host = self._next_host()
            for attempt in range(self.retries + 1):
                try:
                    resp = self._client.post(f"{host}/transaction", json=tx)
                    resp.raise_for_status()
                    tx_hash = str(resp.json()["txHash"])
                except (httpx.HTTPError, KeyError, ValueError) as exc:
                    self.logger.debug(
                        f"Couldn't send transaction (host={host}, attempt={attempt + 1}, error={exc})"
                    )
                    errors.append(f"{host}: {exc}")
                    continue
                self.logger.info(f"Transaction sent (host={host}, tx-hash={tx_hash})")
                return tx_hash

        self.logger.error("Transaction couldn't be sent to any node")
        raise ForwarderError("couldn't send the transaction: " + "; ".join(errors[-len(self.hosts):]))

    def stop(self) -> None:
        self._client.close()


def new_forwarder(logger: logging.Logger, node_config: NodeConfig) -> Forwarder:
    return Forwarder(logger, node_config)
