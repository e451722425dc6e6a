"""Pydantic models for a network configuration file."""

from __future__ import annotations

from pydantic import BaseModel, Field

from dummy_wallet.errors import DummyWalletError


class NoHostSpecifiedError(DummyWalletError):
    def __init__(self) -> None:
        super().__init__("no host specified in the configuration")


class NodeConfig(BaseModel):
    """The nodes the wallet forwards transactions and queries to."""

    hosts: list[str] = Field(default_factory=list)
    retries: int = Field(default=5, ge=0)


class APIConfig(BaseModel):
    node: NodeConfig = Field(default_factory=NodeConfig)


class NetworkConfig(BaseModel):
    """Configuration of one network the service can be started against."""

    name: str = ""
    host: str = "127.0.0.1"
    port: int = 1789
    token_expiry: int = Field(default=7 * 24 * 3600, gt=0)  # seconds
    api: APIConfig = Field(default_factory=APIConfig)

    def ensure_can_connect_node(self) -> None:
        """Raise :class:`NoHostSpecifiedError` if no usable node host is configured."""
        hosts = [h for h in self.api.node.hosts if h.strip()]
        if not hosts:
            raise NoHostSpecifiedError()
