"""File-backed network configuration store."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError

from dummy_wallet.config import load_yaml, networks_dir, save_yaml
from dummy_wallet.errors import DummyWalletError
from dummy_wallet.network.models import NetworkConfig


class NetworkStoreError(DummyWalletError):
    """The network store couldn't be opened or a file couldn't be parsed."""


class NetworkDoesNotExistError(DummyWalletError):
    def __init__(self, name: str) -> None:
        super().__init__(f"network \"{name}\" does not exist")
        self.name = name


class NetworkAlreadyExistsError(DummyWalletError):
    def __init__(self, name: str) -> None:
        super().__init__(f"network \"{name}\" already exists")
        self.name = name


class NetworkStore:
    """Networks saved as ``<home>/networks/<name>.yaml``."""

    def __init__(self, networks_path: Path) -> None:
        self.networks_path = networks_path

    def _path(self, name: str) -> Path:
        return self.networks_path / f"{name}.yaml"

    def list_networks(self) -> list[str]:
        return sorted(p.stem for p in self.networks_path.glob("*.yaml") if p.is_file())

    def network_exists(self, name: str) -> bool:
        if not name or "/" in name or "\\" in name:
            return False
        return self._path(name).is_file()

    def get_network(self, name: str) -> NetworkConfig:
        """Load and validate the named network.

        Raises :class:`NetworkDoesNotExistError` if it isn't stored.
        """
        if not self.network_exists(name):
            raise NetworkDoesNotExistError(name)
        try:
            cfg = NetworkConfig.model_validate(load_yaml(self._path(name)))
        except (ValueError, ValidationError) as exc:
            raise NetworkStoreError(f"invalid configuration for network \"{name}\": {exc}") from exc
        # The file name is authoritative.
        cfg.name = name
        return cfg

    def save_network(self, cfg: NetworkConfig) -> None:
        save_yaml(cfg.model_dump(mode="python"), self._path(cfg.name))

    def import_network(
        self, source: Path, name: str | None = None, force: bool = False
    ) -> NetworkConfig:
        """Copy a network configuration file into the store.

        The network is named after *name*, else the ``name`` field of the
        file, else the file stem. Existing networks are only overwritten when
        *force* is set.
        """
        try:
            data = load_yaml(source)
            cfg = NetworkConfig.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            raise NetworkStoreError(f"couldn't read network file {source}: {exc}") from exc

        cfg.name = name or cfg.name or source.stem
        if self.network_exists(cfg.name) and not force:
            raise NetworkAlreadyExistsError(cfg.name)
        self.save_network(cfg)
        return cfg


def initialise_store(home: Path) -> NetworkStore:
    """Open the network store under *home*, creating its directory if needed."""
    path = networks_dir(home)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise NetworkStoreError(f"couldn't create networks directory {path}: {exc}") from exc
    return NetworkStore(path)
