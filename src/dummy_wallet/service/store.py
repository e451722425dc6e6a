"""Persistent state of the service: the secret used to sign session tokens."""

from __future__ import annotations

import secrets
from pathlib import Path

from pydantic import BaseModel, ValidationError

from dummy_wallet.config import load_yaml, save_yaml, service_dir
from dummy_wallet.errors import DummyWalletError


class ServiceStoreError(DummyWalletError):
    """The service store couldn't be opened or read."""


class ServiceNotInitialisedError(DummyWalletError):
    def __init__(self) -> None:
        super().__init__(
            "first, you need initialise the program, using the `service init` command"
        )


class ServiceConfig(BaseModel):
    token_signing_secret: str


class ServiceStore:
    """Service state saved as ``<home>/service/config.yaml``."""

    def __init__(self, service_path: Path) -> None:
        self.service_path = service_path

    @property
    def config_path(self) -> Path:
        return self.service_path / "config.yaml"

    def config_exists(self) -> bool:
        return self.config_path.is_file()

    def get_config(self) -> ServiceConfig:
        try:
            return ServiceConfig.model_validate(load_yaml(self.config_path))
        except (OSError, ValueError, ValidationError) as exc:
            raise ServiceStoreError(f"couldn't read the service configuration: {exc}") from exc

    def save_config(self, cfg: ServiceConfig) -> None:
        save_yaml(cfg.model_dump(mode="python"), self.config_path)


def initialise_store(home: Path) -> ServiceStore:
    """Open the service store under *home*, creating its directory if needed."""
    path = service_dir(home)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ServiceStoreError(f"couldn't create service directory {path}: {exc}") from exc
    return ServiceStore(path)


def is_initialised(store: ServiceStore) -> bool:
    """Tell whether :func:`initialise` has been run against *store*."""
    if not store.config_exists():
        return False
    return bool(store.get_config().token_signing_secret)


def initialise(store: ServiceStore, force: bool = False) -> None:
    """Generate the token signing secret.

    An existing secret is kept unless *force* is set; regenerating it
    invalidates every token issued so far.
    """
    if is_initialised(store) and not force:
        return
    store.save_config(ServiceConfig(token_signing_secret=secrets.token_hex(32)))
