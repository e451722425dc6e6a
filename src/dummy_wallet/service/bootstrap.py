"""Ordered construction of everything the service needs.

Bootstrapping is a fixed pipeline of named stages. Each stage reads the
handles produced by the earlier ones from a :class:`BootstrapContext` and
stores its own handle there. The first failing stage aborts the whole
pipeline; handles built by the stages that already ran are simply dropped.

Collaborators are constructed through :class:`BootstrapDependencies` so any
single one can be replaced, e.g. to make a given stage fail in tests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from dummy_wallet.api.client import ClientAPI, new_client_api
from dummy_wallet.errors import DummyWalletError
from dummy_wallet.interactors.always_agree import AlwaysAgreeInteractor
from dummy_wallet.network import store as network_store
from dummy_wallet.network.models import NetworkConfig
from dummy_wallet.network.store import NetworkDoesNotExistError, NetworkStore
from dummy_wallet.network.version import get_local_version, get_network_version
from dummy_wallet.node.forwarder import Forwarder, new_forwarder
from dummy_wallet.node.selector import (
    RoundRobinSelector,
    build_round_robin_selector_with_retrying_nodes,
)
from dummy_wallet.passphrase import read_passphrase_file
from dummy_wallet.service import store as service_store
from dummy_wallet.service.auth import Auth, new_auth
from dummy_wallet.service.policy import new_automatic_consent_policy
from dummy_wallet.service.server import Service, new_service
from dummy_wallet.service.store import ServiceNotInitialisedError, ServiceStore
from dummy_wallet.wallet import store as wallet_store
from dummy_wallet.wallet.store import WalletStore


class BootstrapError(DummyWalletError):
    """A bootstrap stage failed; the message names what was being done."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(message)
        self.stage = stage


@dataclass
class BootstrapDependencies:
    """Constructors and queries the bootstrap stages call."""

    read_passphrase_file: Callable[..., str] = read_passphrase_file
    initialise_wallet_store: Callable[[Path], WalletStore] = wallet_store.initialise_store
    initialise_network_store: Callable[[Path], NetworkStore] = network_store.initialise_store
    get_network_version: Callable[[list[str]], str] = get_network_version
    get_local_version: Callable[[], str] = get_local_version
    initialise_service_store: Callable[[Path], ServiceStore] = service_store.initialise_store
    is_service_initialised: Callable[[ServiceStore], bool] = service_store.is_initialised
    new_auth: Callable[..., Auth] = new_auth
    new_forwarder: Callable[..., Forwarder] = new_forwarder
    build_node_selector: Callable[..., RoundRobinSelector] = (
        build_round_robin_selector_with_retrying_nodes
    )
    new_interactor: Callable[..., Any] = AlwaysAgreeInteractor
    new_client_api: Callable[..., ClientAPI] = new_client_api
    new_policy: Callable[[], Any] = new_automatic_consent_policy
    new_service: Callable[..., Service] = new_service


@dataclass
class BootstrapContext:
    """Handles produced so far, ``None`` until their stage has run."""

    passphrase: str | None = field(default=None, repr=False)
    wallet_store: WalletStore | None = None
    network_store: NetworkStore | None = None
    network_config: NetworkConfig | None = None
    service_store: ServiceStore | None = None
    auth: Auth | None = None
    forwarder: Forwarder | None = None
    node_selector: RoundRobinSelector | None = None
    interactor: Any = None
    client_api: ClientAPI | None = None
    service: Service | None = None


class Bootstrap:
    """Build the service for one network, one wallet and its passphrase file."""

    STAGES = (
        "read_passphrase",
        "open_wallet_store",
        "unlock_wallet",
        "open_network_store",
        "check_network_exists",
        "fetch_network_config",
        "ensure_can_connect",
        "check_network_version",
        "open_service_store",
        "check_service_initialised",
        "build_auth",
        "build_forwarder",
        "build_node_selector",
        "build_api_client",
        "assemble_service",
    )

    def __init__(
        self,
        home: Path,
        network: str,
        wallet: str,
        passphrase_file: str | Path,
        logger: logging.Logger,
        dependencies: BootstrapDependencies | None = None,
    ) -> None:
        self.home = home
        self.network = network
        self.wallet = wallet
        self.passphrase_file = passphrase_file
        self.logger = logger
        self.deps = dependencies or BootstrapDependencies()
        self.ctx = BootstrapContext()

    def run(self, until: str | None = None) -> BootstrapContext:
        """Run the stages in order, stopping after *until* when given."""
        if until is not None and until not in self.STAGES:
            raise ValueError(f"unknown bootstrap stage '{until}'")
        for name in self.STAGES:
            self.run_stage(name)
            if name == until:
                break
        return self.ctx

    def run_stage(self, name: str) -> None:
        if name not in self.STAGES:
            raise ValueError(f"unknown bootstrap stage '{name}'")
        getattr(self, name)()

    def _fail(self, stage: str, message: str, err: Exception) -> BootstrapError:
        return BootstrapError(stage, f"{message}: {err}")

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    def read_passphrase(self) -> None:
        self.ctx.passphrase = self.deps.read_passphrase_file(self.passphrase_file)

    def open_wallet_store(self) -> None:
        self.logger.debug("Initializing the wallet store...")
        try:
            self.ctx.wallet_store = self.deps.initialise_wallet_store(self.home)
        except Exception as err:
            raise self._fail("open_wallet_store", "couldn't initialise wallets store", err) from err
        self.logger.debug("The wallet store has been initialized")

    def unlock_wallet(self) -> None:
        try:
            self.ctx.wallet_store.get_wallet(self.wallet, self.ctx.passphrase)
        except Exception as err:
            raise self._fail("unlock_wallet", "could not retrieve the wallet", err) from err

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def open_network_store(self) -> None:
        self.logger.debug("Initializing the network store...")
        try:
            self.ctx.network_store = self.deps.initialise_network_store(self.home)
        except Exception as err:
            raise self._fail("open_network_store", "couldn't initialise network store", err) from err
        self.logger.debug("The network store has been initialized")

    def check_network_exists(self) -> None:
        self.logger.debug(f"Verifying the network exist... (network={self.network})")
        try:
            exists = self.ctx.network_store.network_exists(self.network)
        except Exception as err:
            raise self._fail(
                "check_network_exists", "couldn't verify the network existence", err
            ) from err
        if not exists:
            raise NetworkDoesNotExistError(self.network)
        self.logger.debug("The network exists")

    def fetch_network_config(self) -> None:
        self.logger.debug(f"Retrieving the network configuration... (network={self.network})")
        try:
            self.ctx.network_config = self.ctx.network_store.get_network(self.network)
        except Exception as err:
            raise self._fail(
                "fetch_network_config", "couldn't retrieve the network configuration", err
            ) from err
        self.logger.debug("The network configuration has been retrieved")

    def ensure_can_connect(self) -> None:
        self.logger.debug(
            "Ensuring the network configuration has the minimal configuration to connect to the network..."
        )
        self.ctx.network_config.ensure_can_connect_node()
        self.logger.debug("The network configuration is ok")

    def check_network_version(self) -> None:
        try:
            network_version = self.deps.get_network_version(self.ctx.network_config.api.node.hosts)
        except Exception as err:
            raise self._fail(
                "check_network_version", "couldn't verify the network version", err
            ) from err
        local_version = self.deps.get_local_version()
        if network_version != local_version:
            self.logger.warning(
                "This software is not compatible with this network "
                f"(network-version={network_version}, backend-version={local_version})"
            )

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    def open_service_store(self) -> None:
        self.logger.debug("Initializing the service store...")
        try:
            self.ctx.service_store = self.deps.initialise_service_store(self.home)
        except Exception as err:
            raise self._fail("open_service_store", "couldn't initialise service store", err) from err
        self.logger.debug("The service store has been initialized")

    def check_service_initialised(self) -> None:
        self.logger.debug("Verifying the service has been initialized...")
        try:
            initialised = self.deps.is_service_initialised(self.ctx.service_store)
        except Exception as err:
            raise self._fail(
                "check_service_initialised", "couldn't verify service initialisation state", err
            ) from err
        if not initialised:
            raise ServiceNotInitialisedError()
        self.logger.debug("The service is properly initialized")

    def build_auth(self) -> None:
        self.logger.debug("Initializing API v1 authentication system...")
        try:
            self.ctx.auth = self.deps.new_auth(
                self.logger.getChild("auth"),
                self.ctx.service_store,
                self.ctx.network_config.token_expiry,
            )
        except Exception as err:
            raise self._fail("build_auth", "couldn't initialise authentication", err) from err
        self.logger.debug("API v1 authentication system has been initialized")

    def build_forwarder(self) -> None:
        self.logger.debug("Initializing API v1 node forwarder...")
        try:
            self.ctx.forwarder = self.deps.new_forwarder(
                self.logger.getChild("forwarder"), self.ctx.network_config.api.node
            )
        except Exception as err:
            raise self._fail("build_forwarder", "couldn't initialise the node forwarder", err) from err
        self.logger.debug("API v1 node forwarder has been initialized")

    def build_node_selector(self) -> None:
        self.logger.debug("Initializing API v2 node selector...")
        node_config = self.ctx.network_config.api.node
        try:
            self.ctx.node_selector = self.deps.build_node_selector(
                self.logger.getChild("json-rpc"), node_config.hosts, node_config.retries
            )
        except Exception as err:
            self.logger.error(f"Couldn't instantiate node API (error={err})")
            raise self._fail("build_node_selector", "couldn't instantiate the node API", err) from err
        self.logger.debug("API v2 node selector is initialized")

    def build_api_client(self) -> None:
        self.ctx.interactor = self.deps.new_interactor(
            logger=self.logger.getChild("always-agree-interactor"),
            configured_wallet=self.wallet,
            wallet_passphrase=self.ctx.passphrase,
        )
        self.logger.debug("Initializing API v2 client...")
        try:
            self.ctx.client_api = self.deps.new_client_api(
                self.logger.getChild("json-rpc"),
                self.ctx.wallet_store,
                self.ctx.interactor,
                self.ctx.node_selector,
                self.ctx.network_config.token_expiry,
            )
        except Exception as err:
            raise self._fail("build_api_client", "couldn't instantiate the JSON-RPC API", err) from err
        self.logger.debug("API v2 client is initialized")

    def assemble_service(self) -> None:
        self.logger.debug("Initializing the service...")
        try:
            self.ctx.service = self.deps.new_service(
                self.logger.getChild("api"),
                self.ctx.network_config,
                self.ctx.client_api,
                self.ctx.wallet_store,
                self.ctx.auth,
                self.ctx.forwarder,
                self.deps.new_policy(),
            )
        except Exception as err:
            raise self._fail("assemble_service", "couldn't initialise the service", err) from err
        self.logger.debug("The service is initialized")
