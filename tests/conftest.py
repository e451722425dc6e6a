import logging
from pathlib import Path

import pytest

from dummy_wallet.interactors import AlwaysAgreeInteractor
from dummy_wallet.network import store as network_store
from dummy_wallet.network.models import NetworkConfig
from dummy_wallet.service import store as service_store
from dummy_wallet.wallet import store as wallet_store

WALLET = "trader-1"
PASSPHRASE = "correct horse battery staple"
NETWORK = "fairground"

# Keystores created in tests use a cheap KDF.
FAST_KDF = {"kdf": "pbkdf2", "iterations": 2}


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("tests.dummy_wallet")


@pytest.fixture
def interactor(logger) -> AlwaysAgreeInteractor:
    return AlwaysAgreeInteractor(
        logger=logger, configured_wallet=WALLET, wallet_passphrase=PASSPHRASE
    )


@pytest.fixture
def home(tmp_path) -> Path:
    return tmp_path / "home"


@pytest.fixture
def wallets(home) -> wallet_store.WalletStore:
    store = wallet_store.initialise_store(home)
    store.create_wallet(WALLET, PASSPHRASE, **FAST_KDF)
    return store


@pytest.fixture
def networks(home) -> network_store.NetworkStore:
    store = network_store.initialise_store(home)
    store.save_network(
        NetworkConfig(
            name=NETWORK,
            host="127.0.0.1",
            port=1789,
            api={"node": {"hosts": ["http://node-1:3008", "http://node-2:3008"], "retries": 2}},
        )
    )
    return store


@pytest.fixture
def services(home) -> service_store.ServiceStore:
    store = service_store.initialise_store(home)
    service_store.initialise(store)
    return store


@pytest.fixture
def passphrase_file(tmp_path) -> Path:
    path = tmp_path / "passphrase.txt"
    path.write_text(PASSPHRASE + "\n", encoding="utf-8")
    return path
