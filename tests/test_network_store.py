import pytest

from dummy_wallet.network.models import NetworkConfig, NoHostSpecifiedError
from dummy_wallet.network.store import (
    NetworkAlreadyExistsError,
    NetworkDoesNotExistError,
    NetworkStoreError,
    initialise_store,
)

from .conftest import NETWORK

NETWORK_YAML = """\
name: testnet
host: 0.0.0.0
port: 8080
token_expiry: 3600
api:
  node:
    hosts:
      - ${NODE_HOST}
    retries: 3
"""


def test_saved_network_round_trips(networks):
    cfg = networks.get_network(NETWORK)

    assert networks.network_exists(NETWORK)
    assert networks.list_networks() == [NETWORK]
    assert cfg.api.node.hosts == ["http://node-1:3008", "http://node-2:3008"]
    assert cfg.api.node.retries == 2


def test_missing_network_does_not_exist(networks):
    assert not networks.network_exists("mainnet")
    with pytest.raises(NetworkDoesNotExistError, match="mainnet"):
        networks.get_network("mainnet")


def test_import_expands_environment_variables(home, tmp_path, monkeypatch):
    monkeypatch.setenv("NODE_HOST", "http://localhost:3008")
    source = tmp_path / "testnet.yaml"
    source.write_text(NETWORK_YAML)
    store = initialise_store(home)

    cfg = store.import_network(source)

    assert cfg.name == "testnet"
    assert store.get_network("testnet").api.node.hosts == ["http://localhost:3008"]
    assert store.get_network("testnet").token_expiry == 3600


def test_import_with_name_overrides_file_name(home, tmp_path):
    source = tmp_path / "whatever.yaml"
    source.write_text("api:\n  node:\n    hosts: [http://localhost:3008]\n")
    store = initialise_store(home)

    assert store.import_network(source, name="local").name == "local"
    assert store.network_exists("local")


def test_import_refuses_to_overwrite_unless_forced(home, tmp_path):
    source = tmp_path / "testnet.yaml"
    source.write_text(NETWORK_YAML)
    store = initialise_store(home)
    store.import_network(source)

    with pytest.raises(NetworkAlreadyExistsError):
        store.import_network(source)
    store.import_network(source, force=True)


def test_invalid_network_file_is_reported(home, tmp_path):
    source = tmp_path / "broken.yaml"
    source.write_text("port: not-a-port\n")

    with pytest.raises(NetworkStoreError):
        initialise_store(home).import_network(source)


def test_ensure_can_connect_requires_a_host():
    with pytest.raises(NoHostSpecifiedError, match="no host specified"):
        NetworkConfig(name="empty").ensure_can_connect_node()
    with pytest.raises(NoHostSpecifiedError):
        NetworkConfig(name="blank", api={"node": {"hosts": ["  "]}}).ensure_can_connect_node()

    NetworkConfig(name="ok", api={"node": {"hosts": ["http://n:1"]}}).ensure_can_connect_node()
