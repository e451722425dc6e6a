import httpx
import pytest

from dummy_wallet.network.models import NodeConfig, NoHostSpecifiedError
from dummy_wallet.network.version import NetworkVersionError, get_network_version
from dummy_wallet.node.forwarder import Forwarder, ForwarderError
from dummy_wallet.node.selector import (
    NoHealthyNodeError,
    NodeRequestError,
    RetryingNode,
    build_round_robin_selector_with_retrying_nodes,
)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _stats(request):
    return httpx.Response(200, json={"statistics": {"appVersion": "v0.1.0", "chainId": "testnet-1"}})


def test_retrying_node_retries_server_errors(logger):
    attempts = []

    def handler(request):
        attempts.append(request.url.path)
        if len(attempts) < 3:
            return httpx.Response(503)
        return _stats(request)

    node = RetryingNode(logger, "http://node-1", retries=2, client=_client(handler))

    assert node.get_chain_id() == "testnet-1"
    assert len(attempts) == 3


def test_retrying_node_gives_up_after_its_budget(logger):
    attempts = []

    def handler(request):
        attempts.append(1)
        raise httpx.ConnectError("refused")

    node = RetryingNode(logger, "http://node-1", retries=2, client=_client(handler))

    with pytest.raises(NodeRequestError, match="after 3 attempts"):
        node.statistics()
    assert len(attempts) == 3


def test_retrying_node_does_not_retry_client_errors(logger):
    attempts = []

    def handler(request):
        attempts.append(1)
        return httpx.Response(400, json={"error": "bad"})

    node = RetryingNode(logger, "http://node-1", retries=5, client=_client(handler))

    with pytest.raises(NodeRequestError):
        node.send_transaction({"tx": {}})
    assert len(attempts) == 1


def test_selector_skips_unhealthy_nodes_round_robin(logger):
    def handler(request):
        if request.url.host == "node-1":
            raise httpx.ConnectError("down")
        return _stats(request)

    selector = build_round_robin_selector_with_retrying_nodes(
        logger, ["http://node-1", "http://node-2"], retries=0, client=_client(handler)
    )

    assert selector.select_node().host == "http://node-2"
    assert selector.select_node().host == "http://node-2"


def test_selector_cycles_through_healthy_nodes(logger):
    selector = build_round_robin_selector_with_retrying_nodes(
        logger, ["http://node-1", "http://node-2"], retries=0, client=_client(_stats)
    )

    hosts = [selector.select_node().host for _ in range(4)]

    assert hosts == ["http://node-1", "http://node-2", "http://node-1", "http://node-2"]


def test_selector_without_healthy_node_fails(logger):
    def handler(request):
        raise httpx.ConnectError("down")

    selector = build_round_robin_selector_with_retrying_nodes(
        logger, ["http://node-1"], retries=1, client=_client(handler)
    )

    with pytest.raises(NoHealthyNodeError):
        selector.select_node()


def test_selector_requires_hosts(logger):
    with pytest.raises(NoHostSpecifiedError):
        build_round_robin_selector_with_retrying_nodes(logger, [], retries=1)


def test_forwarder_falls_back_to_next_host(logger):
    seen = []

    def handler(request):
        seen.append(request.url.host)
        if request.url.host == "node-1":
            return httpx.Response(500)
        return httpx.Response(200, json={"txHash": "0xabc"})

    forwarder = Forwarder(
        logger, NodeConfig(hosts=["http://node-1", "http://node-2"], retries=1), client=_client(handler)
    )

    assert forwarder.send_tx({"tx": {}}) == "0xabc"
    assert seen == ["node-1", "node-1", "node-2"]


def test_forwarder_bounded_retries(logger):
    seen = []

    def handler(request):
        seen.append(request.url.host)
        raise httpx.ConnectError("down")

    forwarder = Forwarder(
        logger, NodeConfig(hosts=["http://node-1", "http://node-2"], retries=2), client=_client(handler)
    )

    with pytest.raises(ForwarderError):
        forwarder.send_tx({"tx": {}})
    assert len(seen) == 6


def test_network_version_uses_first_answering_host():
    def handler(request):
        if request.url.host == "node-1":
            raise httpx.ConnectError("down")
        return _stats(request)

    version = get_network_version(["http://node-1", "http://node-2"], client=_client(handler))

    assert version == "v0.1.0"


def test_network_version_fails_when_no_host_answers():
    def handler(request):
        return httpx.Response(200, json={"unexpected": True})

    with pytest.raises(NetworkVersionError):
        get_network_version(["http://node-1"], client=_client(handler))
