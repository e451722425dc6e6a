import httpx
import pytest

from dummy_wallet.api.client import (
    APPLICATION_ERROR,
    INTERNAL_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    NETWORK_ERROR,
    USER_ERROR,
    ClientAPI,
)
from dummy_wallet.interactors import AlwaysAgreeInteractor
from dummy_wallet.interactors.protocol import ErrorType
from dummy_wallet.node.selector import NodeRequestError, build_round_robin_selector_with_retrying_nodes

from .conftest import PASSPHRASE, WALLET

HOST = "app.local"


class FakeNode:
    host = "http://node-1"

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_transaction(self, tx):
        if self.fail:
            raise NodeRequestError("node down")
        self.sent.append(tx)
        return "0xhash"

    def get_chain_id(self):
        return "testnet-1"


class FakeSelector:
    def __init__(self, node):
        self.node = node

    def select_node(self):
        return self.node

    def stop(self):
        pass


class SpyInteractor(AlwaysAgreeInteractor):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        object.__setattr__(self, "events", [])

    def notify_interaction_session_began(self, trace_id):
        self.events.append("began")

    def notify_interaction_session_ended(self, trace_id):
        self.events.append("ended")

    def notify_error(self, trace_id, error_type, error):
        self.events.append(("error", error_type))

    def notify_successful_transaction(self, trace_id, tx_hash, *args):
        self.events.append(("sent", tx_hash))

    def notify_failed_transaction(self, trace_id, *args):
        self.events.append("failed")

    def request_permissions_review(self, trace_id, hostname, wallet, permissions):
        self.events.append("permissions")
        return super().request_permissions_review(trace_id, hostname, wallet, permissions)


def _rpc(method, params=None, request_id=1):
    return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params or {}}


@pytest.fixture
def node():
    return FakeNode()


@pytest.fixture
def spy(logger):
    return SpyInteractor(logger=logger, configured_wallet=WALLET, wallet_passphrase=PASSPHRASE)


@pytest.fixture
def api(logger, wallets, spy, node):
    return ClientAPI(logger, wallets, spy, FakeSelector(node))


def _connect(api):
    response = api.handle(_rpc("client.connect_wallet"), HOST)
    return response["result"]["token"]


def test_connect_wallet_returns_a_token(api, spy):
    token = _connect(api)

    assert token
    assert spy.events == ["began", "ended"]


def test_connect_fails_when_configured_wallet_is_missing(logger, wallets, node):
    interactor = AlwaysAgreeInteractor(logger=logger, configured_wallet="trader-2", wallet_passphrase="x")
    api = ClientAPI(logger, wallets, interactor, FakeSelector(node))

    response = api.handle(_rpc("client.connect_wallet"), HOST)

    assert response["error"]["code"] == USER_ERROR
    assert "doesn't contain the configured one" in response["error"]["data"]


def test_list_keys_after_connection(api, wallets):
    token = _connect(api)

    response = api.handle(_rpc("client.list_keys"), HOST, token)

    address = wallets.get_wallet(WALLET, PASSPHRASE).address
    assert response["result"] == {"keys": [{"name": WALLET, "publicKey": address}]}


def test_requests_need_a_valid_connection(api):
    _connect(api)

    assert api.handle(_rpc("client.list_keys"), HOST)["error"]["code"] == APPLICATION_ERROR
    assert api.handle(_rpc("client.list_keys"), HOST, "forged")["error"]["code"] == APPLICATION_ERROR


def test_connection_is_bound_to_its_hostname(api):
    token = _connect(api)

    response = api.handle(_rpc("client.list_keys"), "evil.local", token)

    assert response["error"]["code"] == APPLICATION_ERROR


def test_sign_transaction(api, wallets):
    token = _connect(api)
    address = wallets.get_wallet(WALLET, PASSPHRASE).address

    response = api.handle(
        _rpc("client.sign_transaction", {"publicKey": address, "transaction": {"transfer": {"amount": "1"}}}),
        HOST,
        token,
    )

    signed = response["result"]["transaction"]
    assert signed["publicKey"] == address
    assert signed["inputData"] == '{"transfer":{"amount":"1"}}'
    assert signed["signature"]


def test_sign_with_foreign_key_is_rejected(api):
    token = _connect(api)

    response = api.handle(
        _rpc("client.sign_transaction", {"publicKey": "0xnotmine", "transaction": {"a": 1}}),
        HOST,
        token,
    )

    assert response["error"]["code"] == APPLICATION_ERROR


def test_send_transaction_goes_through_the_selected_node(api, wallets, node, spy):
    token = _connect(api)
    address = wallets.get_wallet(WALLET, PASSPHRASE).address

    response = api.handle(
        _rpc("client.send_transaction", {"publicKey": address, "sendingMode": "TYPE_SYNC", "transaction": {"a": 1}}),
        HOST,
        token,
    )

    assert response["result"]["transactionHash"] == "0xhash"
    assert node.sent[0]["type"] == "TYPE_SYNC"
    assert ("sent", "0xhash") in spy.events


def test_send_transaction_network_failure(api, wallets, node, spy):
    token = _connect(api)
    node.fail = True
    address = wallets.get_wallet(WALLET, PASSPHRASE).address

    response = api.handle(
        _rpc("client.send_transaction", {"publicKey": address, "transaction": {"a": 1}}),
        HOST,
        token,
    )

    assert response["error"]["code"] == NETWORK_ERROR
    assert "failed" in spy.events
    assert spy.events[-1] == "ended"


def test_get_chain_id(api):
    response = api.handle(_rpc("client.get_chain_id"), HOST)

    assert response["result"] == {"chainID": "testnet-1"}


def test_disconnect_invalidates_the_token(api):
    token = _connect(api)

    assert api.handle(_rpc("client.disconnect_wallet"), HOST, token)["result"] is None
    assert api.handle(_rpc("client.list_keys"), HOST, token)["error"]["code"] == APPLICATION_ERROR


@pytest.mark.parametrize(
    "payload,code",
    [
        ({"id": 1, "method": "client.list_keys"}, INVALID_REQUEST),
        ({"jsonrpc": "2.0", "id": 1}, INVALID_REQUEST),
        ({"jsonrpc": "2.0", "id": 1, "method": "admin.delete_wallet"}, METHOD_NOT_FOUND),
        (["not", "an", "object"], INVALID_REQUEST),
    ],
)
def test_malformed_requests(api, payload, code):
    response = api.handle(payload, HOST)

    assert response["error"]["code"] == code


class Clock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def test_expired_connection_token_is_rejected(logger, wallets, spy, node):
    clock = Clock()
    api = ClientAPI(logger, wallets, spy, FakeSelector(node), token_expiry=60, clock=clock)
    token = _connect(api)

    clock.now += 61

    response = api.handle(_rpc("client.list_keys"), HOST, token)
    assert response["error"]["code"] == APPLICATION_ERROR
    assert api._connections == {}


def test_expired_connections_are_dropped_on_new_connections(logger, wallets, spy, node):
    clock = Clock()
    api = ClientAPI(logger, wallets, spy, FakeSelector(node), token_expiry=60, clock=clock)
    _connect(api)

    clock.now += 61
    token = _connect(api)

    assert list(api._connections) == [token]


def test_permissions_are_reviewed_once_per_connection(api, spy):
    token = _connect(api)

    api.handle(_rpc("client.list_keys"), HOST, token)
    api.handle(_rpc("client.list_keys"), HOST, token)

    assert spy.events.count("permissions") == 1


def test_non_json_node_answer_is_a_network_error(logger, api):
    client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>oops</html>")))
    selector = build_round_robin_selector_with_retrying_nodes(logger, ["http://node-1"], 0, client=client)
    api.node_selector = selector

    response = api.handle(_rpc("client.get_chain_id"), HOST)

    assert response["id"] == 1
    assert response["error"]["code"] == NETWORK_ERROR


class BrokenNode(FakeNode):
    def send_transaction(self, tx):
        raise RuntimeError("unexpected node answer")


def test_unexpected_failures_become_internal_errors(logger, wallets, spy):
    api = ClientAPI(logger, wallets, spy, FakeSelector(BrokenNode()))
    token = _connect(api)
    address = wallets.get_wallet(WALLET, PASSPHRASE).address

    response = api.handle(
        _rpc("client.send_transaction", {"publicKey": address, "transaction": {"a": 1}}),
        HOST,
        token,
    )

    assert response["error"]["code"] == INTERNAL_ERROR
    assert "unexpected node answer" in response["error"]["data"]
    assert ("error", ErrorType.INTERNAL_ERROR) in spy.events
    assert spy.events[-1] == "ended"
