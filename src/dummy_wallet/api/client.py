"""JSON-RPC 2.0 client API.

Connected applications call these methods through the service's
``/api/v2/requests`` endpoint. Every interactive step (connection review,
wallet selection, permission and transaction reviews) is delegated to the
injected interactor, so the same API works with a human-facing interactor or
with :class:`~dummy_wallet.interactors.AlwaysAgreeInteractor`.
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from dummy_wallet.errors import DummyWalletError
from dummy_wallet.interactors.always_agree import IdentityMismatchError, SelectionMismatchError
from dummy_wallet.interactors.protocol import (
    APPROVED_ONLY_THIS_TIME,
    ErrorType,
    Interactor,
    LogType,
)
from dummy_wallet.node.selector import NoHealthyNodeError, NodeRequestError, RoundRobinSelector
from dummy_wallet.wallet.store import (
    UnlockedWallet,
    WalletDoesNotExistError,
    WalletStore,
    WrongPassphraseError,
)

JSONRPC_VERSION = "2.0"

# Standard JSON-RPC codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

# Application codes
NETWORK_ERROR = 1000
APPLICATION_ERROR = 2000
USER_ERROR = 3000

_ERROR_MESSAGES = {
    PARSE_ERROR: "Parse error",
    INVALID_REQUEST: "Invalid Request",
    METHOD_NOT_FOUND: "Method not found",
    INVALID_PARAMS: "Invalid params",
    INTERNAL_ERROR: "Internal error",
    NETWORK_ERROR: "Network error",
    APPLICATION_ERROR: "Application error",
    USER_ERROR: "User error",
}


class JsonRpcError(DummyWalletError):
    """An error reported to the caller as a JSON-RPC error object."""

    def __init__(self, code: int, data: str) -> None:
        super().__init__(data)
        self.code = code
        self.data = data

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": _ERROR_MESSAGES.get(self.code, "Server error"),
            "data": self.data,
        }


@dataclass
class Connection:
    """An application connected to a wallet."""

    hostname: str
    wallet: UnlockedWallet
    expires_at: float
    permissions_granted: bool = False


@dataclass
class Request:
    """What the API knows about the request being handled."""

    trace_id: str
    hostname: str
    token: str | None
    params: dict = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ClientAPI:
    """Dispatch JSON-RPC requests to the ``client.*`` methods."""

    def __init__(
        self,
        logger: logging.Logger,
        wallet_store: WalletStore,
        interactor: Interactor,
        node_selector: RoundRobinSelector,
        token_expiry: int = 604800,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.logger = logger
        self.wallet_store = wallet_store
        self.interactor = interactor
        self.node_selector = node_selector
        self.token_expiry = token_expiry
        self._clock = clock
        self._connections: dict[str, Connection] = {}
        self._lock = threading.Lock()
        self._methods: dict[str, Callable[[Request], Any]] = {
            "client.connect_wallet": self._connect_wallet,
            "client.disconnect_wallet": self._disconnect_wallet,
            "client.list_keys": self._list_keys,
            "client.sign_transaction": self._sign_transaction,
            "client.send_transaction": self._send_transaction,
            "client.get_chain_id": self._get_chain_id,
        }
        self._interactive = {
            "client.connect_wallet",
            "client.list_keys",
            "client.sign_transaction",
            "client.send_transaction",
        }

    @property
    def methods(self) -> list[str]:
        return sorted(self._methods)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, payload: Any, hostname: str, token: str | None = None) -> dict:
        """Process one JSON-RPC request object and return the response object."""
        request_id = payload.get("id") if isinstance(payload, dict) else None
        try:
            method, params = self._parse(payload)
        except JsonRpcError as err:
            return self._error_response(request_id, err)

        trace_id = uuid.uuid4().hex
        request = Request(trace_id=trace_id, hostname=hostname, token=token, params=params)
        interactive = method in self._interactive
        self.logger.debug(f"Handling request (trace-id={trace_id}, method={method}, hostname={hostname})")

        if interactive:
            self.interactor.notify_interaction_session_began(trace_id)
        try:
            result = self._methods[method](request)
        except JsonRpcError as err:
            if interactive:
                self.interactor.notify_error(trace_id, self._error_type(err.code), err)
            self.logger.debug(f"Request failed (trace-id={trace_id}, method={method}, error={err})")
            return self._error_response(request_id, err)
        except Exception as err:
            if interactive:
                self.interactor.notify_error(trace_id, ErrorType.INTERNAL_ERROR, err)
            self.logger.exception(f"Request failed unexpectedly (trace-id={trace_id}, method={method})")
            return self._error_response(
                request_id, JsonRpcError(INTERNAL_ERROR, f"the request couldn't be processed: {err}")
            )
        finally:
            if interactive:
                self.interactor.notify_interaction_session_ended(trace_id)

        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}

    def _parse(self, payload: Any) -> tuple[str, dict]:
        if not isinstance(payload, dict) or payload.get("jsonrpc") != JSONRPC_VERSION:
            raise JsonRpcError(INVALID_REQUEST, "the request is not a JSON-RPC 2.0 request")
        method = payload.get("method")
        if not isinstance(method, str) or not method:
            raise JsonRpcError(INVALID_REQUEST, "the method is required")
        if method not in self._methods:
            raise JsonRpcError(METHOD_NOT_FOUND, f"method \"{method}\" is not supported")
        params = payload.get("params") or {}
        if not isinstance(params, dict):
            raise JsonRpcError(INVALID_PARAMS, "params must be an object")
        return method, params

    @staticmethod
    def _error_response(request_id: Any, err: JsonRpcError) -> dict:
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": err.to_dict()}

    @staticmethod
    def _error_type(code: int) -> ErrorType:
        if code == USER_ERROR:
            return ErrorType.USER_ERROR
        if code == NETWORK_ERROR:
            return ErrorType.NETWORK_ERROR
        if code == INTERNAL_ERROR:
            return ErrorType.INTERNAL_ERROR
        return ErrorType.APPLICATION_ERROR

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _connection(self, request: Request) -> Connection:
        if not request.token:
            raise JsonRpcError(APPLICATION_ERROR, "the connection token is required")
        with self._lock:
            self._prune(self._clock())
            conn = self._connections.get(request.token)
        if conn is None or conn.hostname != request.hostname:
            raise JsonRpcError(APPLICATION_ERROR, "the connection token is not valid")
        return conn

    def _prune(self, now: float) -> None:
        for token in [t for t, c in self._connections.items() if c.expires_at <= now]:
            del self._connections[token]

    @staticmethod
    def _public_key_param(request: Request, conn: Connection) -> str:
        public_key = request.params.get("publicKey")
        if not public_key:
            raise JsonRpcError(INVALID_PARAMS, "the public key is required")
        if public_key != conn.wallet.public_key:
            raise JsonRpcError(APPLICATION_ERROR, "the public key is not allowed to be used")
        return public_key

    @staticmethod
    def _transaction_param(request: Request) -> dict:
        tx = request.params.get("transaction")
        if not isinstance(tx, dict) or not tx:
            raise JsonRpcError(INVALID_PARAMS, "the transaction is required")
        return tx

    def _review(self, review: Callable[..., bool], *args) -> None:
        try:
            approved = review(*args)
        except (IdentityMismatchError, SelectionMismatchError) as err:
            raise JsonRpcError(USER_ERROR, str(err)) from err
        if not approved:
            raise JsonRpcError(USER_ERROR, "the user rejected the request")

    def _sign(self, conn: Connection, public_key: str, tx: dict) -> dict:
        payload = json.dumps(tx, sort_keys=True, separators=(",", ":"))
        return {
            "inputData": payload,
            "signature": conn.wallet.sign(payload),
            "publicKey": public_key,
        }

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    def _connect_wallet(self, request: Request) -> dict:
        decision = self.interactor.request_wallet_connection_review(
            request.trace_id, request.hostname
        )
        if decision != APPROVED_ONLY_THIS_TIME:
            raise JsonRpcError(USER_ERROR, "the user rejected the connection")

        try:
            selected = self.interactor.request_wallet_selection(
                request.trace_id, request.hostname, self.wallet_store.list_wallets()
            )
            wallet = self.wallet_store.get_wallet(selected.wallet, selected.passphrase)
        except (SelectionMismatchError, WrongPassphraseError, WalletDoesNotExistError) as err:
            raise JsonRpcError(USER_ERROR, str(err)) from err

        token = secrets.token_urlsafe(32)
        now = self._clock()
        with self._lock:
            self._prune(now)
            self._connections[token] = Connection(
                hostname=request.hostname, wallet=wallet, expires_at=now + self.token_expiry
            )

        self.interactor.notify_successful_request(
            request.trace_id, "The connection to the wallet has been successfully established."
        )
        return {"token": token}

    def _disconnect_wallet(self, request: Request) -> None:
        self._connection(request)
        with self._lock:
            self._connections.pop(request.token, None)
        return None

    def _list_keys(self, request: Request) -> dict:
        conn = self._connection(request)
        with self._lock:
            needs_review = not conn.permissions_granted
            # Claimed now so concurrent calls review only once.
            conn.permissions_granted = True
        if needs_review:
            try:
                self._review(
                    self.interactor.request_permissions_review,
                    request.trace_id,
                    request.hostname,
                    conn.wallet.name,
                    {"public_keys": "read"},
                )
            except JsonRpcError:
                with self._lock:
                    conn.permissions_granted = False
                raise
            self.interactor.notify_successful_request(
                request.trace_id, "The permissions update has been successfully applied."
            )
        return {"keys": [{"name": conn.wallet.name, "publicKey": conn.wallet.public_key}]}

    def _sign_transaction(self, request: Request) -> dict:
        conn = self._connection(request)
        public_key = self._public_key_param(request, conn)
        tx = self._transaction_param(request)
        self._review(
            self.interactor.request_transaction_review_for_signing,
            request.trace_id,
            request.hostname,
            conn.wallet.name,
            public_key,
            json.dumps(tx),
            _now(),
        )
        signed = self._sign(conn, public_key, tx)
        self.interactor.notify_successful_request(
            request.trace_id, "The transaction has been successfully signed."
        )
        return {"transaction": signed}

    def _send_transaction(self, request: Request) -> dict:
        conn = self._connection(request)
        public_key = self._public_key_param(request, conn)
        tx = self._transaction_param(request)
        received_at = _now()
        raw_tx = json.dumps(tx)
        self._review(
            self.interactor.request_transaction_review_for_sending,
            request.trace_id,
            request.hostname,
            conn.wallet.name,
            public_key,
            raw_tx,
            received_at,
        )
        signed = self._sign(conn, public_key, tx)
        self.interactor.log(request.trace_id, LogType.INFO, "Sending the transaction through the network...")

        sent_at = _now()
        try:
            node = self.node_selector.select_node()
            tx_hash = node.send_transaction(
                {"tx": signed, "type": request.params.get("sendingMode", "TYPE_SYNC")}
            )
        except (NoHealthyNodeError, NodeRequestError, KeyError, ValueError) as err:
            self.interactor.notify_failed_transaction(
                request.trace_id, raw_tx, json.dumps(signed), err, sent_at
            )
            raise JsonRpcError(NETWORK_ERROR, str(err)) from err

        self.interactor.notify_successful_transaction(
            request.trace_id, tx_hash, raw_tx, json.dumps(signed), sent_at
        )
        return {
            "receivedAt": received_at.isoformat(),
            "sentAt": sent_at.isoformat(),
            "transactionHash": tx_hash,
            "transaction": signed,
        }

    def _get_chain_id(self, request: Request) -> dict:
        try:
            chain_id = self.node_selector.select_node().get_chain_id()
        except (NoHealthyNodeError, NodeRequestError, KeyError, ValueError) as err:
            raise JsonRpcError(NETWORK_ERROR, str(err)) from err
        return {"chainID": chain_id}


def new_client_api(
    logger: logging.Logger,
    wallet_store: WalletStore,
    interactor: Interactor,
    node_selector: RoundRobinSelector,
    token_expiry: int,
) -> ClientAPI:
    return ClientAPI(logger, wallet_store, interactor, node_selector, token_expiry)
