"""The HTTP wallet service.

Two APIs are exposed:

- ``/api/v2``: the JSON-RPC API, every interactive step handled by the
  interactor injected into the :class:`~dummy_wallet.api.client.ClientAPI`.
- ``/api/v1``: the token-authenticated API, a wallet is unlocked by logging
  in with its passphrase and commands are signed and forwarded to a node.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any
from urllib.parse import urlparse

import uvicorn
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from dummy_wallet.api.client import PARSE_ERROR, ClientAPI, JsonRpcError
from dummy_wallet.errors import DummyWalletError
from dummy_wallet.network.models import NetworkConfig
from dummy_wallet.node.forwarder import Forwarder, ForwarderError
from dummy_wallet.service.auth import Auth, InvalidTokenError
from dummy_wallet.service.policy import AutomaticConsentPolicy
from dummy_wallet.wallet.store import (
    UnlockedWallet,
    WalletDoesNotExistError,
    WalletStore,
    WrongPassphraseError,
)


class ServiceError(DummyWalletError):
    """The HTTP server failed to start or to stop."""


class LoginRequest(BaseModel):
    wallet: str
    passphrase: str


class CommandRequest(BaseModel):
    pubKey: str
    propagate: bool = False
    command: dict[str, Any]


def _hostname(request: Request) -> str:
    origin = request.headers.get("origin")
    if origin:
        parsed = urlparse(origin)
        if parsed.hostname:
            return parsed.hostname
    if request.client:
        return request.client.host
    return "unknown"


def _bearer(authorization: str | None, scheme: str) -> str | None:
    if not authorization:
        return None
    prefix, _, token = authorization.partition(" ")
    if prefix.lower() != scheme.lower() or not token.strip():
        return None
    return token.strip()


class Service:
    """HTTP server wrapping both APIs, run by :meth:`start` until :meth:`stop`."""

    def __init__(
        self,
        logger: logging.Logger,
        cfg: NetworkConfig,
        client_api: ClientAPI,
        wallet_store: WalletStore,
        auth: Auth,
        forwarder: Forwarder,
        policy: AutomaticConsentPolicy,
        stop_timeout: float = 10.0,
    ) -> None:
        self.logger = logger
        self.cfg = cfg
        self.client_api = client_api
        self.wallet_store = wallet_store
        self.auth = auth
        self.forwarder = forwarder
        self.policy = policy
        self.stop_timeout = stop_timeout
        self.app = self._build_app()
        self._server: uvicorn.Server | None = None
        self._stop_requested = False
        self._done = threading.Event()
        self._unlocked: dict[str, UnlockedWallet] = {}
        self._lock = threading.Lock()

    @property
    def url(self) -> str:
        return f"http://{self.cfg.host}:{self.cfg.port}"

    # ------------------------------------------------------------------
    # Routes
    # ------------------------------------------------------------------

    def _build_app(self) -> FastAPI:
        app = FastAPI(title="dummy-wallet")

        @app.get("/api/v1/status")
        async def status():
            return {"success": True}

        @app.post("/api/v1/auth/token")
        def login(body: LoginRequest):
            try:
                wallet = self.wallet_store.get_wallet(body.wallet, body.passphrase)
            except (WalletDoesNotExistError, WrongPassphraseError) as exc:
                raise HTTPException(status_code=403, detail=str(exc)) from exc
            with self._lock:
                self._unlocked[wallet.name] = wallet
            return {"token": self.auth.issue_token(wallet.name)}

        @app.delete("/api/v1/auth/token")
        def logout(authorization: str | None = Header(default=None)):
            token = _bearer(authorization, "Bearer")
            if token is None:
                raise HTTPException(status_code=401, detail="missing bearer token")
            try:
                self.auth.revoke_token(token)
            except InvalidTokenError as exc:
                raise HTTPException(status_code=401, detail=str(exc)) from exc
            return {"success": True}

        @app.post("/api/v1/command/sync")
        def command_sync(body: CommandRequest, authorization: str | None = Header(default=None)):
            return self._send_command(body, authorization, "TYPE_SYNC")

        @app.post("/api/v1/command/commit")
        def command_commit(body: CommandRequest, authorization: str | None = Header(default=None)):
            return self._send_command(body, authorization, "TYPE_COMMIT")

        @app.get("/api/v2/health")
        async def health():
            return {"status": "ok"}

        @app.get("/api/v2/methods")
        async def methods():
            return {"registeredMethods": self.client_api.methods}

        @app.post("/api/v2/requests")
        async def requests(request: Request):
            try:
                payload = json.loads(await request.body())
            except ValueError:
                err = JsonRpcError(PARSE_ERROR, "the request body is not valid JSON")
                return JSONResponse({"jsonrpc": "2.0", "id": None, "error": err.to_dict()})
            token = _bearer(request.headers.get("authorization"), "VWT")
            response = await run_in_threadpool(
                self.client_api.handle, payload, _hostname(request), token
            )
            return JSONResponse(response)

        return app

    def _send_command(self, body: CommandRequest, authorization: str | None, mode: str) -> dict:
        token = _bearer(authorization, "Bearer")
        if token is None:
            raise HTTPException(status_code=401, detail="missing bearer token")
        try:
            wallet_name = self.auth.verify_token(token)
        except InvalidTokenError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc

        with self._lock:
            wallet = self._unlocked.get(wallet_name)
        if wallet is None or wallet.public_key != body.pubKey:
            raise HTTPException(status_code=403, detail="the public key is not allowed to be used")

        # Automatic consent: commands are never queued for a human decision.
        if self.policy.wants_manual_consent():
            raise HTTPException(status_code=501, detail="manual consent is not supported")

        payload = json.dumps(body.command, sort_keys=True, separators=(",", ":"))
        signed = {"inputData": payload, "signature": wallet.sign(payload), "publicKey": body.pubKey}
        if not body.propagate:
            return {"transaction": signed}
        try:
            tx_hash = self.forwarder.send_tx({"tx": signed, "type": mode})
        except ForwarderError as exc:
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return {"transaction": signed, "txHash": tx_hash}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Serve until :meth:`stop` is called.

        Raises :class:`ServiceError` if the server can't start or exits on
        its own.
        """
        config = uvicorn.Config(
            self.app,
            host=self.cfg.host,
            port=self.cfg.port,
            log_config=None,
            lifespan="off",
        )
        server = uvicorn.Server(config)
        with self._lock:
            if self._stop_requested:
                self._done.set()
                return
            self._server = server
        try:
            server.run()
        except SystemExit as exc:
            # uvicorn exits the process when it can't bind.
            raise ServiceError(f"couldn't start the HTTP server on {self.url}") from exc
        finally:
            self._done.set()

        if not self._stop_requested:
            raise ServiceError("the HTTP server stopped unexpectedly")

    def stop(self) -> None:
        """Ask the server to shut down and wait for it to finish."""
        with self._lock:
            self._stop_requested = True
            server = self._server
        if server is not None:
            server.should_exit = True
            if not self._done.wait(self.stop_timeout):
                server.force_exit = True
                raise ServiceError(f"the HTTP server didn't stop within {self.stop_timeout}s")
        self.forwarder.stop()
        self.client_api.node_selector.stop()


def new_service(
    logger: logging.Logger,
    cfg: NetworkConfig,
    client_api: ClientAPI,
    wallet_store: WalletStore,
    auth: Auth,
    forwarder: Forwarder,
    policy: AutomaticConsentPolicy,
) -> Service:
    return Service(logger, cfg, client_api, wallet_store, auth, forwarder, policy)
