"""Version compatibility between this software and a network's nodes."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

import httpx

from dummy_wallet.errors import DummyWalletError


class NetworkVersionError(DummyWalletError):
    """None of the configured hosts reported its version."""


def get_local_version() -> str:
    """Return the installed version of this software."""
    try:
        return version("dummy-wallet")
    except PackageNotFoundError:
        from dummy_wallet import __version__

        return __version__


def get_network_version(hosts: list[str], client: httpx.Client | None = None) -> str:
    """Ask each host in turn for the version of the software it runs.

    The first host answering ``GET /statistics`` with a
    ``statistics.appVersion`` field wins.
    """
    own_client = client is None
    client = client or httpx.Client(timeout=5.0)
    errors: list[str] = []
    try:
        for host in hosts:
            try:
                resp = client.get(f"{host.rstrip('/')}/statistics")
                resp.raise_for_status()
                return str(resp.json()["statistics"]["appVersion"])
            except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
                errors.append(f"{host}: {exc}")
    finally:
        if own_client:
            client.close()

    raise NetworkVersionError(
        "couldn't get the version of the network from any host: " + "; ".join(errors)
    )
