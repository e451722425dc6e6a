"""CLI for dummy-wallet - FOR DEVELOPMENT AND TESTING ONLY."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dummy_wallet.config import HOME_ENV_VAR, get_home_dir
from dummy_wallet.errors import DummyWalletError

app = typer.Typer(
    name="dummy-wallet",
    help="The dummy wallet for development and testing. FOR DEVELOPMENT AND TESTING ONLY!",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)

_home: str | None = None


def _version_callback(value: bool):
    if value:
        from dummy_wallet.network.version import get_local_version

        console.print(f"dummy-wallet {get_local_version()}")
        raise typer.Exit()


@app.callback()
def main(
    home: str = typer.Option(
        None,
        "--home",
        help="Specify the location of a custom home directory",
        envvar=HOME_ENV_VAR,
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
):
    """The dummy wallet for development and testing. FOR DEVELOPMENT AND TESTING ONLY!"""
    global _home
    _home = home


def _home_dir() -> Path:
    return get_home_dir(_home)


def _fail(err: Exception) -> typer.Exit:
    err_console.print(f"[bold red]Error:[/bold red] {escape(str(err))}", soft_wrap=True)
    return typer.Exit(1)


def _require(**flags: str | None) -> None:
    for name, value in flags.items():
        if not value:
            raise _fail(DummyWalletError(f"{name.replace('_', '-')} must be specified"))


# ------------------------------------------------------------------
# service sub-commands
# ------------------------------------------------------------------

service_app = typer.Typer(
    name="service",
    help="Manage the service.",
    no_args_is_help=True,
)
app.add_typer(service_app, name="service")


@service_app.command("run")
def service_run(
    network: str = typer.Option(None, "--network", "-n", help="Network configuration to use"),
    wallet: str = typer.Option(None, "--wallet", "-w", help="The wallet to use"),
    passphrase_file: str = typer.Option(
        None, "--passphrase-file", "-p", help="The wallet's passphrase"
    ),
    log_level: str = typer.Option("info", "--log-level", help="The minimum log level to display"),
    log_format: str = typer.Option(
        "console",
        "--log-format",
        help="The format of the logs on the standard output: [console, json]",
    ),
):
    """Start the wallet service behind an HTTP server.

    Every incoming request is approved on behalf of the configured wallet.
    This software is insecure by design to ease development and testing.

    To terminate the service, hit ctrl+c.
    """
    _require(network=network, wallet=wallet, passphrase_file=passphrase_file)
    try:
        run_service(_home_dir(), network, wallet, passphrase_file, log_level, log_format)
    except (DummyWalletError, ValueError, OSError) as err:
        raise _fail(err) from err


def run_service(
    home: Path,
    network: str,
    wallet: str,
    passphrase_file: str,
    log_level: str,
    log_format: str,
) -> None:
    """Bootstrap the service and run it until a shutdown is requested."""
    from dummy_wallet.logging_config import build_logger
    from dummy_wallet.service.bootstrap import Bootstrap
    from dummy_wallet.service.lifecycle import LifecycleController

    try:
        logger = build_logger(log_level, log_format).getChild("service")
    except ValueError as err:
        raise ValueError(f"could not build the service logger: {err}") from err

    ctx = Bootstrap(home, network, wallet, passphrase_file, logger).run()
    LifecycleController(ctx.service, logger, url=ctx.service.url).run()


@service_app.command("init")
def service_init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Regenerate the token signing secret if it already exists"
    ),
):
    """Initialise the service (token signing secret)."""
    from dummy_wallet.service import store as service_store

    try:
        store = service_store.initialise_store(_home_dir())
        already = service_store.is_initialised(store)
        service_store.initialise(store, force=force)
    except DummyWalletError as err:
        raise _fail(err) from err

    if already and not force:
        console.print("[yellow]The service is already initialised.[/yellow] Use --force to reset it.")
        return
    console.print(f"[bold green]Service initialised[/bold green] at {store.service_path}")


# ------------------------------------------------------------------
# wallet sub-commands
# ------------------------------------------------------------------

wallet_app = typer.Typer(
    name="wallet",
    help="Manage the wallets.",
    no_args_is_help=True,
)
app.add_typer(wallet_app, name="wallet")


@wallet_app.command("create")
def wallet_create(
    wallet: str = typer.Option(None, "--wallet", "-w", help="Name of the wallet to create"),
    passphrase_file: str = typer.Option(
        None, "--passphrase-file", "-p", help="File containing the wallet's passphrase"
    ),
):
    """Generate a new wallet with an encrypted keystore."""
    from dummy_wallet.passphrase import read_passphrase_file
    from dummy_wallet.wallet.store import initialise_store

    _require(wallet=wallet, passphrase_file=passphrase_file)
    try:
        passphrase = read_passphrase_file(passphrase_file)
        address = initialise_store(_home_dir()).create_wallet(wallet, passphrase)
    except (DummyWalletError, ValueError) as err:
        raise _fail(err) from err

    console.print(f"[bold green]Wallet created:[/bold green] {wallet}")
    console.print(f"  Address: [cyan]{address}[/cyan]")


@wallet_app.command("list")
def wallet_list():
    """List the wallets."""
    from dummy_wallet.wallet.store import initialise_store

    try:
        names = initialise_store(_home_dir()).list_wallets()
    except DummyWalletError as err:
        raise _fail(err) from err

    if not names:
        console.print("[yellow]No wallet found.[/yellow] Run 'dummy-wallet wallet create' first.")
        return
    for name in names:
        console.print(name)


# ------------------------------------------------------------------
# network sub-commands
# ------------------------------------------------------------------

network_app = typer.Typer(
    name="network",
    help="Manage the network configurations.",
    no_args_is_help=True,
)
app.add_typer(network_app, name="network")


@network_app.command("import")
def network_import(
    from_file: str = typer.Option(None, "--from-file", help="Path to the network configuration file"),
    with_name: str = typer.Option(None, "--with-name", help="Name to give the imported network"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing network"),
):
    """Import a network configuration from a YAML file."""
    from dummy_wallet.network.store import initialise_store

    _require(from_file=from_file)
    try:
        cfg = initialise_store(_home_dir()).import_network(
            Path(from_file), name=with_name, force=force
        )
    except DummyWalletError as err:
        raise _fail(err) from err

    console.print(f"[bold green]Network imported:[/bold green] {cfg.name}")


@network_app.command("list")
def network_list():
    """List the network configurations."""
    from dummy_wallet.network.store import initialise_store

    try:
        store = initialise_store(_home_dir())
        networks = [store.get_network(name) for name in store.list_networks()]
    except DummyWalletError as err:
        raise _fail(err) from err

    if not networks:
        console.print("[yellow]No network found.[/yellow] Run 'dummy-wallet network import' first.")
        return

    table = Table(title="Networks")
    table.add_column("Name", style="cyan")
    table.add_column("Service", style="green")
    table.add_column("Node hosts")
    for cfg in networks:
        table.add_row(cfg.name, f"{cfg.host}:{cfg.port}", ", ".join(cfg.api.node.hosts))
    console.print(table)
