"""File-backed wallet store."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

from eth_account import Account
from eth_account.messages import encode_defunct

from dummy_wallet.config import wallets_dir
from dummy_wallet.errors import DummyWalletError
from dummy_wallet.wallet.keystore import create_keystore, decrypt_keystore, load_keystore

_WALLET_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._ -]*$")


class WalletStoreError(DummyWalletError):
    """The wallet store couldn't be opened or read."""


class WalletDoesNotExistError(DummyWalletError):
    def __init__(self, name: str) -> None:
        super().__init__(f"the wallet \"{name}\" does not exist")
        self.name = name


class WalletAlreadyExistsError(DummyWalletError):
    def __init__(self, name: str) -> None:
        super().__init__(f"the wallet \"{name}\" already exists")
        self.name = name


class WrongPassphraseError(DummyWalletError):
    def __init__(self) -> None:
        super().__init__("wrong passphrase")


@dataclass(frozen=True)
class UnlockedWallet:
    """A wallet whose private key has been decrypted."""

    name: str
    address: str
    private_key: bytes = field(repr=False)

    @property
    def public_key(self) -> str:
        """Keys are identified by their checksummed address."""
        return self.address

    def sign(self, payload: str) -> str:
        """Sign *payload* as an EIP-191 personal message, return the signature hex."""
        signed = Account.sign_message(encode_defunct(text=payload), self.private_key)
        return signed.signature.hex()


class WalletStore:
    """Wallets saved as ``<home>/wallets/<name>.json`` keystore files."""

    def __init__(self, wallets_path: Path) -> None:
        self.wallets_path = wallets_path

    def _keystore_path(self, name: str) -> Path:
        if not _WALLET_NAME_RE.match(name):
            raise WalletDoesNotExistError(name)
        return self.wallets_path / f"{name}.json"

    def list_wallets(self) -> list[str]:
        """Return the names of all stored wallets, sorted."""
        return sorted(p.stem for p in self.wallets_path.glob("*.json") if p.is_file())

    def wallet_exists(self, name: str) -> bool:
        try:
            return self._keystore_path(name).is_file()
        except WalletDoesNotExistError:
            return False

    def create_wallet(
        self,
        name: str,
        passphrase: str,
        kdf: str | None = None,
        iterations: int | None = None,
    ) -> str:
        """Create a wallet and return its address."""
        if not _WALLET_NAME_RE.match(name):
            raise ValueError(f"invalid wallet name {name!r}")
        if self.wallet_exists(name):
            raise WalletAlreadyExistsError(name)
        return create_keystore(
            self._keystore_path(name), name, passphrase, kdf=kdf, iterations=iterations
        )

    def get_wallet(self, name: str, passphrase: str) -> UnlockedWallet:
        """Unlock a wallet with its passphrase.

        Raises
        ------
        WalletDoesNotExistError
            If no wallet is stored under *name*.
        WalletStoreError
            If the keystore file can't be read or parsed.
        WrongPassphraseError
            If *passphrase* doesn't decrypt the keystore.
        """
        if not self.wallet_exists(name):
            raise WalletDoesNotExistError(name)
        path = self._keystore_path(name)
        try:
            keystore = load_keystore(path)
        except (OSError, ValueError) as exc:
            raise WalletStoreError(f"couldn't read the keystore of wallet \"{name}\": {exc}") from exc
        if not isinstance(keystore, dict):
            raise WalletStoreError(f"the keystore of wallet \"{name}\" is not a JSON object")
        try:
            private_key = decrypt_keystore(keystore, passphrase)
        except ValueError as exc:
            raise WrongPassphraseError() from exc
        return UnlockedWallet(
            name=name,
            address=Account.from_key(private_key).address,
            private_key=bytes(private_key),
        )


def initialise_store(home: Path) -> WalletStore:
    """Open the wallet store under *home*, creating its directory if needed."""
    path = wallets_dir(home)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise WalletStoreError(f"couldn't create wallets directory {path}: {exc}") from exc
    if not path.is_dir():
        raise WalletStoreError(f"{path} is not a directory")
    return WalletStore(path)
