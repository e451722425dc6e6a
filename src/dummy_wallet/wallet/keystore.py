"""Encrypted keystore files using eth-account."""

from __future__ import annotations

import json
from pathlib import Path

from eth_account import Account


def create_keystore(
    keystore_path: Path,
    name: str,
    passphrase: str,
    kdf: str | None = None,
    iterations: int | None = None,
) -> str:
    """Generate a new Ethereum keypair and save an encrypted keystore file.

    Parameters
    ----------
    keystore_path:
        File the keystore JSON is written to.
    name:
        Wallet name recorded alongside the encrypted key.
    passphrase:
        Passphrase used to encrypt the private key.
    kdf, iterations:
        Key derivation settings forwarded to :meth:`Account.encrypt`.

    Returns
    -------
    str
        The checksummed Ethereum address of the new wallet.

    Raises
    ------
    FileExistsError
        If *keystore_path* already exists.
    """
    if keystore_path.exists():
        raise FileExistsError(f"A keystore already exists at {keystore_path}")

    acct = Account.create()
    encrypted = Account.encrypt(acct.key, passphrase, kdf=kdf, iterations=iterations)
    encrypted["name"] = name

    keystore_path.parent.mkdir(parents=True, exist_ok=True)
    keystore_path.write_text(json.dumps(encrypted, indent=2), encoding="utf-8")

    return acct.address


def load_keystore(keystore_path: Path) -> dict:
    """Read a keystore file without decrypting it."""
    return json.loads(keystore_path.read_text(encoding="utf-8"))


def decrypt_keystore(keystore: dict, passphrase: str) -> bytes:
    """Decrypt the private key from a keystore read by :func:`load_keystore`.

    Returns
    -------
    bytes
        The raw 32-byte private key.

    Raises
    ------
    ValueError
        If the passphrase is incorrect.
    """
    data = {k: v for k, v in keystore.items() if k != "name"}
    try:
        return Account.decrypt(data, passphrase)
    except ValueError as exc:
        raise ValueError(f"Failed to decrypt keystore: {exc}") from exc
