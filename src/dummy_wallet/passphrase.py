"""Reading the wallet passphrase from a file."""

from __future__ import annotations

from pathlib import Path

from dummy_wallet.errors import DummyWalletError


class PassphraseFileError(DummyWalletError):
    """The passphrase file is missing, unreadable or empty."""


def read_passphrase_file(path: str | Path) -> str:
    """Return the passphrase stored in *path*.

    Trailing line breaks are stripped so files written with ``echo`` work.
    Any other whitespace is considered part of the passphrase.
    """
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise PassphraseFileError(f"couldn't read passphrase file: {exc}") from exc

    passphrase = raw.rstrip("\r\n")
    if not passphrase:
        raise PassphraseFileError(f"the passphrase file {path} is empty")
    return passphrase
