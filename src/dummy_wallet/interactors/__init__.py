"""Interactors answer the interactive steps of a wallet session.

A real wallet asks a human to approve connections, pick a wallet, type a
passphrase and review transactions. An interactor provides those answers.
"""

from dummy_wallet.interactors.always_agree import (
    AlwaysAgreeInteractor,
    IdentityMismatchError,
    SelectionMismatchError,
)
from dummy_wallet.interactors.protocol import (
    APPROVED_ONLY_THIS_TIME,
    ErrorType,
    Interactor,
    LogType,
    SelectedWallet,
)

__all__ = [
    "APPROVED_ONLY_THIS_TIME",
    "AlwaysAgreeInteractor",
    "ErrorType",
    "IdentityMismatchError",
    "Interactor",
    "LogType",
    "SelectedWallet",
    "SelectionMismatchError",
]
