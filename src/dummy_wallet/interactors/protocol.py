"""The interaction protocol the client API drives during a session."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

APPROVED_ONLY_THIS_TIME = "APPROVED_ONLY_THIS_TIME"


class ErrorType(str, Enum):
    APPLICATION_ERROR = "Application Error"
    USER_ERROR = "User Error"
    INTERNAL_ERROR = "Internal Error"
    SERVER_ERROR = "Server Error"
    NETWORK_ERROR = "Network Error"


class LogType(str, Enum):
    INFO = "Info"
    WARNING = "Warning"
    ERROR = "Error"
    SUCCESS = "Success"


@dataclass(frozen=True)
class SelectedWallet:
    """The wallet picked during a connection, with the passphrase to unlock it."""

    wallet: str
    passphrase: str


class Interactor(Protocol):
    """Every interactive step a wallet session may go through.

    The ``notify_*`` and ``log`` methods are informational and never fail.
    The ``request_*`` methods return a decision or raise to deny.
    """

    def notify_interaction_session_began(self, trace_id: str) -> None: ...

    def notify_interaction_session_ended(self, trace_id: str) -> None: ...

    def notify_successful_transaction(
        self,
        trace_id: str,
        tx_hash: str,
        deserialized_input_data: str,
        tx: str,
        sent_at: datetime,
    ) -> None: ...

    def notify_failed_transaction(
        self,
        trace_id: str,
        deserialized_input_data: str,
        tx: str,
        error: Exception,
        sent_at: datetime,
    ) -> None: ...

    def notify_successful_request(self, trace_id: str, message: str) -> None: ...

    def notify_error(self, trace_id: str, error_type: ErrorType, error: Exception) -> None: ...

    def log(self, trace_id: str, log_type: LogType, message: str) -> None: ...

    def request_wallet_connection_review(self, trace_id: str, hostname: str) -> str: ...

    def request_wallet_selection(
        self, trace_id: str, hostname: str, available_wallets: list[str]
    ) -> SelectedWallet: ...

    def request_passphrase(self, trace_id: str, wallet: str) -> str: ...

    def request_permissions_review(
        self, trace_id: str, hostname: str, wallet: str, permissions: dict[str, str]
    ) -> bool: ...

    def request_transaction_review_for_sending(
        self,
        trace_id: str,
        hostname: str,
        wallet: str,
        public_key: str,
        transaction: str,
        received_at: datetime,
    ) -> bool: ...

    def request_transaction_review_for_signing(
        self,
        trace_id: str,
        hostname: str,
        wallet: str,
        public_key: str,
        transaction: str,
        received_at: datetime,
    ) -> bool: ...
