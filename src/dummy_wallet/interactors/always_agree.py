"""An interactor that approves everything for one configured wallet.

FOR DEVELOPMENT AND TESTING ONLY. It replaces the human in the loop so a
wallet service can run headless in automated test environments. The only
thing it refuses is acting on behalf of a wallet other than the configured
one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from dummy_wallet.errors import DummyWalletError
from dummy_wallet.interactors.protocol import (
    APPROVED_ONLY_THIS_TIME,
    ErrorType,
    LogType,
    SelectedWallet,
)


class SelectionMismatchError(DummyWalletError):
    """The wallet selection doesn't contain the configured wallet."""

    def __init__(self) -> None:
        super().__init__("the wallet selection doesn't contain the configured one")


class IdentityMismatchError(DummyWalletError):
    """The requested wallet doesn't match the configured wallet."""

    def __init__(self) -> None:
        super().__init__("the requested wallet doesn't match with the configured one")


@dataclass(frozen=True)
class AlwaysAgreeInteractor:
    """Approve every request made on behalf of ``configured_wallet``.

    Instances hold no mutable state, so a single one is shared by all the
    sessions the service handles concurrently.
    """

    logger: logging.Logger
    configured_wallet: str
    wallet_passphrase: str = field(repr=False)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def notify_interaction_session_began(self, trace_id: str) -> None:
        self.logger.info(f"NotifyInteractionSessionBegan does nothing (trace-id={trace_id})")

    def notify_interaction_session_ended(self, trace_id: str) -> None:
        self.logger.debug(f"NotifyInteractionSessionEnded does nothing (trace-id={trace_id})")

    def notify_successful_transaction(
        self,
        trace_id: str,
        tx_hash: str,
        deserialized_input_data: str,
        tx: str,
        sent_at: datetime,
    ) -> None:
        self.logger.debug(
            f"NotifySuccessfulTransaction does nothing (trace-id={trace_id}, "
            f"tx-hash={tx_hash}, sent-at={sent_at.isoformat()})"
        )

    def notify_failed_transaction(
        self,
        trace_id: str,
        deserialized_input_data: str,
        tx: str,
        error: Exception,
        sent_at: datetime,
    ) -> None:
        self.logger.debug(
            f"NotifyFailedTransaction does nothing (trace-id={trace_id}, "
            f"error={error}, sent-at={sent_at.isoformat()})"
        )

    def notify_successful_request(self, trace_id: str, message: str) -> None:
        self.logger.debug(
            f"NotifySuccessfulRequest does nothing (trace-id={trace_id}, message={message!r})"
        )

    def notify_error(self, trace_id: str, error_type: ErrorType, error: Exception) -> None:
        self.logger.debug(
            f"NotifyError does nothing (trace-id={trace_id}, "
            f"error-type={ErrorType(error_type).value}, error={error})"
        )

    def log(self, trace_id: str, log_type: LogType, message: str) -> None:
        self.logger.debug(
            f"Log does nothing (trace-id={trace_id}, "
            f"log-type={LogType(log_type).value}, message={message!r})"
        )

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def request_wallet_connection_review(self, trace_id: str, hostname: str) -> str:
        self.logger.debug(
            f"RequestWalletConnectionReview called (trace-id={trace_id}, hostname={hostname})"
        )
        self.logger.info(
            "RequestWalletConnectionReview approves the connection request only this time "
            f"(trace-id={trace_id}, hostname={hostname})"
        )
        return APPROVED_ONLY_THIS_TIME

    def request_wallet_selection(
        self, trace_id: str, hostname: str, available_wallets: list[str]
    ) -> SelectedWallet:
        self.logger.debug(
            f"RequestWalletSelection called (trace-id={trace_id}, hostname={hostname}, "
            f"wallets={list(available_wallets)})"
        )
        if self.configured_wallet not in available_wallets:
            self.logger.error(
                "RequestWalletSelection has been called with a selection that does not "
                "contain the configured wallet, verify you configured an existing wallet "
                f"(trace-id={trace_id}, wallets={list(available_wallets)}, "
                f"configured-wallet={self.configured_wallet})"
            )
            raise SelectionMismatchError()

        self.logger.info(
            f"RequestWalletSelection selects the default wallet "
            f"(trace-id={trace_id}, wallet={self.configured_wallet})"
        )
        return SelectedWallet(
            wallet=self.configured_wallet,
            passphrase=self.wallet_passphrase,
        )

    def request_passphrase(self, trace_id: str, wallet: str) -> str:
        self.logger.debug(f"RequestPassphrase called (trace-id={trace_id}, wallet={wallet})")
        self._ensure_configured_wallet("RequestPassphrase", trace_id, wallet)
        self.logger.info(
            f"RequestPassphrase returns the passphrase (trace-id={trace_id}, wallet={wallet})"
        )
        return self.wallet_passphrase

    def request_permissions_review(
        self, trace_id: str, hostname: str, wallet: str, permissions: dict[str, str]
    ) -> bool:
        self.logger.debug(
            f"RequestPermissionsReview called (trace-id={trace_id}, hostname={hostname}, "
            f"permissions={dict(permissions)})"
        )
        self._ensure_configured_wallet("RequestPermissionsReview", trace_id, wallet)
        self.logger.info(
            f"RequestPermissionsReview approves the permissions (trace-id={trace_id}, "
            f"hostname={hostname}, wallet={wallet}, permissions={dict(permissions)})"
        )
        return True

    def request_transaction_review_for_sending(
        self,
        trace_id: str,
        hostname: str,
        wallet: str,
        public_key: str,
        transaction: str,
        received_at: datetime,
    ) -> bool:
        self.logger.debug(
            f"RequestTransactionReviewForSending called (trace-id={trace_id}, "
            f"hostname={hostname}, public-key={public_key})"
        )
        self._ensure_configured_wallet("RequestTransactionReviewForSending", trace_id, wallet)
        self.logger.info(
            f"RequestTransactionReviewForSending approves the transaction sending (trace-id={trace_id})"
        )
        return True

    def request_transaction_review_for_signing(
        self,
        trace_id: str,
        hostname: str,
        wallet: str,
        public_key: str,
        transaction: str,
        received_at: datetime,
    ) -> bool:
        self.logger.debug(
            f"RequestTransactionReviewForSigning called (trace-id={trace_id}, "
            f"hostname={hostname}, public-key={public_key})"
        )
        self._ensure_configured_wallet("RequestTransactionReviewForSigning", trace_id, wallet)
        self.logger.info(
            f"RequestTransactionReviewForSigning approves the transaction signing (trace-id={trace_id})"
        )
        return True

    def _ensure_configured_wallet(self, request: str, trace_id: str, wallet: str) -> None:
        if wallet == self.configured_wallet:
            return
        self.logger.error(
            f"{request} has been called with a different wallet than the one configured, "
            "using different wallet is not supported yet "
            f"(trace-id={trace_id}, configured-wallet={self.configured_wallet}, "
            f"requested-wallet={wallet})"
        )
        raise IdentityMismatchError()
