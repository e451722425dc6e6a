"""Service-level consent policies."""

from __future__ import annotations


class AutomaticConsentPolicy:
    """Transactions submitted to the service never wait for a human decision."""

    def wants_manual_consent(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "AutomaticConsentPolicy()"


def new_automatic_consent_policy() -> AutomaticConsentPolicy:
    return AutomaticConsentPolicy()
