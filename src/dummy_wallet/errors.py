"""Root exception shared by every dummy-wallet component."""


class DummyWalletError(Exception):
    """Base class for all errors raised by dummy-wallet."""
