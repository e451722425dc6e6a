"""dummy-wallet: an always-agree wallet service for development and testing.

FOR DEVELOPMENT AND TESTING ONLY. Every interaction request coming from a
connected application is approved on behalf of a single configured wallet.
"""

__version__ = "0.1.0"
