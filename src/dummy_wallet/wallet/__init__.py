"""Wallet storage for dummy-wallet.

Each wallet is a single Ethereum keypair saved as an encrypted keystore
file. Wallets are unlocked with their passphrase when the service boots and
whenever a connected application asks for a signature.
"""
