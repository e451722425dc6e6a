"""The JSON-RPC API connected applications talk to."""
