"""Talking to the network's nodes over HTTP."""
