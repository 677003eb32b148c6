"""Facemelt CLI — RPC client, price feed, configuration and commands."""
