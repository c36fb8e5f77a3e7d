"""Mempool arbitrage pipeline: detect, evaluate, submit and track private bundles."""

__version__ = "0.1.0"
