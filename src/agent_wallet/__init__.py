"""Agent Wallet - a local Ethereum wallet engine for tool-calling agents.

Manages signing and watch-only accounts, human-readable aliases, and the
construction and signing of EIP-1559 transactions. All state lives in a
single human-readable JSON document.
"""

__version__ = "0.3.0"
