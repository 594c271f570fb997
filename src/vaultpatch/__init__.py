"""vaultpatch — mutation router and batch-operation engine for markdown vaults."""

__version__ = "0.1.0"
