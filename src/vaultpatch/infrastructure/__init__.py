"""Infrastructure layer — file store, metadata index, link-preserving rename.

The collaborators the service layer mutates the vault through. Each one is
defined by a Protocol so tests and embedders can inject their own
implementation through :class:`~vaultpatch.infrastructure.vault.Vault`.
"""
