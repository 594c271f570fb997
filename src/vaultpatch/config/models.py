"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, vaultpatch.toml only contains
overrides. A vault works with no config file at all.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from vaultpatch.domain.tags import DEFAULT_MAX_TAG_LENGTH
from vaultpatch.infrastructure.store import DEFAULT_SKIP_DIRS

# --- vaultpatch.toml sections ---


class VaultConfig(BaseModel):
    """[vault] section."""

    model_config = {"frozen": True}

    name: str = "my-vault"
    skip_dirs: list[str] = Field(default_factory=lambda: sorted(DEFAULT_SKIP_DIRS))


class DeleteConfig(BaseModel):
    """[delete] section."""

    model_config = {"frozen": True}

    trash_dir: str = ".trash"
    permanent_default: bool = False


class TagsConfig(BaseModel):
    """[tags] section."""

    model_config = {"frozen": True}

    max_length: int = Field(default=DEFAULT_MAX_TAG_LENGTH, ge=1)


class LinksConfig(BaseModel):
    """[links] section."""

    model_config = {"frozen": True}

    rewrite: bool = True

