"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``VAULTPATCH_*`` prefix
  3. TOML file    — ``vaultpatch.toml`` located by :func:`locate_config`
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` fed by
the config location rules in :mod:`vaultpatch.config.discovery`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from vaultpatch.config.discovery import locate_config, read_config
from vaultpatch.config.models import DeleteConfig, LinksConfig, TagsConfig, VaultConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from the located ``vaultpatch.toml``, if any."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = read_config(toml_path) if toml_path else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class VaultPatchSettings(BaseSettings):
    """Unified settings for the vaultpatch CLI.

    Merges CLI flags, environment variables, TOML config sections,
    and code-baked defaults into a single frozen object.

    Attributes:
        vault_root: Resolved vault directory (``--vault``, else the parent
            of ``vaultpatch.toml``, else CWD).
        config_path: The TOML file that was loaded, if any.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "VAULTPATCH_",
        "env_nested_delimiter": "__",
    }

    # --- Resolved path (not in TOML, derived from config location) ---
    vault_root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    vault: VaultConfig = Field(default_factory=VaultConfig)
    delete: DeleteConfig = Field(default_factory=DeleteConfig)
    tags: TagsConfig = Field(default_factory=TagsConfig)
    links: LinksConfig = Field(default_factory=LinksConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        vault_root: Path | None = None,
        **cli_flags: Any,
    ) -> VaultPatchSettings:
        """Construct settings from CLI invocation.

        Locates ``vaultpatch.toml`` and the vault root (see
        :func:`~vaultpatch.config.discovery.locate_config`) and merges CLI
        flags as highest-priority overrides.
        """
        location = locate_config(config_path=config_path, vault_root=vault_root)
        _tls.toml_path = location.path
        try:
            return cls(
                vault_root=location.vault_root,
                config_path=location.path,
                **cli_flags,
            )
        finally:
            _tls.toml_path = None
