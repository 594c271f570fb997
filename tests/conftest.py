"""Shared pytest fixtures and test helpers for vaultpatch tests."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from vaultpatch.config.settings import VaultPatchSettings
from vaultpatch.domain.instruction import MutationInstruction, RawRequest, normalize_request
from vaultpatch.infrastructure.store import FilesystemStore, StoreError
from vaultpatch.infrastructure.vault import Vault
from vaultpatch.services.telemetry import _active, disable_telemetry


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """CLI runs with -v enable telemetry in the calling thread; undo it."""
    yield
    disable_telemetry()
    _active.set(None)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def vault_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Temporary vault directory with a ``notes/`` folder.

    This is the single source of truth for the vault directory layout.
    """
    monkeypatch.delenv("VAULTPATCH_CONFIG", raising=False)
    (tmp_path / "notes").mkdir()
    return tmp_path


@pytest.fixture
def settings(vault_root: Path) -> VaultPatchSettings:
    return VaultPatchSettings.from_cli(vault_root=vault_root)


@pytest.fixture
def vault(settings: VaultPatchSettings) -> Vault:
    """Filesystem-backed vault on the temp directory."""
    return Vault(settings)


@pytest.fixture
def _isolated_vault(vault_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to the temp vault root so the CLI picks it up.

    Use via ``@pytest.mark.usefixtures("_isolated_vault")`` on command test
    classes.
    """
    monkeypatch.chdir(vault_root)


# ---------------------------------------------------------------------------
# Shared test helpers (used across test modules)
# ---------------------------------------------------------------------------


def write_file(root: Path, rel: str, content: str = "") -> Path:
    """Create *rel* under *root* with *content*, including parents."""
    target = root / rel
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    return target


def read_file(root: Path, rel: str) -> str:
    return (root / rel).read_text(encoding="utf-8")


def instruction(
    method: str = "PATCH",
    path: str = "",
    body: str | bytes = b"",
    *,
    tag_namespace: bool = False,
    **headers: str,
) -> MutationInstruction:
    """Normalize a request built from keyword headers.

    Header names use underscores: ``Target_Type="file"``.
    """
    return normalize_request(request(method, path, body, tag_namespace=tag_namespace, **headers))


def request(
    method: str = "PATCH",
    path: str = "",
    body: str | bytes = b"",
    *,
    tag_namespace: bool = False,
    **headers: str,
) -> RawRequest:
    raw_body = body.encode("utf-8") if isinstance(body, str) else body
    return RawRequest(
        method=method,
        path=path,
        headers={k.replace("_", "-"): v for k, v in headers.items()},
        body=raw_body,
        tag_namespace=tag_namespace,
    )


class FailingStore(FilesystemStore):
    """FilesystemStore that fails selected primitives for selected paths.

    ``fail_on={"write": {"notes/b.md"}}`` makes ``write("notes/b.md", ...)``
    raise :class:`StoreError`; everything else behaves normally.
    """

    def __init__(self, root: Path, fail_on: dict[str, set[str]], **kwargs: Any) -> None:
        super().__init__(root, **kwargs)
        self.fail_on = fail_on

    def _check(self, action: str, path: str) -> None:
        if path in self.fail_on.get(action, set()):
            msg = f"{action.title()} failed for {path}: injected"
            raise StoreError(msg)

    def write(self, path: str, content: str) -> None:
        self._check("write", path)
        super().write(path, content)

    def copy(self, src: str, dst: str) -> None:
        self._check("copy", src)
        super().copy(src, dst)

    def remove(self, path: str) -> None:
        self._check("remove", path)
        super().remove(path)

    def trash(self, path: str) -> str:
        self._check("trash", path)
        return super().trash(path)
