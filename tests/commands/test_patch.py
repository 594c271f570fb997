"""Tests for the patch CLI command."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.conftest import read_file, write_file
from vaultpatch.cli import cli


@pytest.mark.usefixtures("_isolated_vault")
class TestPatchCommand:
    def test_heading_append(self, cli_runner: CliRunner, vault_root: Path) -> None:
        write_file(vault_root, "notes/day.md", "# Today\n- a\n")
        result = cli_runner.invoke(
            cli,
            [
                "--json",
                "patch",
                "notes/day.md",
                "-t",
                "heading",
                "-o",
                "append",
                "--target",
                "Today",
                "--content",
                "- b",
            ],
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["status"] == 200
        assert payload["body"]["message"] == "Content successfully patched"
        assert payload["body"]["targetType"] == "heading"
        assert read_file(vault_root, "notes/day.md") == "# Today\n- a\n- b\n"

    def test_file_rename(self, cli_runner: CliRunner, vault_root: Path) -> None:
        write_file(vault_root, "notes/old.md", "x")
        write_file(vault_root, "index.md", "See [[old]]\n")
        result = cli_runner.invoke(
            cli,
            [
                "--json",
                "patch",
                "notes/old.md",
                "-t",
                "file",
                "-o",
                "rename",
                "--target",
                "name",
                "--content",
                "new.md",
            ],
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["body"]["newPath"] == "notes/new.md"
        assert read_file(vault_root, "index.md") == "See [[new]]\n"

    def test_tag_add_from_stdin(self, cli_runner: CliRunner, vault_root: Path) -> None:
        write_file(vault_root, "notes/day.md", "Body\n")
        result = cli_runner.invoke(
            cli,
            ["--json", "patch", "notes/day.md", "-t", "tag", "-o", "add", "--json-body", "-f", "-"],
            input='{"tags": ["work", "urgent"]}',
        )
        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["body"]["summary"]["succeeded"] == 2
        assert read_file(vault_root, "notes/day.md") == "Body\n\n#work #urgent\n"

    def test_human_output(self, cli_runner: CliRunner, vault_root: Path) -> None:
        write_file(vault_root, "notes/a.md", "x")
        result = cli_runner.invoke(
            cli,
            ["patch", "notes/a.md", "-t", "file", "-o", "move", "--target", "path",
             "--content", "archive/a.md"],
        )
        assert result.exit_code == 0, result.output
        assert "move_file" in result.output
        assert "archive/a.md" in result.output

    def test_missing_file_exits_nonzero(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["patch", "notes/none.md", "-t", "heading", "-o", "append", "--target", "H",
             "--content", "x"],
        )
        assert result.exit_code == 1
        assert "40401" in result.output

    def test_route_rejection(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["--json", "patch", "notes/a.md", "-t", "file", "-o", "rename", "--target", "path"],
        )
        assert result.exit_code == 1
        assert "40004" in result.output

    def test_content_and_file_conflict(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(
            cli,
            ["patch", "a.md", "-t", "file", "-o", "rename", "--target", "name",
             "--content", "b.md", "-f", "-"],
            input="c.md",
        )
        assert result.exit_code == 2
        assert "either --content or --content-file" in result.output

    def test_invalid_type_choice(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["patch", "a.md", "-t", "bogus", "-o", "append"])
        assert result.exit_code == 2

    def test_create_not_offered_as_operation(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(cli, ["patch", "a", "-t", "directory", "-o", "create"])
        assert result.exit_code == 2
