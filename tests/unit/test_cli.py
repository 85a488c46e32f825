"""Tests for the command-line interface."""

import json

import pytest
from typer.testing import CliRunner

from linkshelf.interface import cli
from linkshelf.services.store import LinkStore

runner = CliRunner()


@pytest.fixture
def cli_store(store: LinkStore, monkeypatch) -> LinkStore:
    """Point the CLI at the test store."""
    monkeypatch.setattr(cli, "get_store_instance", lambda: store)
    return store


class TestCommands:
    """Tests for CLI commands against a temporary store."""

    def test_add_and_list(self, cli_store: LinkStore):
        """Test adding items and showing the tree."""
        result = runner.invoke(cli.app, ["add", "Work", "--type", "folder"])
        assert result.exit_code == 0, result.output

        folder = cli_store.get_root_items()[0]
        result = runner.invoke(cli.app, [
            "add", "Docs", "--url", "https://docs.python.org",
            "--parent", str(folder.id), "--tags", "python, docs",
        ])
        assert result.exit_code == 0, result.output

        result = runner.invoke(cli.app, ["list"])
        assert result.exit_code == 0
        assert "Work" in result.output
        assert "Docs" in result.output

        docs = cli_store.get_children(folder.id)[0]
        assert [t.name for t in cli_store.get_tags_for_item(docs.id)] == ["docs", "python"]

    def test_add_invalid_exits_nonzero(self, cli_store: LinkStore):
        """Test that validation errors are reported with exit code 1."""
        result = runner.invoke(cli.app, ["add", "Docs"])

        assert result.exit_code == 1
        assert "URL is required" in result.output

    def test_rm_blocked_then_recursive(self, cli_store: LinkStore, sample_tree):
        """Test the delete flow for a non-empty folder."""
        f1 = sample_tree["F1"]

        result = runner.invoke(cli.app, ["rm", str(f1.id)])
        assert result.exit_code == 1
        assert "L1" in result.output

        result = runner.invoke(cli.app, ["rm", str(f1.id), "--recursive"])
        assert result.exit_code == 0
        assert "Deleted 4 item(s)" in result.output
        assert cli_store.get_item(f1.id) is None

    def test_move_cycle(self, cli_store: LinkStore, sample_tree):
        """Test that a cyclic move is refused."""
        result = runner.invoke(cli.app, [
            "move", str(sample_tree["F1"].id), "--parent", str(sample_tree["G1"].id),
        ])

        assert result.exit_code == 1
        assert "descendant" in result.output

    def test_open_records_access(self, cli_store: LinkStore, sample_tree):
        """Test that open prints the target and counts the access."""
        r1 = sample_tree["R1"]

        result = runner.invoke(cli.app, ["open", str(r1.id)])

        assert result.exit_code == 0
        assert r1.url in result.output
        assert cli_store.get_item(r1.id).access_count == 1

    def test_export_import_roundtrip(self, cli_store: LinkStore, sample_tree, tmp_path):
        """Test exporting to a file and importing it back into a container."""
        target = tmp_path / "backup.json"

        result = runner.invoke(cli.app, ["export", "--output", str(target)])
        assert result.exit_code == 0
        assert json.loads(target.read_text())["statistics"]["totalItems"] == 6

        result = runner.invoke(cli.app, ["import", str(target), "--policy", "rename"])
        assert result.exit_code == 0, result.output
        assert "Imported 6 item(s)" in result.output
        assert len(cli_store.get_all_items()) == 13

    def test_import_bad_policy(self, cli_store: LinkStore, tmp_path):
        """Test that an unknown duplicate policy is rejected."""
        target = tmp_path / "doc.json"
        target.write_text('{"items": []}')

        result = runner.invoke(cli.app, ["import", str(target), "--policy", "merge"])

        assert result.exit_code == 1

    def test_check(self, cli_store: LinkStore, sample_tree):
        """Test the invariant check on a healthy store."""
        result = runner.invoke(cli.app, ["check"])

        assert result.exit_code == 0
        assert "No problems" in result.output

    def test_open_folder_refused(self, cli_store: LinkStore, sample_tree):
        """Test that a folder can't be opened from the command line."""
        f1 = sample_tree["F1"]

        result = runner.invoke(cli.app, ["open", str(f1.id)])

        assert result.exit_code == 1
        assert "Cannot open" in result.output
        assert cli_store.get_item(f1.id).access_count == 0
