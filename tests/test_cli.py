"""Tests for the command-line entry point."""

import io
import os

import pytest

from ptflreader.cli import main


@pytest.fixture
def small_config(write_scan):
    """Configuration rendering small canvases."""
    return write_scan("config.yaml", "render:\n  scale: 100\n")


@pytest.fixture
def no_stdin(monkeypatch):
    """Feed the command loop an empty stdin."""
    monkeypatch.setattr("sys.stdin", io.StringIO(""))


class TestCli:
    """Tests for startup loading and batch rendering."""

    def test_missing_file(self, temp_dir, capsys):
        missing = os.path.join(temp_dir, "missing.ptfl")

        assert main([missing]) == 1

        out = capsys.readouterr().out
        assert f"Given filepath {missing} does not exist" in out
        assert "usage:" in out

    def test_no_prompt_renders_everything(self, two_block_scan, small_config, temp_dir, capsys):
        out_dir = os.path.join(temp_dir, "renders")

        assert main([two_block_scan, "--no-prompt", "--out-dir", out_dir, "--config", small_config]) == 0

        out = capsys.readouterr().out
        assert f"Read 2 from {two_block_scan}." in out
        assert "Rendered 2/2 entries" in out
        assert sorted(os.listdir(out_dir)) == ["two.ptfl-0.png", "two.ptfl-1.png"]

    def test_bad_file_reported_and_skipped(self, write_scan, example_scan, small_config, temp_dir, capsys):
        bad = write_scan("bad.ptfl", "nope\n")
        out_dir = os.path.join(temp_dir, "renders")

        assert main([bad, example_scan, "--no-prompt", "--out-dir", out_dir, "--config", small_config]) == 0

        out = capsys.readouterr().out
        assert f"Error happened parsing file {bad}:" in out
        assert "Rendered 1/1 entries" in out

    def test_interactive_loop_ends_at_eof(self, example_scan, no_stdin, capsys):
        assert main([example_scan]) == 0
        assert f"Read 1 from {example_scan}." in capsys.readouterr().out

    def test_write_default_config(self, temp_dir, capsys):
        path = os.path.join(temp_dir, "defaults.yaml")

        assert main(["--write-default-config", path]) == 0
        assert os.path.exists(path)
