"""Tests for the TransferPlanner class."""

import pytest

from pylega.exceptions import LegaNotFoundError
from pylega.mirror.planner import TransferItem, TransferPlanner


class TestTransferPlanner:
    """Tests for mapping local files to remote paths."""

    def test_plan_maps_relative_paths(self, tmp_path):
        """Remote path is base dir joined with the relative path."""
        (tmp_path / "css").mkdir()
        (tmp_path / "index.html").write_text("<html>")
        (tmp_path / "css" / "site.css").write_text("body {}")

        plan = TransferPlanner().plan(tmp_path, "/www/site")

        mapping = {item.local_path: item.remote_path for item in plan}
        assert mapping == {
            tmp_path / "index.html": "/www/site/index.html",
            tmp_path / "css" / "site.css": "/www/site/css/site.css",
        }

    def test_plan_single_file(self, tmp_path):
        """One file yields one item."""
        (tmp_path / "a.txt").write_text("y")

        plan = TransferPlanner().plan(tmp_path, "/base")

        assert plan == [TransferItem(tmp_path / "a.txt", "/base/a.txt")]

    def test_plan_skips_empty_directories(self, tmp_path):
        """Only files are planned."""
        (tmp_path / "empty").mkdir()

        assert TransferPlanner().plan(tmp_path, "/base") == []

    def test_relative_remote_base(self, tmp_path):
        """A relative base stays relative to the login directory."""
        (tmp_path / "a.txt").write_text("y")

        plan = TransferPlanner().plan(tmp_path, "public_html")

        assert plan[0].remote_path == "public_html/a.txt"

    def test_missing_source(self, tmp_path):
        """Planning a missing tree raises LegaNotFoundError."""
        with pytest.raises(LegaNotFoundError):
            TransferPlanner().plan(tmp_path / "missing", "/base")

    def test_item_describe_and_dict(self, tmp_path):
        """Items render as 'local -> remote'."""
        item = TransferItem(tmp_path / "a.txt", "/base/a.txt")

        assert item.describe() == f"{tmp_path / 'a.txt'} -> /base/a.txt"
        assert item.to_dict() == {
            "local": str(tmp_path / "a.txt"),
            "remote": "/base/a.txt",
        }
