"""
tests/test_sitemap_diff.py

Set difference between two sitemap snapshots.
"""

from __future__ import annotations

from ranking.sitemap_diff import diff


class TestSitemapDiff:
    def test_added_and_removed_keep_snapshot_order(self) -> None:
        result = diff(
            ["https://a.fr/new-2", "https://a.fr/", "https://a.fr/new-1"],
            ["https://a.fr/old", "https://a.fr/"],
        )
        assert result.added == ["https://a.fr/new-2", "https://a.fr/new-1"]
        assert result.removed == ["https://a.fr/old"]
        assert result.unchanged == 1

    def test_identical_snapshots(self) -> None:
        urls = ["https://a.fr/", "https://a.fr/b"]
        result = diff(urls, list(reversed(urls)))
        assert result.added == []
        assert result.removed == []
        assert result.unchanged == 2

    def test_first_snapshot_has_everything_added(self) -> None:
        result = diff(["https://a.fr/", "https://a.fr/b"], [])
        assert result.added == ["https://a.fr/", "https://a.fr/b"]
        assert result.unchanged == 0

    def test_duplicates_in_input_count_once(self) -> None:
        result = diff(["https://a.fr/x", "https://a.fr/x"], [])
        assert result.added == ["https://a.fr/x"]
        assert result.unchanged == 0

    def test_urls_are_compared_exactly(self) -> None:
        result = diff(["https://a.fr/page/"], ["https://a.fr/page"])
        assert result.added == ["https://a.fr/page/"]
        assert result.removed == ["https://a.fr/page"]

    def test_to_dict_counts(self) -> None:
        data = diff(["https://a.fr/x"], ["https://a.fr/y"]).to_dict()
        assert data["added_count"] == 1
        assert data["removed_count"] == 1
        assert data["unchanged"] == 0
