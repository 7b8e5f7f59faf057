"""
ranking/sitemap_diff.py

Set difference between two sitemap snapshots.

URLs are compared as stored. Scheme, trailing slash and query-string
ordering are not normalized, so two spellings of the same page count as
one removal plus one addition.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SitemapDiff:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: int = 0

    def to_dict(self) -> dict[str, object]:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "added_count": len(self.added),
            "removed_count": len(self.removed),
            "unchanged": self.unchanged,
        }


def _ordered_unique(urls: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for url in urls:
        if url in seen:
            continue
        seen.add(url)
        ordered.append(url)
    return ordered


def diff(urls_a: Iterable[str], urls_b: Iterable[str]) -> SitemapDiff:
    """Compare snapshot A (newer) against snapshot B (older).

    Args:
        urls_a: URL set of the newer snapshot.
        urls_b: URL set of the older snapshot.

    Returns:
        ``added`` holds URLs only in A in A's order, ``removed`` holds URLs
        only in B in B's order, and ``unchanged = |A| - |added|``.
    """
    a = _ordered_unique(urls_a)
    b = _ordered_unique(urls_b)
    a_set = set(a)
    b_set = set(b)

    added = [url for url in a if url not in b_set]
    removed = [url for url in b if url not in a_set]
    return SitemapDiff(added=added, removed=removed, unchanged=len(a) - len(added))
