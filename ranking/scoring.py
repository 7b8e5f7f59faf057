"""
ranking/scoring.py

Position-based competitive scoring between the tracked website and one
competitor.

Stateless. Inputs are maps from normalized query text to the latest known
ranking position, where ``None`` means "not ranked".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class PositionSample:
    """One observed ranking position for an owner and a query."""

    query: str
    position: int | None
    observed_at: datetime


@dataclass(frozen=True)
class CompetitiveScore:
    better: int
    worse: int
    total: int

    @property
    def net_score(self) -> int:
        return self.better - self.worse

    def to_dict(self) -> dict[str, int]:
        return {
            "better": self.better,
            "worse": self.worse,
            "total": self.total,
            "net_score": self.net_score,
        }


def normalize_query(query: str) -> str:
    """Trim and lower-case a query so samples of the same query collide."""
    return query.strip().lower()


def _present(position: int | None) -> int | None:
    # Zero or negative positions come from malformed provider rows.
    if position is None or position <= 0:
        return None
    return position


def latest_positions(samples: Iterable[PositionSample]) -> dict[str, int | None]:
    """Reduce samples to the most recently observed position per query.

    When two samples of the same query share the same ``observed_at``, the
    first one encountered wins.

    Args:
        samples: Position samples of a single owner in any order.

    Returns:
        Mapping of normalized query to position (``None`` when not ranked).
    """
    latest: dict[str, PositionSample] = {}
    for sample in samples:
        key = normalize_query(sample.query)
        if not key:
            continue
        current = latest.get(key)
        if current is None or sample.observed_at > current.observed_at:
            latest[key] = sample
    return {key: _present(sample.position) for key, sample in latest.items()}


def score(
    self_positions: Mapping[str, int | None],
    competitor_positions: Mapping[str, int | None],
) -> CompetitiveScore:
    """Compare the website against a competitor query by query.

    For each query in the union of both maps: skipped when neither side
    ranks; otherwise counted in ``total``. A side that ranks while the other
    does not wins the query. When both rank, the lower position wins and a
    tie counts for neither side.

    Args:
        self_positions: Website positions keyed by query.
        competitor_positions: Competitor positions keyed by query.

    Returns:
        A CompetitiveScore with ``net_score = better - worse``.
    """
    own = {normalize_query(k): _present(v) for k, v in self_positions.items()}
    other = {normalize_query(k): _present(v) for k, v in competitor_positions.items()}

    better = 0
    worse = 0
    total = 0
    for query in own.keys() | other.keys():
        mine = own.get(query)
        theirs = other.get(query)
        if mine is None and theirs is None:
            continue
        total += 1
        if theirs is None:
            better += 1
        elif mine is None:
            worse += 1
        elif mine < theirs:
            better += 1
        elif mine > theirs:
            worse += 1

    return CompetitiveScore(better=better, worse=worse, total=total)
