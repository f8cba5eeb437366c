"""
Pure score arithmetic shared by the submit path and the grading cascade.

Nothing here touches the database; callers hand in attempt rows (model
instances or dicts) and write back what comes out.
"""
from collections.abc import Mapping
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Iterable, Optional

from cores.utils import is_number, percent_of, round_half_up


def _get(row, name, default=None):
    if isinstance(row, Mapping):
        return row.get(name, default)
    return getattr(row, name, default)


def composite_percent(row) -> int:
    """Explicit percent, else graded percent, else auto percent, else 0."""
    for name in ('percent', 'graded_percent', 'auto_percent'):
        value = _get(row, name)
        if is_number(value):
            return int(value)
    return 0


@dataclass(frozen=True)
class AttemptScores:
    auto_percent: int
    graded_score: float
    graded_total: float
    graded_percent: int
    percent: int


def score_attempt(auto_score, auto_total, graded_score=0, graded_total=0) -> AttemptScores:
    """
    auto 8/10 with essays 16/20 -> graded_percent 80, percent 80.
    Totals of zero give 0 rather than dividing.
    """
    auto_score = float(auto_score or 0)
    auto_total = float(auto_total or 0)
    graded_score = float(graded_score or 0)
    graded_total = float(graded_total or 0)
    return AttemptScores(
        auto_percent=percent_of(auto_score, auto_total),
        graded_score=graded_score,
        graded_total=graded_total,
        graded_percent=percent_of(graded_score, graded_total),
        percent=percent_of(auto_score + graded_score, auto_total + graded_total),
    )


def sum_graded_essays(essays, default_max=10):
    """Total (score, max) over essays whose status is graded."""
    score = 0.0
    total = 0.0
    for essay in essays:
        if _get(essay, 'status') != 'graded' or not is_number(_get(essay, 'score')):
            continue
        max_score = _get(essay, 'max_score')
        score += float(_get(essay, 'score'))
        total += float(max_score) if is_number(max_score) else float(default_max)
    return score, total


@dataclass(frozen=True)
class RollupFields:
    attempts_used: int = 0
    best_percent: Optional[int] = None
    best_graded_percent: Optional[int] = None
    last_score: Optional[float] = None
    last_total: Optional[float] = None
    last_score_percent: Optional[int] = None
    last_submitted_at: Optional[datetime] = None

    def as_dict(self):
        return asdict(self)


def _latest(attempts):
    """Latest by submitted_at; rows without a timestamp lose, list order breaks ties."""
    def key(pair):
        position, row = pair
        submitted = _get(row, 'submitted_at')
        return (submitted is not None, submitted.timestamp() if submitted else 0, position)
    return max(enumerate(attempts), key=key)[1]


def recompute_rollup(attempts: Iterable) -> RollupFields:
    """
    Derive a (user, quiz) rollup from all of its attempts.

    Maxima use strict ``>`` so the first attempt to reach a score keeps it,
    which makes the result independent of iteration order.
    """
    attempts = list(attempts)
    if not attempts:
        return RollupFields()

    best = None
    best_graded = None
    for row in attempts:
        pct = composite_percent(row)
        if best is None or pct > best:
            best = pct
        graded_total = _get(row, 'graded_total')
        if is_number(graded_total) and graded_total > 0:
            graded_pct = _get(row, 'graded_percent')
            graded_pct = int(graded_pct) if is_number(graded_pct) else 0
            if best_graded is None or graded_pct > best_graded:
                best_graded = graded_pct

    latest = _latest(attempts)
    return RollupFields(
        attempts_used=len(attempts),
        best_percent=best,
        best_graded_percent=best_graded,
        last_score=float(_get(latest, 'auto_score') or 0) + float(_get(latest, 'graded_score') or 0),
        last_total=float(_get(latest, 'auto_total') or 0) + float(_get(latest, 'graded_total') or 0),
        last_score_percent=composite_percent(latest),
        last_submitted_at=_get(latest, 'submitted_at'),
    )


def rollup_average(rollups) -> Optional[int]:
    """
    Mean over rollups of best graded percent, else best percent, else the
    last score's percent. Rollups with none of those are skipped.
    """
    picks = []
    for rollup in rollups:
        for name in ('best_graded_percent', 'best_percent', 'last_score_percent'):
            value = _get(rollup, name)
            if is_number(value):
                picks.append(float(value))
                break
    if not picks:
        return None
    return max(0, min(100, round_half_up(sum(picks) / len(picks))))
