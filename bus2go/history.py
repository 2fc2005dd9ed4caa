"""Merge trips and recharges into one chronological activity feed."""

from __future__ import annotations

from typing import Sequence

from .models import HistoryItem, HistoryKind, Recharge, Trip

RECENT_TRIP_COUNT = 2
RECENT_RECHARGE_COUNT = 1

_KIND_RANK = {HistoryKind.TRIP: 0, HistoryKind.RECHARGE: 1}


def _sort_key(item: HistoryItem) -> tuple[float, int, int]:
    # Newest first; equal timestamps list trips before recharges, then keep
    # the order in which each list was fetched.
    return (-item.timestamp.timestamp(), _KIND_RANK[item.kind], item.sequence)


def merge_history(trips: Sequence[Trip], recharges: Sequence[Recharge]) -> list[HistoryItem]:
    """Return every trip and recharge ordered by timestamp, newest first."""

    items = [HistoryItem.from_trip(trip, index) for index, trip in enumerate(trips)]
    items.extend(
        HistoryItem.from_recharge(recharge, index) for index, recharge in enumerate(recharges)
    )
    return sorted(items, key=_sort_key)


def recent_activity(
    trips: Sequence[Trip],
    recharges: Sequence[Recharge],
    *,
    trip_limit: int = RECENT_TRIP_COUNT,
    recharge_limit: int = RECENT_RECHARGE_COUNT,
) -> list[HistoryItem]:
    """Latest few entries for the home view.

    The caps apply per kind to the lists as stored (newest first) and the
    survivors are merged afterwards, so the result is not a global "top N".
    """

    return merge_history(trips[:trip_limit], recharges[:recharge_limit])
