"""Date-bucketed lookup of schedule exceptions with specificity precedence."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Tuple

from swimsched.core.models import ActivityType, ExceptionType, ScheduleException

logger = logging.getLogger(__name__)


def specificity(exc: ScheduleException) -> int:
    """2 when group and activity are both set, 1 for either, 0 for neither."""
    return int(exc.group_name is not None) + int(exc.activity_type is not None)


def applies_to(exc: ScheduleException, group_name: str, activity_type: ActivityType) -> bool:
    return (exc.group_name is None or exc.group_name == group_name) and (
        exc.activity_type is None or exc.activity_type == activity_type
    )


def _overlaps(first: ScheduleException, second: ScheduleException) -> bool:
    groups_meet = first.group_name is None or second.group_name is None or first.group_name == second.group_name
    activities_meet = (
        first.activity_type is None
        or second.activity_type is None
        or first.activity_type == second.activity_type
    )
    return groups_meet and activities_meet


class ExceptionIndex:
    """Index exceptions by date and pick the single one governing a slot.

    Precedence is specificity first, then recency: ``created_at`` when present,
    otherwise position in the input (later rows count as newer).
    """

    def __init__(self, exceptions: Iterable[ScheduleException]) -> None:
        self._by_date: Dict[date, List[Tuple[ScheduleException, int]]] = defaultdict(list)
        for position, exc in enumerate(exceptions):
            self._by_date[exc.exception_date].append((exc, position))

        self.ambiguities = self._find_ambiguities()
        for day, ids in self.ambiguities:
            logger.warning(
                "Exceptions %s on %s tie at equal specificity; the most recent one wins",
                ", ".join(ids),
                day.isoformat(),
            )

    @staticmethod
    def _rank(entry: Tuple[ScheduleException, int]) -> Tuple[int, float, int]:
        exc, position = entry
        created = exc.created_at.timestamp() if exc.created_at else float("-inf")
        return specificity(exc), created, position

    def _find_ambiguities(self) -> List[Tuple[date, Tuple[str, str]]]:
        found: List[Tuple[date, Tuple[str, str]]] = []
        for day in sorted(self._by_date):
            for (first, _), (second, _) in combinations(self._by_date[day], 2):
                if specificity(first) == specificity(second) and _overlaps(first, second):
                    found.append((day, (first.id, second.id)))
        return found

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._by_date.values())

    def dates(self) -> List[date]:
        return sorted(self._by_date)

    def for_date(self, day: date) -> List[ScheduleException]:
        return [exc for exc, _ in self._by_date.get(day, [])]

    def candidates(
        self,
        day: date,
        group_name: str,
        activity_type: ActivityType,
    ) -> List[ScheduleException]:
        """Matching exceptions for a slot, highest precedence first."""
        matching = [entry for entry in self._by_date.get(day, []) if applies_to(entry[0], group_name, activity_type)]
        matching.sort(key=self._rank, reverse=True)
        return [exc for exc, _ in matching]

    def resolve(
        self,
        day: date,
        group_name: str,
        activity_type: ActivityType,
    ) -> Optional[ScheduleException]:
        ranked = self.candidates(day, group_name, activity_type)
        return ranked[0] if ranked else None

    def full_day_cancellation(self, day: date) -> Optional[ScheduleException]:
        """A canceled exception covering every group and activity on ``day``."""
        blanket = [
            entry
            for entry in self._by_date.get(day, [])
            if entry[0].kind is ExceptionType.CANCELED and specificity(entry[0]) == 0
        ]
        if not blanket:
            return None
        return max(blanket, key=self._rank)[0]
