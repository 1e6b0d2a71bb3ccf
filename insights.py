import logging
from typing import Any, Optional, Protocol

logger = logging.getLogger(__name__)

# (month id, revision) pairs of every month an overview was built from.
Fingerprint = tuple[tuple[int, int], ...]


class MonthChangeListener(Protocol):
    def month_changed(self, user_id: int, month_id: int) -> None: ...


class InsightsCache:
    """Derived analyses keyed by month and by user.

    Services call ``month_changed`` after every successful write; the entry for
    that month and the owner's overview are dropped so the next read rebuilds
    them from the stored totals.

    Entries also remember the revisions they were built from. A reader that
    loaded a month just before a concurrent write can still store its result
    after the invalidation, so lookups only return entries whose revisions
    match what the caller has just loaded.
    """

    def __init__(self) -> None:
        self._month_summaries: dict[tuple[int, int], tuple[int, dict[str, Any]]] = {}
        self._overviews: dict[int, tuple[Fingerprint, dict[str, Any]]] = {}

    def get_month(
        self, user_id: int, month_id: int, revision: int
    ) -> Optional[dict[str, Any]]:
        cached = self._month_summaries.get((user_id, month_id))
        if cached is None or cached[0] != revision:
            return None
        return cached[1]

    def put_month(
        self, user_id: int, month_id: int, revision: int, summary: dict[str, Any]
    ) -> None:
        self._month_summaries[(user_id, month_id)] = (revision, summary)

    def get_overview(
        self, user_id: int, fingerprint: Fingerprint
    ) -> Optional[dict[str, Any]]:
        cached = self._overviews.get(user_id)
        if cached is None or cached[0] != fingerprint:
            return None
        return cached[1]

    def put_overview(
        self, user_id: int, fingerprint: Fingerprint, overview: dict[str, Any]
    ) -> None:
        self._overviews[user_id] = (fingerprint, overview)

    def month_changed(self, user_id: int, month_id: int) -> None:
        self._month_summaries.pop((user_id, month_id), None)
        self._overviews.pop(user_id, None)
        logger.debug(f"insights_invalidated: user_id={user_id} month_id={month_id}")
