"""Tests for folding walk results into period totals."""

import asyncio
from datetime import date

from src.rankings.folder import DateRangeFolder, fold, unique_ids, zero_total
from src.rankings.walker import DayBucket, PaginationWalker, WalkResult
from tests.conftest import FakeActivitySource, make_page

START = date(2025, 10, 13)
END = date(2025, 10, 19)


class ExplodingSource(FakeActivitySource):
    """Raises something the walker does not expect for one participant."""

    def __init__(self, feeds, broken_id):
        super().__init__(feeds)
        self.broken_id = broken_id

    async def fetch_activity_page(self, participant_id, page):
        if participant_id == self.broken_id:
            raise RuntimeError("markup changed")
        return await super().fetch_activity_page(participant_id, page)


def fold_many(source, ids, dates=None):
    folder = DateRangeFolder(PaginationWalker(source, max_pages=10))
    return asyncio.run(folder.fold_many(ids, START, END, dates=dates))


class TestFold:
    def test_breakdown_covers_every_day(self):
        walk = WalkResult(
            participant_id=1,
            valid_km=8.0,
            violation_km=1.0,
            daily_breakdown={
                date(2025, 10, 14): DayBucket(valid=5.0),
                date(2025, 10, 18): DayBucket(valid=3.0, violation=1.0),
            },
        )

        total = fold(walk, START, END)

        assert [d.date for d in total.daily_breakdown] == [
            date(2025, 10, day) for day in range(13, 20)
        ]
        assert [d.km for d in total.daily_breakdown] == [0.0, 5.0, 0.0, 0.0, 0.0, 3.0, 0.0]
        assert total.total_km == sum(d.km for d in total.daily_breakdown)
        assert total.violation_km == 1.0
        assert total.adjustment_km is None

    def test_sparse_breakdown_lists_active_days_only(self):
        walk = WalkResult(
            participant_id=1,
            valid_km=5.0,
            daily_breakdown={
                date(2025, 10, 18): DayBucket(valid=2.0),
                date(2025, 10, 2): DayBucket(valid=3.0),
            },
        )

        total = fold(walk, date(2025, 10, 1), END, dates=[])

        assert [d.date for d in total.daily_breakdown] == [date(2025, 10, 2), date(2025, 10, 18)]
        assert total.total_km == 5.0

    def test_zero_total(self):
        total = zero_total(42, START, END)

        assert total.participant_id == 42
        assert total.total_km == 0.0
        assert len(total.daily_breakdown) == 7
        assert all(d.km == 0.0 and d.violation_km == 0.0 for d in total.daily_breakdown)


class TestFoldMany:
    def test_one_total_per_distinct_id_in_request_order(self):
        source = FakeActivitySource(
            {
                2: [make_page(2, (date(2025, 10, 15), 4.0), (date(2025, 10, 1), 1.0))],
                1: [make_page(1, (date(2025, 10, 16), 6.0), (date(2025, 10, 1), 1.0))],
            }
        )

        totals = fold_many(source, [2, 1, 3, 2])

        assert [t.participant_id for t in totals] == [2, 1, 3]
        assert [t.total_km for t in totals] == [4.0, 6.0, 0.0]
        assert source.pages_fetched(2) == 1

    def test_failing_participant_gets_zero_total(self):
        """One broken walk never takes the others down."""
        source = ExplodingSource(
            {1: [make_page(1, (date(2025, 10, 16), 6.0), (date(2025, 10, 1), 1.0))]},
            broken_id=2,
        )

        totals = fold_many(source, [1, 2])

        assert len(totals) == 2
        assert totals[0].total_km == 6.0
        assert totals[1].participant_id == 2
        assert totals[1].total_km == 0.0
        assert len(totals[1].daily_breakdown) == 7

    def test_empty_request(self):
        assert fold_many(FakeActivitySource(), []) == []


def test_unique_ids_keeps_first_seen_order():
    assert unique_ids([5, 3, 5, 1, 3]) == [5, 3, 1]
