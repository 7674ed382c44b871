from __future__ import annotations

from datetime import date

from cdladder.core import diagnostics as diag
from cdladder.core.defaults import DEFAULT_INTEREST_RATES
from cdladder.core.diagnostics import Diagnostics
from cdladder.core.planner import parse_iso_date, plan_year_range, schedule_withdrawals
from cdladder.core.tranches import initialize_deposits
from cdladder.schemas.projection import AllocationRow, WithdrawalRow

START = date(2025, 3, 1)


def deposits_for(*terms: str):
    rows = [AllocationRow(amount=1000, term=term) for term in terms]
    return initialize_deposits(rows, DEFAULT_INTEREST_RATES, START)


def test_range_uses_five_year_lookahead_after_longest_term():
    year_range = plan_year_range(START, deposits_for("12m", "HYSA"), [])
    assert (year_range.first, year_range.last) == (2025, 2031)
    assert len(year_range) == 7


def test_partial_years_round_up():
    year_range = plan_year_range(START, deposits_for("18m"), [])
    assert year_range.last == 2025 + 2 + 5


def test_liquid_only_portfolio_still_looks_ahead():
    year_range = plan_year_range(START, deposits_for("HYSA"), [])
    assert list(year_range.years()) == list(range(2025, 2031))


def test_late_withdrawal_extends_range():
    year_range = plan_year_range(START, deposits_for("60m"), [date(2042, 6, 1)])
    assert year_range.last == 2042


def test_schedule_withdrawals_skips_bad_and_early_dates():
    diagnostics = Diagnostics()
    rows = [
        WithdrawalRow(id="ok", date="2026-09-01", amount=500),
        WithdrawalRow(id="garbled", date="09/01/2026", amount=500),
        WithdrawalRow(id="blank", date=None, amount=500),
        WithdrawalRow(id="early", date="2024-12-31", amount=500),
        WithdrawalRow(date="2027-01-05T00:00:00", amount=250),
    ]

    scheduled = schedule_withdrawals(rows, START.year, diagnostics)

    assert [w.id for w in scheduled] == ["ok", "withdrawal-4"]
    assert scheduled[1].date == date(2027, 1, 5)
    assert diagnostics.codes() == [
        diag.INVALID_WITHDRAWAL_DATE,
        diag.INVALID_WITHDRAWAL_DATE,
        diag.WITHDRAWAL_BEFORE_START,
    ]


def test_parse_iso_date_rejects_nonsense():
    assert parse_iso_date("2025-02-30") is None
    assert parse_iso_date("") is None
    assert parse_iso_date("2025-02-03") == date(2025, 2, 3)


def test_parse_iso_date_accepts_utc_timestamps():
    assert parse_iso_date("2026-09-01T12:30:00Z") == date(2026, 9, 1)
    assert parse_iso_date("2026-09-01T00:00:00.000Z") == date(2026, 9, 1)
    assert parse_iso_date(" 2026-09-01 ") == date(2026, 9, 1)


def test_javascript_timestamps_are_scheduled():
    diagnostics = Diagnostics()
    rows = [WithdrawalRow(id="js", date="2027-03-15T00:00:00.000Z", amount=750)]

    scheduled = schedule_withdrawals(rows, START.year, diagnostics)

    assert [(w.id, w.date) for w in scheduled] == [("js", date(2027, 3, 15))]
    assert diagnostics.codes() == []
