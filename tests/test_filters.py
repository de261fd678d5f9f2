"""Tests for transaction filtering."""

from datetime import date

import pytest

from expense_ledger.filters import (
    FilterCriteria,
    Selection,
    combine,
    counterparties,
    filter_transactions,
    month_bounds,
)
from expense_ledger.models import PaymentMode, TransactionType

from conftest import make_tx

JAN = date(2024, 1, 1)


@pytest.fixture
def january() -> list:
    return [
        make_tx("100", on=date(2024, 1, 1), title="First day"),
        make_tx("200", on=date(2024, 1, 31), title="Last day", for_whom="Raj"),
        make_tx("300", on=date(2024, 1, 10), payment_mode=PaymentMode.CASH, for_whom="Priya"),
        make_tx("50", on=date(2024, 1, 5), transaction_type=TransactionType.INCOME,
                for_whom="Employer"),
        make_tx("999", on=date(2024, 2, 1), title="Next month"),
        make_tx("999", on=date(2023, 12, 31), title="Previous month"),
    ]


class TestSelection:
    """Tests for the Selection multi-select value."""

    def test_all_matches_everything(self) -> None:
        """Test the unrestricted selection matches any value."""
        sel = Selection.all()
        assert sel.is_unrestricted
        assert sel.matches("anything")

    def test_empty_is_unrestricted(self) -> None:
        """Test an empty selection means no restriction."""
        assert Selection.of([]).is_unrestricted

    def test_toggle_on_and_off(self) -> None:
        """Test toggling a value on then off returns to unrestricted."""
        sel = Selection.all().toggle("Raj")
        assert sel.values == frozenset({"Raj"})
        assert not sel.matches("Priya")
        assert sel.toggle("Raj").is_unrestricted

    def test_toggle_adds(self) -> None:
        """Test toggling another value adds it."""
        sel = Selection.of(["Raj"]).toggle("Priya")
        assert sel.values == frozenset({"Raj", "Priya"})

    def test_intersect(self) -> None:
        """Test intersecting selections."""
        a = Selection.of(["Raj", "Priya"])
        b = Selection.of(["Priya", "Amit"])
        assert a.intersect(b) == Selection.of(["Priya"])
        assert a.intersect(Selection.all()) == a
        assert Selection.all().intersect(b) == b

    def test_disjoint_intersect(self) -> None:
        """Test disjoint selections have no intersection."""
        assert Selection.of(["Raj"]).intersect(Selection.of(["Priya"])) is None


class TestFilterTransactions:
    """Tests for filter_transactions."""

    def test_month_bounds(self) -> None:
        """Test month bounds include first and last day."""
        assert month_bounds(date(2024, 2, 14)) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_month_only(self, january: list) -> None:
        """Test the month window includes both boundary days."""
        result = filter_transactions(january, FilterCriteria(month=JAN))
        titles = [tx.title for tx in result]
        assert "First day" in titles
        assert "Last day" in titles
        assert "Next month" not in titles
        assert "Previous month" not in titles
        assert len(result) == 4

    def test_month_normalized(self) -> None:
        """Test any date in the month selects that month."""
        assert FilterCriteria(month=date(2024, 1, 17)).month == JAN

    def test_preserves_order(self, january: list) -> None:
        """Test matching transactions keep their input order."""
        result = filter_transactions(january, FilterCriteria(month=JAN))
        assert [tx.amount for tx in result] == [tx.amount for tx in january[:4]]

    def test_by_type(self, january: list) -> None:
        """Test filtering by transaction type."""
        criteria = FilterCriteria(
            month=JAN, transaction_types=Selection.of([TransactionType.INCOME])
        )
        result = filter_transactions(january, criteria)
        assert [tx.for_whom for tx in result] == ["Employer"]

    def test_by_payment_mode(self, january: list) -> None:
        """Test filtering by payment mode."""
        criteria = FilterCriteria(month=JAN, payment_modes=Selection.of([PaymentMode.CASH]))
        result = filter_transactions(january, criteria)
        assert [tx.for_whom for tx in result] == ["Priya"]

    def test_by_person(self, january: list) -> None:
        """Test filtering by counterparty."""
        criteria = FilterCriteria(month=JAN, for_whom=Selection.of(["Raj", "Priya"]))
        result = filter_transactions(january, criteria)
        assert {tx.for_whom for tx in result} == {"Raj", "Priya"}

    def test_filters_combine_with_and(self, january: list) -> None:
        """Test criteria are combined with AND."""
        criteria = FilterCriteria(
            month=JAN,
            payment_modes=Selection.of([PaymentMode.UPI]),
            for_whom=Selection.of(["Priya"]),
        )
        assert filter_transactions(january, criteria) == []

    def test_order_of_application(self, january: list) -> None:
        """Test applying two filters in either order gives the same result."""
        by_mode = FilterCriteria(month=JAN, payment_modes=Selection.of([PaymentMode.UPI]))
        by_person = FilterCriteria(month=JAN, for_whom=Selection.of(["Raj", "Self"]))

        one = filter_transactions(filter_transactions(january, by_mode), by_person)
        two = filter_transactions(filter_transactions(january, by_person), by_mode)
        assert one == two

        combined = combine(by_mode, by_person)
        assert combined is not None
        assert filter_transactions(january, combined) == one


class TestCombine:
    """Tests for combine."""

    def test_different_months(self) -> None:
        """Test criteria for different months cannot be combined."""
        assert combine(FilterCriteria(month=JAN), FilterCriteria(month=date(2024, 2, 1))) is None

    def test_disjoint(self) -> None:
        """Test disjoint selections combine to nothing."""
        a = FilterCriteria(month=JAN, for_whom=Selection.of(["Raj"]))
        b = FilterCriteria(month=JAN, for_whom=Selection.of(["Priya"]))
        assert combine(a, b) is None

    def test_intersection(self) -> None:
        """Test combined criteria use the intersection of each selection."""
        a = FilterCriteria(month=JAN, payment_modes=Selection.of([PaymentMode.UPI, PaymentMode.CASH]))
        b = FilterCriteria(month=JAN, payment_modes=Selection.of([PaymentMode.CASH]))
        combined = combine(a, b)
        assert combined is not None
        assert combined.payment_modes == Selection.of([PaymentMode.CASH])
        assert combined.for_whom.is_unrestricted


class TestCounterparties:
    """Tests for counterparties."""

    def test_sorted_distinct(self, january: list) -> None:
        """Test counterparties are distinct and sorted."""
        assert counterparties(january) == ["Employer", "Priya", "Raj", "Self"]
