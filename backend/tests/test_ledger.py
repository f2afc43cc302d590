import pytest

from ehostelz.services.ledger import (
    ALL,
    FEES,
    PAYMENTS,
    filter_rows,
    page_window,
    paginate,
    unique_values,
)

FEE_ROWS = [
    {"seat_title": "Room 1 - Bed A", "month_of": "January", "payment_status": "Paid"},
    {"seat_title": "Room 1 - Bed A", "month_of": "February", "payment_status": "Unpaid"},
    {"seat_title": "Room 4 - Bed C", "month_of": "February", "payment_status": "Paid"},
]
PAYMENT_ROWS = [
    {
        "seat_title": "Room 1 - Bed A",
        "month_of": "January",
        "fee_payment_status": "Approved",
        "payment_method": "Easypaisa",
        "payment_type": "Monthly",
    },
    {
        "seat_title": "Room 1 - Bed A",
        "month_of": "February",
        "fee_payment_status": "Pending",
        "payment_method": "Bank transfer",
        "payment_type": "Monthly",
    },
]


def test_search_matches_any_search_field_case_insensitively():
    assert len(filter_rows(FEE_ROWS, FEES, search="bed a")) == 2
    assert len(filter_rows(FEE_ROWS, FEES, search="  UNPAID ")) == 1
    assert filter_rows(PAYMENT_ROWS, PAYMENTS, search="easypaisa") == PAYMENT_ROWS[:1]
    # Payment method is not a fee search field.
    assert filter_rows(FEE_ROWS, FEES, search="easypaisa") == []


def test_status_and_month_filters_are_exact():
    paid = filter_rows(FEE_ROWS, FEES, status="Paid")
    assert [row["month_of"] for row in paid] == ["January", "February"]
    assert filter_rows(FEE_ROWS, FEES, status="paid") == []
    assert filter_rows(FEE_ROWS, FEES, status="Paid", month="February") == FEE_ROWS[2:]
    assert filter_rows(PAYMENT_ROWS, PAYMENTS, status="Pending") == PAYMENT_ROWS[1:]
    assert filter_rows(FEE_ROWS, FEES, status=ALL, month=ALL) == FEE_ROWS


def test_unique_values_skip_missing_fields():
    rows = FEE_ROWS + [{"seat_title": "Room 9"}]
    assert unique_values(rows, "payment_status") == ["Paid", "Unpaid"]
    assert unique_values(rows, "month_of") == ["February", "January"]


def test_paginate_reports_showing_bounds():
    rows = [{"n": n} for n in range(23)]

    page = paginate(rows, page=3, page_size=10)

    assert [row["n"] for row in page.rows] == [20, 21, 22]
    assert (page.total, page.total_pages, page.start, page.end) == (23, 3, 21, 23)


def test_paginate_clamps_out_of_range_pages():
    rows = [{"n": n} for n in range(5)]

    assert paginate(rows, page=9, page_size=2).page == 3
    assert paginate(rows, page=0, page_size=2).page == 1


def test_paginate_empty_rows():
    page = paginate([], page=2)

    assert page.rows == []
    assert (page.page, page.total_pages, page.start, page.end) == (1, 0, 0, 0)


def test_paginate_rejects_bad_page_size():
    with pytest.raises(ValueError):
        paginate([], page_size=0)


@pytest.mark.parametrize(
    "current,total,expected",
    [
        (1, 3, [1, 2, 3]),
        (1, 10, [1, 2, 3, 4, 5]),
        (6, 10, [4, 5, 6, 7, 8]),
        (10, 10, [6, 7, 8, 9, 10]),
        (1, 0, []),
    ],
)
def test_page_window(current, total, expected):
    assert page_window(current, total) == expected
