from statement_ingest.columns import (
    AmountLayout,
    detect_amount_layout,
    detect_balance_columns,
    detect_column_roles,
    detect_date_column,
    detect_description_column,
    detect_numeric_columns,
    detect_sign_convention,
    is_sparse_complementary,
)

from tests.helpers.statements import en_amount


def _debit_credit_balance_rows(n: int = 12) -> list[tuple[str, str, str]]:
    """Columns: debit, credit, running balance (bal[i] = bal[i-1] - debit + credit)."""

    rows = []
    balance = 100_000
    for i in range(n):
        if i % 3 == 2:
            credit = 25_000 + i * 100
            balance += credit
            rows.append(("", en_amount(credit), en_amount(balance)))
        else:
            debit = 1_000 + i * 37
            balance -= debit
            rows.append((en_amount(debit), "", en_amount(balance)))
    return rows


def test_running_balance_is_excluded_and_debit_credit_selected():
    rows = _debit_credit_balance_rows()

    numeric = detect_numeric_columns(rows, 3)
    assert numeric == [0, 1, 2]

    balance = detect_balance_columns(rows, numeric)
    assert balance == {2}

    candidates = [c for c in numeric if c not in balance]
    layout = detect_amount_layout(rows, candidates)
    assert layout == AmountLayout("debit_credit", debit_column=0, credit_column=1)


def test_balance_needs_enough_rows_and_columns():
    rows = _debit_credit_balance_rows(2)
    assert detect_balance_columns(rows, [0, 1, 2]) == set()
    assert detect_balance_columns(_debit_credit_balance_rows(), [2]) == set()


def test_single_column_balance_tracking():
    rows = [("-10.00", "90.00"), ("-5.50", "84.50"), ("20.00", "104.50"), ("-4.50", "100.00")]
    assert detect_balance_columns(rows, [0, 1]) == {1}


def test_date_column_ties_go_to_first_pair():
    # Every value is valid as both DD/MM and MM/DD: the earlier format wins.
    rows = [("01/02/2024", "x"), ("03/04/2024", "y"), ("05/06/2024", "z")]
    found = detect_date_column(rows, 2)
    assert found is not None
    assert (found.column, found.date_format) == (0, "DD/MM/YYYY")


def test_us_dates_detected_when_day_exceeds_twelve():
    rows = [("01/15/2024",), ("01/20/2024",), ("02/03/2024",), ("02/28/2024",), ("03/01/2024",)]
    found = detect_date_column(rows, 1)
    assert found is not None
    assert found.date_format == "MM/DD/YYYY"


def test_date_column_below_threshold_is_rejected():
    rows = [("01/02/2024",), ("hello",), ("world",), ("05/06/2024",)]
    assert detect_date_column(rows, 1) is None


def test_near_constant_numeric_columns_are_skipped():
    rows = [("815", "1.00"), ("815", "2.00"), ("815", "3.00")]
    assert detect_numeric_columns(rows, 2) == [1]
    # Two cells are not enough to call a column constant.
    assert detect_numeric_columns(rows[:2], 2) == [0, 1]


def test_sign_convention_counts_non_zero_values():
    neg = [("-1.00",), ("-2.00",), ("0.00",), ("0.00",), ("3.00",)]
    pos = [("1.00",), ("2.00",), ("-3.00",), ("0",)]
    assert detect_sign_convention(neg, 0) == "negative_expense"
    assert detect_sign_convention(pos, 0) == "positive_expense"


def test_sparse_complementary():
    assert is_sparse_complementary([("1", ""), ("", "2"), ("3", "0")], 0, 1)
    assert not is_sparse_complementary([("1", "2"), ("3", "4"), ("5", "")], 0, 1)
    assert not is_sparse_complementary([("", ""), ("0", "0")], 0, 1)


def test_amount_layout_falls_back_to_first_candidate():
    rows = [("1.00", "2.00"), ("-3.00", "4.00"), ("-5.00", "6.00")]
    layout = detect_amount_layout(rows, [0, 1])
    assert layout is not None
    assert (layout.mode, layout.amount_column, layout.sign_convention) == (
        "single",
        0,
        "negative_expense",
    )
    assert detect_amount_layout(rows, []) is None


def test_description_prefers_longest_text_and_defaults_to_zero():
    rows = [("a", "LONG MERCHANT NAME", "1.00"), ("b", "ANOTHER ONE", "2.00")]
    assert detect_description_column(rows, 3, {2}) == 1
    assert detect_description_column(rows, 3, {0, 1, 2}) == 0


def test_value_date_column_is_never_an_amount():
    rows = [
        ("15/01/2024", "20240116", "PRLV EDF", "-54.20"),
        ("16/01/2024", "20240117", "CB MONOPRIX", "-12.35"),
        ("17/01/2024", "20240118", "VIR SALAIRE", "2100.00"),
        ("18/01/2024", "20240119", "CB SNCF", "-75.00"),
    ]
    roles = detect_column_roles(rows, 4)
    assert roles is not None
    assert roles.date_column == 0
    assert roles.date_like_columns == frozenset({0, 1})
    assert roles.description_column == 2
    assert roles.amount_layout is not None
    assert roles.amount_layout.mode == "single"
    assert roles.amount_layout.amount_column == 3


def test_column_roles_require_a_date_column():
    rows = [("a", "1.00"), ("b", "2.00"), ("c", "3.00")]
    assert detect_column_roles(rows, 2) is None


def test_column_roles_without_numeric_columns_have_no_layout():
    rows = [("01/02/2024", "A"), ("02/02/2024", "B")]
    roles = detect_column_roles(rows, 2)
    assert roles is not None
    assert roles.amount_layout is None
