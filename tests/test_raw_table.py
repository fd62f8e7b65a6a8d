from statement_ingest.raw_table import non_blank_lines, split_line, split_rows, unwrap_quoted_lines

from tests.helpers.statements import quote_all_fields, single_amount_statement, wrap_quoted_lines


def test_unwrap_is_noop_on_regular_text():
    text = single_amount_statement(5).text
    assert unwrap_quoted_lines(text) == text
    quoted = quote_all_fields(text)
    assert unwrap_quoted_lines(quoted) == quoted


def test_unwrap_inverts_wrapping():
    inner = quote_all_fields(single_amount_statement(5).text)
    wrapped = wrap_quoted_lines(inner)
    assert wrapped != inner
    assert unwrap_quoted_lines(wrapped) == inner
    # Idempotent once unwrapped.
    assert unwrap_quoted_lines(unwrap_quoted_lines(wrapped)) == inner


def test_unwrap_requires_every_line_to_be_wrapped():
    inner = quote_all_fields("a,b\nc,d")
    mixed = wrap_quoted_lines(inner).splitlines()[0] + "\n" + inner.splitlines()[1]
    assert unwrap_quoted_lines(mixed) == mixed


def test_unwrap_ignores_blank_lines():
    wrapped = wrap_quoted_lines(quote_all_fields("a,b\nc,d"))
    text = wrapped.replace("\n", "\n\n")
    assert unwrap_quoted_lines(text) == '"a","b"\n\n"c","d"'


def test_split_line_honors_quotes():
    assert split_line('2024-01-02,"ACME, INC",-3.00', ",") == ["2024-01-02", "ACME, INC", "-3.00"]
    assert split_line("a;b;;d", ";") == ["a", "b", "", "d"]


def test_split_rows_drops_empty_lines_and_bom():
    rows = split_rows("\ufeffDate;Montant\n\n01/02/2024;3,50\n", ";")
    assert rows == [("Date", "Montant"), ("01/02/2024", "3,50")]


def test_non_blank_lines():
    assert non_blank_lines("a\n  \nb\n") == ["a", "b"]
