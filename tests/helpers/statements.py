"""Synthetic statement builders for tests.

Each builder returns the file text together with the values the parser is
expected to produce, computed from the same integer-cent amounts so float
comparisons are exact.
"""

from __future__ import annotations

from typing import NamedTuple

_MERCHANTS = (
    "CARREFOUR CITY PARIS",
    "SNCF INTERNET",
    "BOULANGERIE DU MARCHÉ",
    "PHARMACIE CENTRALE",
    "NETFLIX.COM",
    "CAFÉ DE LA GARE",
    "TOTAL ENERGIES ST OUEN",
)


class Statement(NamedTuple):
    text: str
    # (YYYY-MM-DD, description, signed amount) per data row, in file order
    expected: list[tuple[str, str, float]]


def fr_amount(cents: int) -> str:
    """``123456`` → ``"1 234,56"`` (space thousands, comma decimal)."""

    sign = "-" if cents < 0 else ""
    units, rest = divmod(abs(cents), 100)
    return f"{sign}{units:,}".replace(",", " ") + f",{rest:02d}"


def en_amount(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    units, rest = divmod(abs(cents), 100)
    return f"{sign}{units}.{rest:02d}"


def _date(i: int) -> tuple[int, int]:
    # (day, month): 28 days per month keeps every date valid
    return 1 + i % 28, 1 + i // 28


def debit_credit_statement(
    n: int = 50, *, start_balance_cents: int = 500_000, header: bool = True
) -> Statement:
    """``Date;Description;Débit;Crédit;Solde`` with one side empty per row.

    Every fifth row is a credit; descriptions are unique so no two rows share
    a ``(date, description, amount)`` triple.
    """

    lines = ["Date;Description;Débit;Crédit;Solde"] if header else []
    expected: list[tuple[str, str, float]] = []
    balance = start_balance_cents
    for i in range(n):
        day, month = _date(i)
        desc = f"CB {_MERCHANTS[i % len(_MERCHANTS)]} {i:03d}"
        if i % 5 == 4:
            cents = 120_000 + i * 100
            balance += cents
            debit, credit = "", fr_amount(cents)
            signed = cents
        else:
            cents = 1_000 + (i * 737) % 9_000
            balance -= cents
            debit, credit = fr_amount(cents), ""
            signed = -cents
        lines.append(f"{day:02d}/{month:02d}/2024;{desc};{debit};{credit};{fr_amount(balance)}")
        expected.append((f"2024-{month:02d}-{day:02d}", desc, signed / 100))
    return Statement("\n".join(lines) + "\n", expected)


def single_amount_statement(
    n: int = 20, *, expenses_positive: bool = False, delimiter: str = ","
) -> Statement:
    """``Date,Description,Amount,Balance`` with ISO dates and one signed amount column.

    Roughly four rows in five are expenses. With ``expenses_positive`` the
    file stores expenses as positive numbers; ``expected`` always uses the
    negative-expense convention.
    """

    lines = [delimiter.join(("Date", "Description", "Amount", "Balance"))]
    expected: list[tuple[str, str, float]] = []
    balance = 250_000
    for i in range(n):
        day, month = _date(i)
        desc = f"POS {_MERCHANTS[i % len(_MERCHANTS)]} #{i}"
        signed = 50_000 + i if i % 5 == 4 else -(500 + (i * 311) % 4_000)
        balance += signed
        stored = -signed if expenses_positive else signed
        lines.append(
            delimiter.join(
                (f"2024-{month:02d}-{day:02d}", desc, en_amount(stored), en_amount(balance))
            )
        )
        expected.append((f"2024-{month:02d}-{day:02d}", desc, signed / 100))
    return Statement("\n".join(lines) + "\n", expected)


def quote_all_fields(text: str, delimiter: str = ",") -> str:
    """Quote every cell of every line (cells must not contain the delimiter)."""

    out = []
    for line in text.splitlines():
        cells = line.split(delimiter)
        out.append(delimiter.join('"' + c.replace('"', '""') + '"' for c in cells))
    return "\n".join(out)


def wrap_quoted_lines(text: str) -> str:
    """Wrap each line in one outer quote pair with inner quotes doubled."""

    return "\n".join('"' + ln.replace('"', '""') + '"' for ln in text.splitlines())


__all__ = [
    "Statement",
    "fr_amount",
    "en_amount",
    "debit_credit_statement",
    "single_amount_statement",
    "quote_all_fields",
    "wrap_quoted_lines",
]
