from __future__ import annotations

import pytest
from ledger_db.client import get_engine, session_scope
from ledger_db.models.ledger import Transaction
from sqlalchemy import event, select
from sqlalchemy.exc import IntegrityError

import statement_ingest.persistence as persistence
from statement_ingest.models import (
    CategorizationResult,
    ColumnMapping,
    ParsedRow,
    ParsedValue,
    SourceConfig,
)
from statement_ingest.persistence import (
    find_existing_transactions,
    find_imported_file,
    get_source_id,
    insert_transactions,
    load_active_keywords,
    load_source_config,
    record_imported_file,
    save_source_config,
)

from tests.helpers.db import fetch_transactions, seed_keyword_tree

CONFIG = SourceConfig(
    name="Crédit Agricole",
    delimiter=";",
    skip_lines=2,
    column_mapping=ColumnMapping(date=0, description=1, debit_amount=2, credit_amount=3),
    amount_mode="debit_credit",
)


def _rows(*values: tuple[str, str, float]) -> list[ParsedRow]:
    return [
        ParsedRow(i, (d, desc, str(a)), parsed_value=ParsedValue(d, desc, a))
        for i, (d, desc, a) in enumerate(values)
    ]


def test_source_config_save_load_and_update(db_url):
    with session_scope(database_url=db_url) as s:
        source_id = save_source_config(s, CONFIG)

    with session_scope(database_url=db_url) as s:
        assert load_source_config(s, CONFIG.name) == CONFIG
        assert get_source_id(s, CONFIG.name) == source_id
        assert load_source_config(s, "unknown") is None
        assert get_source_id(s, "unknown") is None

    changed = CONFIG.with_updates(skip_lines=0, has_header=False)
    with session_scope(database_url=db_url) as s:
        assert save_source_config(s, changed) == source_id
    with session_scope(database_url=db_url) as s:
        assert load_source_config(s, CONFIG.name) == changed


def test_unnamed_config_cannot_be_saved(db_url):
    with session_scope(database_url=db_url) as s, pytest.raises(ValueError):
        save_source_config(s, CONFIG.with_updates(name="  "))


def test_insert_and_find_existing_transactions_in_one_query(db_url):
    rows = _rows(
        ("2024-01-02", "CB MONOPRIX", -12.35),
        ("2024-01-03", "VIR SALAIRE", 2100.0),
        ("2024-01-03", "CB MONOPRIX", -3.0),
    )
    with session_scope(database_url=db_url) as s:
        source_id = save_source_config(s, CONFIG)
        inserted = insert_transactions(
            s,
            rows=rows,
            categories=[CategorizationResult()] * len(rows),
            source_id=source_id,
            file_id=None,
            delimiter=";",
        )
    assert inserted == 3

    statements: list[str] = []

    def _count(conn, cursor, statement, parameters, context, executemany):
        if "FROM transactions" in statement:
            statements.append(statement)

    engine = get_engine(database_url=db_url)
    event.listen(engine, "before_cursor_execute", _count)
    try:
        with session_scope(database_url=db_url) as s:
            found = find_existing_transactions(
                s,
                [
                    ("2024-01-02", "CB MONOPRIX", -12.35),
                    ("2024-01-03", "CB MONOPRIX", -12.35),  # same strings, wrong pairing
                    ("2024-01-03", "VIR SALAIRE", 2100.0),
                    ("2024-01-04", "NEW", 1.0),
                ],
            )
    finally:
        event.remove(engine, "before_cursor_execute", _count)

    assert len(statements) == 1
    ids = {t.description + t.date: t.id for t in fetch_transactions(database_url=db_url)}
    assert found == {
        ("2024-01-02", "CB MONOPRIX", -12.35): ids["CB MONOPRIX2024-01-02"],
        ("2024-01-03", "VIR SALAIRE", 2100.0): ids["VIR SALAIRE2024-01-03"],
    }

    with session_scope(database_url=db_url) as s:
        assert find_existing_transactions(s, []) == {}


def test_insert_keeps_original_line_and_categories(db_url):
    ids = seed_keyword_tree(
        database_url=db_url,
        data=[{"name": "Maison", "children": [{"name": "Énergie", "keywords": []}]}],
    )
    rows = [
        ParsedRow(
            0,
            ("02/01/2024", "PRLV EDF", "54,20", ""),
            parsed_value=ParsedValue("2024-01-02", "PRLV EDF", -54.2),
        )
    ]
    with session_scope(database_url=db_url) as s:
        insert_transactions(
            s,
            rows=rows,
            categories=[CategorizationResult(ids["Énergie"], None)],
            source_id=None,
            file_id=None,
            delimiter=";",
        )

    (tx,) = fetch_transactions(database_url=db_url)
    assert tx.original_description == "02/01/2024;PRLV EDF;54,20;"
    assert tx.category_id == ids["Énergie"]
    assert tx.amount == -54.2


def test_insert_rejects_misaligned_or_failed_rows(db_url):
    rows = _rows(("2024-01-02", "X", 1.0))
    with session_scope(database_url=db_url) as s:
        with pytest.raises(ValueError):
            insert_transactions(
                s, rows=rows, categories=[], source_id=None, file_id=None, delimiter=";"
            )
        with pytest.raises(ValueError):
            insert_transactions(
                s,
                rows=[ParsedRow(0, ("x",), error_message="Invalid date")],
                categories=[CategorizationResult()],
                source_id=None,
                file_id=None,
                delimiter=";",
            )


def test_active_keywords_are_ordered_by_priority_then_id(db_url):
    seed_keyword_tree(
        database_url=db_url,
        data=[
            {
                "name": "Transport",
                "children": [
                    {
                        "name": "Taxi",
                        "keywords": [
                            {"keyword": "uber", "supplier": "Uber", "priority": 5},
                            {"keyword": "taxi", "priority": 5},
                            {"keyword": "g7", "priority": 1, "is_active": False},
                            {"keyword": "uber eats", "supplier": "Uber Eats", "priority": 20},
                        ],
                    }
                ],
            }
        ],
    )
    with session_scope(database_url=db_url) as s:
        keywords = load_active_keywords(s)

    assert [k.text for k in keywords] == ["uber eats", "uber", "taxi"]
    assert all(k.is_active for k in keywords)
    assert keywords[0].supplier_id is not None
    assert keywords[2].supplier_id is None


def test_imported_files_upsert_on_source_and_hash(db_url):
    digest = "a" * 64
    with session_scope(database_url=db_url) as s:
        source_id = save_source_config(s, CONFIG)
        first = record_imported_file(
            s, source_id=source_id, filename="jan.csv", file_hash=digest, row_count=10
        )
    with session_scope(database_url=db_url) as s:
        again = record_imported_file(
            s, source_id=source_id, filename="jan-copy.csv", file_hash=digest, row_count=0
        )
        assert again == first
        assert find_imported_file(s, file_hash=digest) == first
        assert find_imported_file(s, file_hash=digest, source_id=source_id + 1) is None
        assert find_imported_file(s, file_hash="b" * 64) is None


def test_store_errors_propagate_and_roll_back(db_url):
    with pytest.raises(IntegrityError):
        with session_scope(database_url=db_url) as s:
            source_id = save_source_config(s, CONFIG)
            record_imported_file(
                s,
                source_id=source_id,
                filename="x.csv",
                file_hash="c" * 64,
                row_count=1,
                status="bogus",
            )

    with session_scope(database_url=db_url) as s:
        assert get_source_id(s, CONFIG.name) is None
        assert s.scalars(select(Transaction)).first() is None


def _store(db_url: str, values: list[tuple[str, str, float]]) -> None:
    rows = _rows(*values)
    with session_scope(database_url=db_url) as s:
        insert_transactions(
            s,
            rows=rows,
            categories=[CategorizationResult()] * len(rows),
            source_id=None,
            file_id=None,
            delimiter=";",
        )


def test_lookup_is_chunked_on_descriptions(db_url, monkeypatch: pytest.MonkeyPatch):
    stored = [("2024-02-01", f"CB MAGASIN {i}", -float(i)) for i in range(5)]
    _store(db_url, stored)
    monkeypatch.setattr(persistence, "_LOOKUP_CHUNK", 2)

    statements: list[str] = []

    def _count(conn, cursor, statement, parameters, context, executemany):
        if "FROM transactions" in statement:
            statements.append(statement)

    engine = get_engine(database_url=db_url)
    event.listen(engine, "before_cursor_execute", _count)
    try:
        with session_scope(database_url=db_url) as s:
            found = find_existing_transactions(s, [*stored, ("2024-02-01", "CB MAGASIN 0", 9.0)])
    finally:
        event.remove(engine, "before_cursor_execute", _count)

    assert len(statements) == 3
    assert sorted(found) == sorted(stored)


def test_lookup_handles_batches_beyond_the_variable_limit(db_url):
    stored = [(f"2024-{1 + i % 12:02d}-01", f"PRLV ABONNEMENT {i:04d}", -9.99) for i in range(1200)]
    _store(db_url, stored)

    with session_scope(database_url=db_url) as s:
        found = find_existing_transactions(s, stored)

    assert len(found) == 1200
    assert len(set(found.values())) == 1200
