"""Duplicate detection against the transaction store and within a batch.

Public surface:
- ``find_duplicates``: exact ``(date, description, amount)`` matches against
  stored transactions, resolved with a single lookup call per batch.
- ``find_batch_duplicates``: repeats of an earlier row within the same batch.
- ``compute_file_hash``: sha256 of a file's bytes, for the coarse
  "already imported this file" check.
- ``check_duplicates`` / ``DuplicateReport``: the combined view handed to the
  confirm step.

Matching is exact: string equality on date and description, numeric equality
on amount, no tolerance and no text normalization.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from .models import DuplicateMatch, Fingerprint, ParsedRow, ParsedValue

type FingerprintLookup = Callable[[Sequence[Fingerprint]], Mapping[Fingerprint, int]]
"""Store accessor: given fingerprints, return ``{fingerprint: record_id}`` for those that exist."""

type FileHashLookup = Callable[[str], int | None]
"""Store accessor: given a file hash, return the id of a previous import (or ``None``)."""


def find_duplicates(
    values: Sequence[ParsedValue], lookup: FingerprintLookup
) -> list[DuplicateMatch]:
    """Return values whose exact triple already exists in the store.

    ``row_index`` on each match is the position within ``values``. The store
    is queried once for the whole batch; errors from ``lookup`` propagate.
    """

    if not values:
        return []

    fingerprints = list(dict.fromkeys(v.fingerprint for v in values))
    existing = lookup(fingerprints)

    matches: list[DuplicateMatch] = []
    for pos, v in enumerate(values):
        record_id = existing.get(v.fingerprint)
        if record_id is None:
            continue
        matches.append(DuplicateMatch(pos, record_id, v.date, v.description, v.amount))
    return matches


def find_batch_duplicates(
    values: Sequence[ParsedValue], *, skip: Iterable[int] = ()
) -> list[DuplicateMatch]:
    """Return values repeating an earlier value's triple within ``values``.

    Positions in ``skip`` (already flagged against the store) are neither
    reported nor remembered. The first occurrence of a triple is never
    flagged.
    """

    skipped = set(skip)
    seen: set[Fingerprint] = set()
    matches: list[DuplicateMatch] = []
    for pos, v in enumerate(values):
        if pos in skipped:
            continue
        fp = v.fingerprint
        if fp in seen:
            matches.append(DuplicateMatch(pos, None, v.date, v.description, v.amount))
        else:
            seen.add(fp)
    return matches


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass(slots=True)
class DuplicateReport:
    """Outcome of the duplicate check for one import.

    ``candidates`` are the successfully parsed rows, in order; every
    ``DuplicateMatch.row_index`` in ``duplicate_rows`` indexes into it.
    """

    candidates: list[ParsedRow]
    duplicate_rows: list[DuplicateMatch] = field(default_factory=list)
    file_already_imported: bool = False
    existing_file_id: int | None = None

    @property
    def duplicate_positions(self) -> set[int]:
        return {d.row_index for d in self.duplicate_rows}

    @property
    def duplicate_row_indices(self) -> set[int]:
        """Duplicates as :attr:`ParsedRow.row_index` values rather than positions."""

        return {self.candidates[pos].row_index for pos in self.duplicate_positions}

    @property
    def new_rows(self) -> list[ParsedRow]:
        dupes = self.duplicate_positions
        return [r for pos, r in enumerate(self.candidates) if pos not in dupes]

    def rows_to_import(self, excluded: Iterable[int] | None = None) -> list[ParsedRow]:
        """Candidates minus ``excluded`` positions (default: every duplicate)."""

        skip = self.duplicate_positions if excluded is None else set(excluded)
        return [r for pos, r in enumerate(self.candidates) if pos not in skip]


def check_duplicates(
    rows: Iterable[ParsedRow],
    lookup: FingerprintLookup,
    *,
    file_hash: str | None = None,
    file_lookup: FileHashLookup | None = None,
) -> DuplicateReport:
    """Flag store duplicates, in-batch repeats, and an already-imported first file."""

    candidates = [r for r in rows if r.parsed_value is not None]
    values = [r.parsed_value for r in candidates if r.parsed_value is not None]

    stored = find_duplicates(values, lookup)
    in_batch = find_batch_duplicates(values, skip=(d.row_index for d in stored))
    duplicate_rows = sorted(stored + in_batch, key=lambda d: d.row_index)

    existing_file_id: int | None = None
    if file_hash is not None and file_lookup is not None:
        existing_file_id = file_lookup(file_hash)

    return DuplicateReport(
        candidates=candidates,
        duplicate_rows=duplicate_rows,
        file_already_imported=existing_file_id is not None,
        existing_file_id=existing_file_id,
    )


__all__ = [
    "FingerprintLookup",
    "FileHashLookup",
    "find_duplicates",
    "find_batch_duplicates",
    "compute_file_hash",
    "DuplicateReport",
    "check_duplicates",
]
