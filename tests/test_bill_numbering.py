# tests/test_bill_numbering.py
import sqlite3
from datetime import datetime, timezone

import pytest

from fish_ledger.database.repositories import BillNumbersRepo
from fish_ledger.errors import BillNumberingError
from fish_ledger.modules.billing.numbering import next_bill_number, parse_sequence

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)  # 1704067200000 ms


def test_first_number_under_prefix():
    assert next_bill_number("PB", [], NOW) == "PB-0001"
    # other prefixes don't count
    assert next_bill_number("PB", ["IB-0042"], NOW) == "PB-0001"


def test_next_number_is_max_plus_one():
    assert next_bill_number("IB", ["IB-0001", "IB-0007", "IB-0003"], NOW) == "IB-0008"
    assert next_bill_number("PB", ["PB-9999"], NOW) == "PB-10000"


def test_timestamp_suffixes_never_seed_the_sequence():
    assert parse_sequence("PB-1704067200000", "PB") is None
    assert next_bill_number("PB", ["PB-1704067200000", "PB-0003"], NOW) == "PB-0004"


def test_falls_back_to_timestamp_when_nothing_is_sequential():
    assert next_bill_number("PB", ["PB-ABC"], NOW) == "PB-1704067200000"
    assert next_bill_number("PB", ["PB-1704067200000"], NOW) == "PB-1704067200000"


def test_parse_sequence():
    assert parse_sequence("PB-0042", "PB") == 42
    assert parse_sequence("PB-", "PB") is None
    assert parse_sequence(None, "PB") is None
    assert parse_sequence("IB-0042", "PB") is None


def test_repo_reads_existing_numbers(conn):
    repo = BillNumbersRepo(conn)
    assert repo.next_number("sales_bills", "IB", NOW) == "IB-0001"
    with pytest.raises(ValueError):
        repo.next_number("customers", "IB", NOW)


def test_repo_retries_once_on_read_failure(conn, monkeypatch):
    repo = BillNumbersRepo(conn)
    calls = {"n": 0}

    def flaky(table, prefix):
        calls["n"] += 1
        if calls["n"] == 1:
            raise sqlite3.OperationalError("database is locked")
        return ["PB-0002"]

    monkeypatch.setattr(repo, "_existing_numbers", flaky)
    assert repo.next_number("purchase_bills", "PB", NOW) == "PB-0003"
    assert calls["n"] == 2


def test_repo_fails_closed_after_second_failure(conn, monkeypatch):
    repo = BillNumbersRepo(conn)

    def broken(table, prefix):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(repo, "_existing_numbers", broken)
    with pytest.raises(BillNumberingError) as exc:
        repo.next_number("purchase_bills", "PB", NOW)
    assert isinstance(exc.value.original, sqlite3.OperationalError)
