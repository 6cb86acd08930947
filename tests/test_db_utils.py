import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select

from bookstore.exceptions import NotFound, StorageError
from bookstore.models import Book
from bookstore.utils.db import ConcurrentUpdate, run_in_transaction


def _add_book(session, title):
    session.add(Book(title=title, author="Jane Austen", price=10, available_quantity=1, stock=1))
    session.flush()


def _titles(session):
    return [book.title for book in session.exec(select(Book)).all()]


def test_commits_work(session):
    result = run_in_transaction(session, lambda: _add_book(session, "Emma") or "done")

    assert result == "done"
    assert _titles(session) == ["Emma"]


def test_domain_error_rolls_back_and_propagates(session):
    def work():
        _add_book(session, "Emma")
        raise NotFound("Book not found")

    with pytest.raises(NotFound):
        run_in_transaction(session, work)

    assert _titles(session) == []


def test_unexpected_error_rolls_back_and_propagates(session):
    def work():
        _add_book(session, "Emma")
        raise KeyError("status")

    with pytest.raises(KeyError):
        run_in_transaction(session, work)

    assert not session.in_transaction()
    assert _titles(session) == []


def test_lost_compare_and_set_is_retried(session):
    calls = []

    def work():
        calls.append(1)
        _add_book(session, f"Emma {len(calls)}")
        if len(calls) < 3:
            raise ConcurrentUpdate("line changed")

    run_in_transaction(session, work, attempts=3)

    assert len(calls) == 3
    assert _titles(session) == ["Emma 3"]


def test_gives_up_after_attempts(session, monkeypatch):
    monkeypatch.setattr("bookstore.utils.db.time.sleep", lambda seconds: None)

    def work():
        raise OperationalError("UPDATE book", {}, Exception("database is locked"))

    with pytest.raises(StorageError, match="after 2 attempts"):
        run_in_transaction(session, work, label="reserve", attempts=2)
