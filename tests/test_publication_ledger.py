import pytest

from feedpub.db import (
    CURSOR_KEY,
    KeyValue,
    PublicationLedger,
    check_database_connection,
    create_db_engine,
    init_database,
    make_session_factory,
    session_scope,
)
from feedpub.errors import CursorError


@pytest.fixture()
def session_factory():
    engine = create_db_engine("sqlite://")
    init_database(engine)
    yield make_session_factory(engine)
    engine.dispose()


def test_get_without_cursor(session_factory) -> None:
    with pytest.raises(CursorError):
        PublicationLedger(session_factory).get()


def test_put_then_get(session_factory) -> None:
    ledger = PublicationLedger(session_factory)
    ledger.put("dQw4w9WgXcQ")
    assert ledger.get() == "dQw4w9WgXcQ"


def test_put_overwrites_single_row(session_factory) -> None:
    ledger = PublicationLedger(session_factory)
    ledger.put("a")
    ledger.put("b")
    assert ledger.get() == "b"
    with session_scope(session_factory) as session:
        assert session.query(KeyValue).count() == 1
        assert session.get(KeyValue, CURSOR_KEY).value == "b"


def test_put_rejects_empty_id(session_factory) -> None:
    with pytest.raises(ValueError):
        PublicationLedger(session_factory).put("")


def test_get_without_table_is_a_cursor_error() -> None:
    engine = create_db_engine("sqlite://")
    with pytest.raises(CursorError):
        PublicationLedger(make_session_factory(engine)).get()


def test_file_database_persists_across_engines(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'state' / 'feedpub.db'}"
    engine = create_db_engine(url)
    init_database(engine)
    PublicationLedger(make_session_factory(engine)).put("x1")
    engine.dispose()

    reopened = create_db_engine(url)
    assert check_database_connection(reopened)
    assert PublicationLedger(make_session_factory(reopened)).get() == "x1"


def test_rejects_non_sqlite_url() -> None:
    with pytest.raises(ValueError):
        create_db_engine("postgresql://localhost/feedpub")
