import pytest

from entitylab.adapters import ConnectionConfig, SQLiteAdapter
from entitylab.hooks import hooks
from entitylab.persistence import Session


@pytest.fixture(autouse=True)
def clear_hooks():
    hooks.clear()
    yield
    hooks.clear()


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'people.db'}"


@pytest.fixture
def make_session(db_url):
    sessions = []

    def factory(url=None, **config):
        session = Session(SQLiteAdapter(), connection_config=ConnectionConfig(url=url or db_url, **config))
        session.create_schema()
        sessions.append(session)
        return session

    yield factory
    for session in sessions:
        session.close()


@pytest.fixture
def session(make_session):
    return make_session()
