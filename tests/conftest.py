import pytest

from api import create_app
from database import Database
from history_store import create_executor


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "calcusolve-test.db"))


@pytest.fixture
def executor():
    pool = create_executor()
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def app(db, executor):
    app = create_app(db, executor)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def flush(executor):
    """Wait for every write queued so far on the history executor"""
    def _flush():
        executor.submit(lambda: None).result(timeout=5)
    return _flush
