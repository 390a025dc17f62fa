import os
import tempfile
from pathlib import Path

# Must be set before edutube is imported: settings and the engine read them at import time.
_DB_DIR = tempfile.mkdtemp(prefix="edutube-tests-")
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"

import pytest  # noqa: E402

from edutube.db.session import init_db  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _create_tables():
    init_db()
    yield
