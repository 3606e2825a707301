import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("APP_ENV", "testing")

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.session_store import SessionStore  # noqa: E402
from models.user import UserRole  # noqa: E402
from models.user_store import UserStore  # noqa: E402
from utils.security import hash_password  # noqa: E402

from helpers import PASSWORD  # noqa: E402


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", overrides={"DATABASE_URL": f"sqlite:///{tmp_path / 'auth.db'}"})
    yield app
    storage.close()


@pytest.fixture
def client(app):
    # cookies are passed explicitly so each test controls which credential is replayed
    return app.test_client(use_cookies=False)


@pytest.fixture
def signer(app):
    return app.extensions["signer"]


@pytest.fixture
def session_store(app):
    with app.app_context():
        yield SessionStore(storage)


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(PASSWORD)


@pytest.fixture
def make_user(app, password_hash):
    def _make(email, role=UserRole.RIDER, is_active=True):
        with app.app_context():
            user = UserStore(storage).create(email, password_hash, role=role, is_active=is_active)
            return user.id

    return _make


@pytest.fixture
def users(make_user):
    return {
        "rider": make_user("a@b.com"),
        "driver": make_user("driver@luxsuv.test", role=UserRole.DRIVER),
        "admin": make_user("admin@luxsuv.test", role=UserRole.ADMIN),
        "inactive": make_user("inactive@luxsuv.test", is_active=False),
    }

