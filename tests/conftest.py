import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("JWT_SECRET", "test_jwt_secret")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_affilify.db")
os.environ.setdefault("PUBLIC_APP_BASE_URL", "https://affilify.test")
# Optional integrations stay unconfigured so no test reaches the network by accident.
os.environ["UNSPLASH_ACCESS_KEY"] = ""
os.environ["NETLIFY_ACCESS_TOKEN"] = ""
os.environ["GEMINI_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""

from jose import jwt  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from affilify.config import settings  # noqa: E402
from affilify.db.base import SessionLocal, init_db  # noqa: E402
from affilify.db.models import Account, Website  # noqa: E402


@pytest.fixture()
def db_session():
    init_db()
    session = SessionLocal()
    session.execute(delete(Website))
    session.execute(delete(Account))
    session.commit()
    try:
        yield session
    finally:
        session.rollback()
        session.execute(delete(Website))
        session.execute(delete(Account))
        session.commit()
        session.close()


@pytest.fixture()
def make_account(db_session):
    def _make(*, plan: str = "basic", websites_created: int = 0, email: str = "owner@example.com") -> Account:
        account = Account(email=email, name="Test Owner", plan=plan, websites_created=websites_created)
        db_session.add(account)
        db_session.commit()
        db_session.refresh(account)
        return account

    return _make


@pytest.fixture()
def issue_token():
    def _issue(
        account_id: str,
        *,
        claim: str = "userId",
        expires_in: timedelta = timedelta(hours=1),
        secret: str | None = None,
    ) -> str:
        payload = {claim: account_id, "exp": datetime.now(timezone.utc) + expires_in}
        return jwt.encode(payload, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    return _issue
