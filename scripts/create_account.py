from __future__ import annotations

import argparse
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from jose import jwt
from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from affilify.config import settings  # noqa: E402
from affilify.db.base import SessionLocal, init_db  # noqa: E402
from affilify.db.enums import AccountPlanEnum  # noqa: E402
from affilify.db.models import Account  # noqa: E402


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create (or update) an account and print a bearer token for it.")
    parser.add_argument("email", help="Account email; an existing account with this email is reused.")
    parser.add_argument("--name", default=None)
    parser.add_argument(
        "--plan",
        choices=[plan.value for plan in AccountPlanEnum],
        default=AccountPlanEnum.basic.value,
    )
    parser.add_argument("--reset-usage", action="store_true", help="Set websites_created back to 0.")
    parser.add_argument("--token-hours", type=int, default=24)
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    init_db()
    session = SessionLocal()
    try:
        account = session.scalars(select(Account).where(Account.email == args.email)).first()
        if account is None:
            account = Account(email=args.email, name=args.name, plan=args.plan)
            session.add(account)
        else:
            account.plan = args.plan
            if args.name:
                account.name = args.name
        if args.reset_usage:
            account.websites_created = 0
        session.commit()
        session.refresh(account)

        expires_at = datetime.now(timezone.utc) + timedelta(hours=args.token_hours)
        token = jwt.encode(
            {"userId": account.id, "email": account.email, "exp": expires_at},
            settings.JWT_SECRET,
            algorithm=settings.JWT_ALGORITHM,
        )
        print(f"account_id={account.id} plan={account.plan} websites_created={account.websites_created}")
        print(f"token={token}")
    finally:
        session.close()


if __name__ == "__main__":
    main()
