from typing import Optional

from sqlalchemy import select, update

from affilify.db.models import Account, utcnow
from affilify.db.repositories.base import Repository


class AccountsRepository(Repository):
    def get(self, account_id: str) -> Optional[Account]:
        return self.session.get(Account, account_id)

    def current_usage(self, account_id: str) -> Optional[int]:
        stmt = select(Account.websites_created).where(Account.id == account_id)
        return self.session.scalars(stmt).first()

    def reserve_website_slot(self, account_id: str, ceiling: int) -> Optional[int]:
        """
        Atomically bump ``websites_created`` when it is still below ``ceiling``.

        Returns the new count, or None when the account is at (or over) its ceiling or does not
        exist. Does not commit; the caller owns the transaction so the increment and the website
        insert become visible together.
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.websites_created < ceiling)
            .values(websites_created=Account.websites_created + 1, updated_at=utcnow())
            .returning(Account.websites_created)
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).scalar_one_or_none()
