from typing import Optional

from sqlalchemy import select

from affilify.db.models import Website
from affilify.db.repositories.base import Repository


class WebsitesRepository(Repository):
    def add(self, website: Website) -> Website:
        self.session.add(website)
        self.session.flush()
        return website

    def get(self, website_id: str) -> Optional[Website]:
        return self.session.get(Website, website_id)

    def get_by_slug(self, slug: str) -> Optional[Website]:
        stmt = select(Website).where(Website.slug == slug)
        return self.session.scalars(stmt).first()

    def list_for_account(self, account_id: str) -> list[Website]:
        stmt = (
            select(Website)
            .where(Website.account_id == account_id)
            .order_by(Website.created_at.desc())
        )
        return list(self.session.scalars(stmt).all())
