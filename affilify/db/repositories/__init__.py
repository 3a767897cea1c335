from affilify.db.repositories.accounts import AccountsRepository
from affilify.db.repositories.websites import WebsitesRepository

__all__ = [
    "AccountsRepository",
    "WebsitesRepository",
]
