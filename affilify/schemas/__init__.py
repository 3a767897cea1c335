from affilify.schemas.websites import (
    CreateWebsiteResponse,
    DeploymentStatus,
    ListWebsitesResponse,
    WebsiteSummary,
    WebsiteView,
)

__all__ = [
    "CreateWebsiteResponse",
    "DeploymentStatus",
    "ListWebsitesResponse",
    "WebsiteSummary",
    "WebsiteView",
]
