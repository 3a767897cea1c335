from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class WebsiteView(BaseModel):
    id: str
    slug: str
    title: str
    description: str
    url: str
    previewUrl: str
    netlifyUrl: Optional[str] = None
    adminUrl: Optional[str] = None


class DeploymentStatus(BaseModel):
    status: str
    platform: str


class CreateWebsiteResponse(BaseModel):
    success: bool = True
    website: WebsiteView
    message: str
    remainingWebsites: int
    deployment: DeploymentStatus


class WebsiteSummary(BaseModel):
    id: str
    slug: str
    title: str
    description: str
    productUrl: str
    url: str
    previewUrl: str
    views: int
    clicks: int
    isActive: bool
    createdAt: datetime


class ListWebsitesResponse(BaseModel):
    websites: List[WebsiteSummary] = []
    websitesCreated: int
    websiteLimit: int
