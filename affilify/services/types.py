from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


TITLE_MAX_CHARS = 100
DESCRIPTION_MAX_CHARS = 200
PRICE_MAX_CHARS = 20


@dataclass(frozen=True)
class ProductSummary:
    title: str
    description: str
    price: str
    original_url: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "price": self.price,
            "originalUrl": self.original_url,
        }


@dataclass(frozen=True)
class ImageAsset:
    url: str
    thumbnail: str
    alt_text: str
    attribution_text: str
    download_ref: Optional[str] = None


@dataclass(frozen=True)
class DeploymentResult:
    live_url: str
    deploy_id: str
    host_id: str
    admin_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.live_url,
            "deployId": self.deploy_id,
            "siteId": self.host_id,
            "adminUrl": self.admin_url,
        }
