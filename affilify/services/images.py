from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from affilify.services.types import ImageAsset


logger = logging.getLogger(__name__)

PLACEHOLDER_IMAGE_URL = (
    "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=800&h=600&fit=crop&crop=center"
)
PLACEHOLDER_THUMB_URL = (
    "https://images.unsplash.com/photo-1560472354-b33ff0c44a43?w=400&h=300&fit=crop&crop=center"
)
PLACEHOLDER_ATTRIBUTION = "Professional stock photo"


class ImageSearchError(RuntimeError):
    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def placeholder_image(query: str) -> ImageAsset:
    return ImageAsset(
        url=PLACEHOLDER_IMAGE_URL,
        thumbnail=PLACEHOLDER_THUMB_URL,
        alt_text=query,
        attribution_text=PLACEHOLDER_ATTRIBUTION,
        download_ref=None,
    )


def _unsplash_headers(access_key: str) -> dict[str, str]:
    return {"Authorization": f"Client-ID {access_key}", "Accept-Version": "v1"}


def _photo_to_asset(photo: Any, query: str) -> ImageAsset:
    if not isinstance(photo, dict):
        raise ImageSearchError("Unsplash result is not an object")
    urls = photo.get("urls") if isinstance(photo.get("urls"), dict) else {}
    url = urls.get("regular")
    if not isinstance(url, str) or not url:
        raise ImageSearchError("Unsplash result is missing urls.regular")
    thumb = urls.get("thumb")
    user = photo.get("user") if isinstance(photo.get("user"), dict) else {}
    links = photo.get("links") if isinstance(photo.get("links"), dict) else {}
    user_name = user.get("name") or user.get("username") or "Unknown"
    download_ref = links.get("download_location")
    return ImageAsset(
        url=url,
        thumbnail=thumb if isinstance(thumb, str) and thumb else url,
        alt_text=photo.get("alt_description") or query,
        attribution_text=f"Photo by {user_name} on Unsplash",
        download_ref=download_ref if isinstance(download_ref, str) and download_ref else None,
    )


class ImageSourcer:
    """Resolves a text query to stock imagery; degrades to placeholders on any failure."""

    def __init__(
        self,
        *,
        access_key: Optional[str],
        api_base_url: str = "https://api.unsplash.com",
        timeout_seconds: float = 15.0,
    ) -> None:
        self._access_key = access_key
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout_seconds

    async def fetch_images(self, query: str, count: int) -> list[ImageAsset]:
        if count <= 0:
            return []
        if not self._access_key:
            logger.warning("Unsplash access key not configured; using placeholder images", extra={"query": query})
            return [placeholder_image(query) for _ in range(count)]

        try:
            images = await self._search(query, count)
        except (ImageSearchError, httpx.HTTPError) as exc:
            logger.warning(
                "Unsplash search failed; using placeholder images",
                extra={"query": query, "error": str(exc)},
            )
            return [placeholder_image(query) for _ in range(count)]
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected Unsplash failure; using placeholder images", extra={"query": query})
            return [placeholder_image(query) for _ in range(count)]

        images = images[:count]
        if len(images) < count:
            logger.info(
                "Unsplash returned fewer images than requested; padding with placeholders",
                extra={"query": query, "requested": count, "returned": len(images)},
            )
            images.extend(placeholder_image(query) for _ in range(count - len(images)))
        return images

    async def _search(self, query: str, count: int) -> list[ImageAsset]:
        data = await self._get_json(
            url=f"{self._api_base_url}/search/photos",
            params={
                "query": query,
                "per_page": count,
                "orientation": "landscape",
                "order_by": "relevant",
            },
        )
        results = data.get("results")
        if not isinstance(results, list):
            raise ImageSearchError("Unsplash search response is missing results")
        return [_photo_to_asset(photo, query) for photo in results]

    async def _get_json(self, *, url: str, params: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(url, params=params, headers=_unsplash_headers(self._access_key or ""))

        if response.status_code >= 400:
            raise ImageSearchError(
                f"Unsplash API call failed ({response.status_code})",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ImageSearchError("Unsplash API returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise ImageSearchError("Unsplash API response must be a JSON object")
        return body
