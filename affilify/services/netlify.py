from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Optional

import httpx

from affilify.services.types import DeploymentResult


logger = logging.getLogger(__name__)


class NetlifyApiError(RuntimeError):
    def __init__(self, *, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_site_archive(document: str) -> bytes:
    """Zip the page as ``index.html``, the shape Netlify's zip deploy endpoint expects."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr("index.html", document)
    return buffer.getvalue()


class NetlifyPublisher:
    """
    Provision a Netlify site and push a single-page deploy to it.

    ``publish`` returns None instead of raising: when no access token is configured (no network
    call is made), or when either the site creation or the deploy call fails. A site created
    before a failed deploy is left in place.
    """

    def __init__(
        self,
        *,
        access_token: Optional[str],
        api_base_url: str = "https://api.netlify.com/api/v1",
        timeout_seconds: float = 60.0,
    ) -> None:
        self._access_token = access_token
        self._api_base_url = api_base_url.rstrip("/")
        self._timeout = timeout_seconds

    async def publish(self, document: str, name: str) -> Optional[DeploymentResult]:
        if not self._access_token:
            logger.info("Netlify token not configured; skipping deployment", extra={"site_name": name})
            return None
        try:
            return await self._deploy(document, name)
        except (NetlifyApiError, httpx.HTTPError) as exc:
            logger.warning("Netlify deployment failed", extra={"site_name": name, "error": str(exc)})
            return None
        except Exception:  # noqa: BLE001
            logger.exception("Unexpected Netlify deployment failure", extra={"site_name": name})
            return None

    async def _deploy(self, document: str, name: str) -> DeploymentResult:
        site = await self._post_json(
            url=f"{self._api_base_url}/sites",
            payload={"name": name, "custom_domain": None},
        )
        site_id = site.get("id")
        if not isinstance(site_id, str) or not site_id:
            raise NetlifyApiError(message="Netlify site creation response is missing id")

        deploy = await self._post_zip(
            url=f"{self._api_base_url}/sites/{site_id}/deploys",
            archive=build_site_archive(document),
        )
        deploy_id = deploy.get("id")
        if not isinstance(deploy_id, str) or not deploy_id:
            raise NetlifyApiError(message="Netlify deploy response is missing id")

        live_url = site.get("ssl_url") or site.get("url")
        if not isinstance(live_url, str) or not live_url:
            raise NetlifyApiError(message="Netlify site creation response is missing url")

        admin_url = site.get("admin_url")
        logger.info(
            "Deployed website to Netlify",
            extra={"site_name": name, "site_id": site_id, "deploy_id": deploy_id, "live_url": live_url},
        )
        return DeploymentResult(
            live_url=live_url,
            deploy_id=deploy_id,
            host_id=site_id,
            admin_url=admin_url if isinstance(admin_url, str) and admin_url else None,
        )

    def _headers(self, content_type: str) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": content_type,
        }

    async def _post_json(self, *, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, json=payload, headers=self._headers("application/json"))
        return self._parse_response(response)

    async def _post_zip(self, *, url: str, archive: bytes) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.post(url, content=archive, headers=self._headers("application/zip"))
        return self._parse_response(response)

    @staticmethod
    def _parse_response(response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise NetlifyApiError(
                message=f"Netlify API call failed ({response.status_code}): {response.text[:500]}",
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NetlifyApiError(message="Netlify API returned invalid JSON") from exc
        if not isinstance(body, dict):
            raise NetlifyApiError(message="Netlify API response must be a JSON object")
        return body
