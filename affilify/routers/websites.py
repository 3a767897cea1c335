from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from affilify.auth.dependencies import resolve_account
from affilify.config import settings
from affilify.db.deps import get_session
from affilify.db.models import Account, Website
from affilify.db.repositories.websites import WebsitesRepository
from affilify.schemas.websites import (
    CreateWebsiteResponse,
    DeploymentStatus,
    ListWebsitesResponse,
    WebsiteSummary,
    WebsiteView,
)
from affilify.services.quota import website_limit_for_plan
from affilify.services.website_pipeline import (
    UnauthorizedError,
    WebsiteCreationResult,
    WebsitePipeline,
    internal_preview_url,
    internal_site_url,
)


router = APIRouter(tags=["websites"])


def get_website_pipeline(session: Session = Depends(get_session)) -> WebsitePipeline:
    return WebsitePipeline.from_settings(session)


async def _read_product_url(request: Request) -> Any:
    # A missing or malformed body is reported as a missing productUrl, not a validation error.
    try:
        payload = await request.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("productUrl")


def _serialize_creation(result: WebsiteCreationResult) -> CreateWebsiteResponse:
    website = result.website
    deployment = result.deployment
    if deployment is not None:
        message = "Professional affiliate website created and deployed successfully!"
        deployment_status = DeploymentStatus(status="deployed", platform="netlify")
    else:
        message = "Professional affiliate website created successfully!"
        deployment_status = DeploymentStatus(status="local", platform="affilify")
    return CreateWebsiteResponse(
        website=WebsiteView(
            id=website.id,
            slug=website.slug,
            title=website.title,
            description=website.description,
            url=result.live_url,
            previewUrl=result.preview_url,
            netlifyUrl=deployment.live_url if deployment else None,
            adminUrl=deployment.admin_url if deployment else None,
        ),
        message=message,
        remainingWebsites=result.remaining_websites,
        deployment=deployment_status,
    )


def _serialize_summary(website: Website) -> WebsiteSummary:
    deployment = website.deployment or {}
    base_url = settings.public_base_url
    return WebsiteSummary(
        id=website.id,
        slug=website.slug,
        title=website.title,
        description=website.description,
        productUrl=website.product_url,
        url=deployment.get("url") or internal_site_url(base_url, website.slug),
        previewUrl=internal_preview_url(base_url, website.slug),
        views=website.views,
        clicks=website.clicks,
        isActive=website.is_active,
        createdAt=website.created_at,
    )


@router.post("/websites", response_model=CreateWebsiteResponse)
async def create_website(
    request: Request,
    account: Optional[Account] = Depends(resolve_account),
    pipeline: WebsitePipeline = Depends(get_website_pipeline),
) -> CreateWebsiteResponse:
    product_url = await _read_product_url(request)
    result = await pipeline.run(account=account, product_url=product_url)
    return _serialize_creation(result)


@router.get("/websites", response_model=ListWebsitesResponse)
def list_websites(
    account: Optional[Account] = Depends(resolve_account),
    session: Session = Depends(get_session),
) -> ListWebsitesResponse:
    if account is None:
        raise UnauthorizedError("Please sign in to view your websites.")
    websites = WebsitesRepository(session).list_for_account(account.id)
    return ListWebsitesResponse(
        websites=[_serialize_summary(website) for website in websites],
        websitesCreated=account.websites_created,
        websiteLimit=website_limit_for_plan(account.plan),
    )


def _get_active_website_or_404(*, session: Session, slug: str) -> Website:
    website = WebsitesRepository(session).get_by_slug(slug)
    if website is None or not website.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Website not found")
    return website


@router.get("/websites/{slug}", response_class=HTMLResponse)
def serve_website(slug: str, session: Session = Depends(get_session)) -> HTMLResponse:
    website = _get_active_website_or_404(session=session, slug=slug)
    return HTMLResponse(content=website.html)


@router.get("/preview/{slug}", response_class=HTMLResponse)
def preview_website(slug: str, session: Session = Depends(get_session)) -> HTMLResponse:
    website = _get_active_website_or_404(session=session, slug=slug)
    return HTMLResponse(content=website.html, headers={"X-Robots-Tag": "noindex"})
