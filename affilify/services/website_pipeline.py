from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from affilify.config import Settings, settings
from affilify.db.models import Account, Website
from affilify.db.repositories.accounts import AccountsRepository
from affilify.db.repositories.websites import WebsitesRepository
from affilify.llm.client import LLMClient
from affilify.services.images import ImageSourcer
from affilify.services.netlify import NetlifyPublisher
from affilify.services.page_analyzer import PageAnalyzer
from affilify.services.quota import QuotaDecision, QuotaGate
from affilify.services.site_content import ContentSynthesizer
from affilify.services.types import DeploymentResult, ProductSummary


logger = logging.getLogger(__name__)

_SLUG_SEPARATOR_RE = re.compile(r"[^a-z0-9]+")
_SLUG_BASE_MAX_CHARS = 40


class PipelineState(str, Enum):
    authenticating = "authenticating"
    quota_check = "quota_check"
    analyzing = "analyzing"
    synthesizing = "synthesizing"
    deploying = "deploying"
    persisting = "persisting"
    done = "done"
    error = "error"


class PipelineError(Exception):
    status_code = 500
    error = "Failed to create website"

    def __init__(self, message: str, *, extra: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra or {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message, **self.extra}


class BadRequestError(PipelineError):
    status_code = 400
    error = "Product URL is required"


class UnauthorizedError(PipelineError):
    status_code = 401
    error = "Authentication required"


class QuotaExceededError(PipelineError):
    status_code = 403
    error = "Website limit reached"

    def __init__(self, *, plan: str, current_count: int, limit: int) -> None:
        super().__init__(
            f"Your {plan} plan allows {limit} websites. Please upgrade to create more.",
            extra={"currentCount": current_count, "limit": limit},
        )
        self.current_count = current_count
        self.limit = limit


class InternalPipelineError(PipelineError):
    status_code = 500
    error = "Failed to create website"


def build_slug(title: str, created_at: datetime) -> str:
    base = _SLUG_SEPARATOR_RE.sub("-", title.lower()).strip("-")
    base = base[:_SLUG_BASE_MAX_CHARS].rstrip("-") or "website"
    return f"{base}-{int(created_at.timestamp() * 1000)}"


def internal_site_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/websites/{slug}"


def internal_preview_url(base_url: str, slug: str) -> str:
    return f"{base_url.rstrip('/')}/preview/{slug}"


@dataclass
class WebsiteCreationResult:
    website: Website
    live_url: str
    preview_url: str
    deployment: Optional[DeploymentResult]
    remaining_websites: int


@dataclass
class _PipelineRun:
    account: Optional[Account]
    product_url: Any
    created_at: datetime
    quota: Optional[QuotaDecision] = None
    summary: Optional[ProductSummary] = None
    document: Optional[str] = None
    slug: Optional[str] = None
    deployment: Optional[DeploymentResult] = None
    result: Optional[WebsiteCreationResult] = None
    history: list[PipelineState] = field(default_factory=list)


class WebsitePipeline:
    """
    Product URL -> persisted (optionally deployed) landing page.

    Each state handler returns the next state. Only authentication, input validation, quota and
    storage raise; analysis, synthesis and deployment are total and degrade in place.
    """

    def __init__(
        self,
        *,
        session: Session,
        analyzer: PageAnalyzer,
        synthesizer: ContentSynthesizer,
        publisher: NetlifyPublisher,
        quota_gate: Optional[QuotaGate] = None,
        public_base_url: str,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.session = session
        self.analyzer = analyzer
        self.synthesizer = synthesizer
        self.publisher = publisher
        self.quota_gate = quota_gate or QuotaGate()
        self.public_base_url = public_base_url.rstrip("/")
        self._clock = clock
        self._handlers: dict[PipelineState, Callable[[_PipelineRun], Awaitable[PipelineState]]] = {
            PipelineState.authenticating: self._authenticate,
            PipelineState.quota_check: self._check_quota,
            PipelineState.analyzing: self._analyze,
            PipelineState.synthesizing: self._synthesize,
            PipelineState.deploying: self._deploy,
            PipelineState.persisting: self._persist,
        }
        self.last_history: list[PipelineState] = []

    @classmethod
    def from_settings(cls, session: Session, app_settings: Settings = settings) -> "WebsitePipeline":
        llm_client = LLMClient(
            app_settings.LLM_DEFAULT_MODEL,
            gemini_api_key=app_settings.GEMINI_API_KEY,
            openai_api_key=app_settings.OPENAI_API_KEY,
            anthropic_api_key=app_settings.ANTHROPIC_API_KEY,
            timeout_seconds=app_settings.LLM_REQUEST_TIMEOUT_SECONDS,
        )
        image_sourcer = ImageSourcer(
            access_key=app_settings.UNSPLASH_ACCESS_KEY,
            api_base_url=app_settings.UNSPLASH_API_BASE_URL,
            timeout_seconds=app_settings.IMAGE_REQUEST_TIMEOUT_SECONDS,
        )
        return cls(
            session=session,
            analyzer=PageAnalyzer(
                user_agent=app_settings.PAGE_FETCH_USER_AGENT,
                timeout_seconds=app_settings.PAGE_FETCH_TIMEOUT_SECONDS,
            ),
            synthesizer=ContentSynthesizer(
                llm_client=llm_client,
                image_sourcer=image_sourcer,
                max_output_tokens=app_settings.LLM_MAX_OUTPUT_TOKENS,
                temperature=app_settings.LLM_TEMPERATURE,
            ),
            publisher=NetlifyPublisher(
                access_token=app_settings.NETLIFY_ACCESS_TOKEN,
                api_base_url=app_settings.NETLIFY_API_BASE_URL,
                timeout_seconds=app_settings.DEPLOY_REQUEST_TIMEOUT_SECONDS,
            ),
            public_base_url=app_settings.public_base_url,
        )

    async def run(self, *, account: Optional[Account], product_url: Any) -> WebsiteCreationResult:
        run = _PipelineRun(account=account, product_url=product_url, created_at=self._clock())
        self.last_history = run.history
        state = PipelineState.authenticating
        try:
            while state != PipelineState.done:
                run.history.append(state)
                logger.info(
                    "Website pipeline state",
                    extra={"state": state.value, "account_id": account.id if account else None},
                )
                state = await self._handlers[state](run)
        except PipelineError as exc:
            run.history.append(PipelineState.error)
            logger.info(
                "Website pipeline stopped",
                extra={"failed_state": run.history[-2].value, "status_code": exc.status_code},
            )
            raise
        if run.result is None:
            logger.error(
                "Website pipeline finished without a result",
                extra={"history": [step.value for step in run.history]},
            )
            raise InternalPipelineError(
                "An error occurred while creating your affiliate website. Please try again."
            )
        run.history.append(PipelineState.done)
        return run.result

    async def _authenticate(self, run: _PipelineRun) -> PipelineState:
        if run.account is None:
            raise UnauthorizedError("Please sign in to create websites.")
        if not isinstance(run.product_url, str) or not run.product_url.strip():
            raise BadRequestError("Provide the productUrl of the product to promote.")
        run.product_url = run.product_url.strip()
        return PipelineState.quota_check

    async def _check_quota(self, run: _PipelineRun) -> PipelineState:
        account = run.account
        decision = self.quota_gate.admit(account)
        run.quota = decision
        if not decision.allowed:
            raise QuotaExceededError(
                plan=account.plan,
                current_count=decision.current_usage,
                limit=decision.ceiling,
            )
        return PipelineState.analyzing

    async def _analyze(self, run: _PipelineRun) -> PipelineState:
        logger.info("Analyzing affiliate URL", extra={"product_url": run.product_url})
        run.summary = await self.analyzer.analyze(run.product_url)
        return PipelineState.synthesizing

    async def _synthesize(self, run: _PipelineRun) -> PipelineState:
        run.document = await self.synthesizer.synthesize(run.summary)
        return PipelineState.deploying

    async def _deploy(self, run: _PipelineRun) -> PipelineState:
        run.slug = build_slug(run.summary.title, run.created_at)
        # Re-read usage so a request that lost the last slot meanwhile does not publish a site.
        usage = AccountsRepository(self.session).current_usage(run.account.id)
        if usage is not None and usage >= run.quota.ceiling:
            raise QuotaExceededError(plan=run.account.plan, current_count=usage, limit=run.quota.ceiling)
        run.deployment = await self.publisher.publish(run.document, run.slug)
        return PipelineState.persisting

    async def _persist(self, run: _PipelineRun) -> PipelineState:
        account = run.account
        summary = run.summary
        accounts = AccountsRepository(self.session)
        websites = WebsitesRepository(self.session)
        try:
            new_count = accounts.reserve_website_slot(account.id, run.quota.ceiling)
            if new_count is None:
                self.session.rollback()
                # Another request took the last slot after deploying; a site published by this run stays in place.
                raise QuotaExceededError(
                    plan=account.plan,
                    current_count=account.websites_created,
                    limit=run.quota.ceiling,
                )
            website = websites.add(
                Website(
                    account_id=account.id,
                    slug=run.slug,
                    title=summary.title,
                    description=summary.description,
                    product_url=run.product_url,
                    html=run.document,
                    product_info=summary.to_dict(),
                    deployment=run.deployment.to_dict() if run.deployment else None,
                    views=0,
                    clicks=0,
                    is_active=True,
                    created_at=run.created_at,
                    updated_at=run.created_at,
                )
            )
            self.session.commit()
        except PipelineError:
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.exception("Failed to persist website", extra={"account_id": account.id, "slug": run.slug})
            raise InternalPipelineError(
                "An error occurred while creating your affiliate website. Please try again."
            ) from exc

        self.session.refresh(website)
        logger.info("Website created", extra={"website_id": website.id, "slug": website.slug})
        run.result = WebsiteCreationResult(
            website=website,
            live_url=run.deployment.live_url if run.deployment else internal_site_url(self.public_base_url, run.slug),
            preview_url=internal_preview_url(self.public_base_url, run.slug),
            deployment=run.deployment,
            remaining_websites=run.quota.ceiling - new_count,
        )
        return PipelineState.done
