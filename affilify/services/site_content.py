from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from html import escape
from pathlib import Path
from typing import Optional

from affilify.llm.client import LLMClient, LLMClientConfigError, LLMGenerationParams
from affilify.services.images import ImageSourcer
from affilify.services.types import ImageAsset, ProductSummary


logger = logging.getLogger(__name__)

TESTIMONIAL_IMAGE_QUERY = "happy customer testimonial"

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_DOCTYPE_SPAN_RE = re.compile(r"<!doctype\s+html.*</html\s*>", re.IGNORECASE | re.DOTALL)
_HTML_SPAN_RE = re.compile(r"<html[\s>].*</html\s*>", re.IGNORECASE | re.DOTALL)
_DOCUMENT_START_RE = re.compile(r"<!doctype\s+html|<html[\s>]", re.IGNORECASE)
_DOCUMENT_BODY_RE = re.compile(r"<(head|body)[\s>]", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"\{\{(\w+)\}\}")


@dataclass(frozen=True)
class PageImages:
    hero: ImageAsset
    features: tuple[ImageAsset, ImageAsset]
    testimonial: ImageAsset

    @property
    def urls(self) -> list[str]:
        return [self.hero.url, self.features[0].url, self.features[1].url, self.testimonial.url]


def _template_path() -> Path:
    # affilify/services -> affilify
    return Path(__file__).resolve().parents[1] / "templates" / "landing_page.html"


@lru_cache(maxsize=1)
def _load_template() -> str:
    return _template_path().read_text(encoding="utf-8")


def render_fallback_page(summary: ProductSummary, images: PageImages) -> str:
    """Deterministic landing page with the summary and image URLs substituted into fixed slots."""
    values = {
        "title": summary.title,
        "description": summary.description,
        "price": summary.price,
        "product_url": summary.original_url,
        "hero_image_url": images.hero.url,
        "hero_image_alt": images.hero.alt_text or summary.title,
        "feature_image_1_url": images.features[0].url,
        "feature_image_2_url": images.features[1].url,
        "testimonial_image_url": images.testimonial.url,
    }
    escaped = {key: escape(value, quote=True) for key, value in values.items()}
    return _PLACEHOLDER_RE.sub(lambda match: escaped.get(match.group(1), ""), _load_template())


def extract_document(raw: Optional[str]) -> Optional[str]:
    """
    Pull a complete page out of model output.

    Strips markdown fences, then prefers a full ``<!DOCTYPE ... </html>`` (or ``<html ... </html>``)
    span, which drops any chatter around the page. Text that opens a document without closing it
    is kept from its first marker on, provided it has reached a ``<head>`` or ``<body>``.
    Returns None otherwise.
    """
    if not raw or not isinstance(raw, str):
        return None
    text = _FENCE_RE.sub("", raw).strip()
    if not text:
        return None
    for pattern in (_DOCTYPE_SPAN_RE, _HTML_SPAN_RE):
        span = pattern.search(text)
        if span:
            return span.group(0)
    start = _DOCUMENT_START_RE.search(text)
    if start is None:
        return None
    tail = text[start.start():].strip()
    if not _DOCUMENT_BODY_RE.search(tail):
        return None
    return tail


def build_generation_prompt(summary: ProductSummary, images: PageImages) -> str:
    hero_url, feature_1_url, feature_2_url, testimonial_url = images.urls
    return f"""
You are an expert conversion copywriter and front-end developer building an affiliate landing page.

PRODUCT INFORMATION:
- Title: {summary.title}
- Description: {summary.description}
- Price: {summary.price}
- Original URL: {summary.original_url}

PROFESSIONAL IMAGES AVAILABLE:
- Hero Image: {hero_url}
- Feature Image 1: {feature_1_url}
- Feature Image 2: {feature_2_url}
- Testimonial Image: {testimonial_url}

RESPOND WITH ONLY VALID HTML CODE. NO JSON, NO MARKDOWN, NO EXPLANATIONS.
The response must start with <!DOCTYPE html> and end with </html>.

Build one complete, self-contained HTML5 document with:

1. MODERN RESPONSIVE DESIGN
- Mobile-first responsive layout using CSS Grid and Flexbox
- Professional color scheme (blues, whites, grays) and modern typography
- All styling embedded in a single <style> block; no external CSS or JavaScript

2. HIGH-CONVERTING STRUCTURE
- Hero section using the hero image, the product title and a clear value proposition
- Benefits section using the two feature images
- Social proof section with a testimonial using the testimonial image
- Call-to-action buttons linking to the original URL, showing the price

3. PROFESSIONAL CONTENT
- Benefit-focused headlines, trust signals and a risk-reversal guarantee
- Semantic, SEO-friendly markup with a descriptive <title> and meta description

Use the provided image URLs exactly as given in the appropriate sections.
""".strip()


class ContentSynthesizer:
    """Produces a complete landing page for a product; falls back to a fixed template on model failure."""

    def __init__(
        self,
        *,
        llm_client: LLMClient,
        image_sourcer: ImageSourcer,
        model: Optional[str] = None,
        max_output_tokens: Optional[int] = None,
        temperature: float = 0.7,
    ) -> None:
        self._llm = llm_client
        self._images = image_sourcer
        self._model = model or llm_client.default_model
        self._max_output_tokens = max_output_tokens
        self._temperature = temperature

    async def gather_images(self, summary: ProductSummary) -> PageImages:
        hero, features, testimonial = await asyncio.gather(
            self._images.fetch_images(f"{summary.title} product lifestyle", 1),
            self._images.fetch_images(f"{summary.title} benefits features", 2),
            self._images.fetch_images(TESTIMONIAL_IMAGE_QUERY, 1),
        )
        return PageImages(
            hero=hero[0],
            features=(features[0], features[1]),
            testimonial=testimonial[0],
        )

    async def synthesize(self, summary: ProductSummary) -> str:
        images = await self.gather_images(summary)
        document = await self._generate_with_model(summary, images)
        if document is not None:
            return document
        return render_fallback_page(summary, images)

    async def _generate_with_model(self, summary: ProductSummary, images: PageImages) -> Optional[str]:
        if not self._llm.is_configured(self._model):
            logger.warning(
                "Model credential not configured; using fallback template",
                extra={"model": self._model, "title": summary.title},
            )
            return None

        prompt = build_generation_prompt(summary, images)
        params = LLMGenerationParams(
            model=self._model,
            max_tokens=self._max_output_tokens,
            temperature=self._temperature,
        )
        try:
            raw = await asyncio.to_thread(self._llm.generate_text, prompt, params)
        except LLMClientConfigError as exc:
            logger.warning("Model not configured; using fallback template", extra={"error": str(exc)})
            return None
        except Exception:  # noqa: BLE001
            logger.exception("Model generation failed; using fallback template", extra={"model": self._model})
            return None

        document = extract_document(raw)
        if document is None:
            logger.warning(
                "Model output is not a complete HTML document; using fallback template",
                extra={"model": self._model, "output_chars": len(raw or "")},
            )
        return document
