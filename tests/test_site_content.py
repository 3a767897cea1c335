from __future__ import annotations

import asyncio
from html import escape

import pytest
from bs4 import BeautifulSoup

from affilify.llm.client import LLMClient, LLMGenerationParams
from affilify.services.images import placeholder_image
from affilify.services.site_content import (
    TESTIMONIAL_IMAGE_QUERY,
    ContentSynthesizer,
    PageImages,
    extract_document,
    render_fallback_page,
)
from affilify.services.types import ImageAsset, ProductSummary


SUMMARY = ProductSummary(
    title="Widget Pro",
    description="The last widget you will ever need.",
    price="$49.00",
    original_url="https://shop.example.com/widget-pro",
)


def _image(url: str) -> ImageAsset:
    return ImageAsset(url=url, thumbnail=url, alt_text="alt", attribution_text="Photo by Tester on Unsplash")


class FakeImageSourcer:
    def __init__(self) -> None:
        self.queries: list[tuple[str, int]] = []

    async def fetch_images(self, query: str, count: int) -> list[ImageAsset]:
        self.queries.append((query, count))
        slug = query.replace(" ", "-")
        return [_image(f"https://img.example.com/{slug}/{index}.jpg") for index in range(count)]


class FakeLLMClient:
    default_model = "gemini-2.5-flash"

    def __init__(self, *, configured: bool = True, output: str | None = None, error: Exception | None = None):
        self._configured = configured
        self._output = output
        self._error = error
        self.prompts: list[str] = []

    def is_configured(self, model: str | None = None) -> bool:
        return self._configured

    def generate_text(self, prompt: str, params: LLMGenerationParams | None = None) -> str:
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        return self._output or ""


def _synthesizer(llm_client) -> tuple[ContentSynthesizer, FakeImageSourcer]:
    images = FakeImageSourcer()
    return ContentSynthesizer(llm_client=llm_client, image_sourcer=images), images


def test_extract_document_strips_fences():
    raw = "```html\n<!DOCTYPE html><html><body>ok</body></html>\n```"

    assert extract_document(raw) == "<!DOCTYPE html><html><body>ok</body></html>"


def test_extract_document_drops_chatter_around_document():
    raw = "Sure! Here is your page:\n<!doctype html>\n<html><body>ok</body></html>\nEnjoy."

    assert extract_document(raw) == "<!doctype html>\n<html><body>ok</body></html>"


def test_extract_document_accepts_html_without_doctype():
    raw = "Page follows <html lang=\"en\"><body>ok</body></html> done"

    assert extract_document(raw) == "<html lang=\"en\"><body>ok</body></html>"


def test_extract_document_keeps_unterminated_document_from_first_marker():
    raw = "intro text <!DOCTYPE html><html><body>cut off"

    assert extract_document(raw) == "<!DOCTYPE html><html><body>cut off"


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        "   ",
        "```\n```",
        "Here is some JSON: {\"html\": false}",
        "I cannot build an <html5> page for this product, sorry.",
        "Sorry, an <html lang=\"en\"> page is not possible here.",
        "<!doctypes are not my thing>",
    ],
)
def test_extract_document_rejects_non_documents(raw):
    assert extract_document(raw) is None


def test_render_fallback_page_substitutes_summary_and_images():
    images = PageImages(
        hero=_image("https://img.example.com/hero.jpg"),
        features=(_image("https://img.example.com/f1.jpg"), _image("https://img.example.com/f2.jpg")),
        testimonial=_image("https://img.example.com/t.jpg"),
    )

    document = render_fallback_page(SUMMARY, images)

    assert document.startswith("<!DOCTYPE html>")
    assert document.rstrip().endswith("</html>")
    assert "<title>Widget Pro - Professional Affiliate Website</title>" in document
    assert "$49.00" in document
    assert 'href="https://shop.example.com/widget-pro"' in document
    for url in images.urls:
        assert url in document
    assert "Sarah Johnson, Verified Customer" in document
    assert "{{" not in document


def test_render_fallback_page_escapes_markup_in_summary():
    summary = ProductSummary(
        title='<script>alert("x")</script>',
        description="Fish & Chips",
        price="$1",
        original_url="https://shop.example.com/?a=1&b=2",
    )
    hero = _image("https://img.example.com/hero.jpg?w=800&h=600")
    images = PageImages(hero=hero, features=(hero, hero), testimonial=hero)

    document = render_fallback_page(summary, images)

    assert "<script>alert" not in document
    assert escape(summary.title) in document
    assert "Fish &amp; Chips" in document
    assert escape(hero.url) in document


def test_render_fallback_page_hero_background_keeps_raw_url():
    hero = placeholder_image("standing desk")
    images = PageImages(hero=hero, features=(hero, hero), testimonial=hero)

    document = render_fallback_page(SUMMARY, images)

    soup = BeautifulSoup(document, "html.parser")
    assert f"url('{hero.url}')" in soup.select_one("section.hero")["style"]
    assert soup.select_one("img.hero-image")["src"] == hero.url
    assert "{{" not in soup.style.string
    assert hero.url not in soup.style.string


def test_gather_images_requests_hero_features_and_testimonial():
    synthesizer, images = _synthesizer(FakeLLMClient(configured=False))

    page_images = asyncio.run(synthesizer.gather_images(SUMMARY))

    assert sorted(images.queries) == sorted(
        [
            ("Widget Pro product lifestyle", 1),
            ("Widget Pro benefits features", 2),
            (TESTIMONIAL_IMAGE_QUERY, 1),
        ]
    )
    assert page_images.hero.url == "https://img.example.com/Widget-Pro-product-lifestyle/0.jpg"
    assert [image.url for image in page_images.features] == [
        "https://img.example.com/Widget-Pro-benefits-features/0.jpg",
        "https://img.example.com/Widget-Pro-benefits-features/1.jpg",
    ]


def test_synthesize_returns_model_document_and_prompt_carries_image_urls():
    model_page = "<!DOCTYPE html><html><body>Model page</body></html>"
    llm = FakeLLMClient(output=f"```html\n{model_page}\n```")
    synthesizer, _ = _synthesizer(llm)

    document = asyncio.run(synthesizer.synthesize(SUMMARY))

    assert document == model_page
    prompt = llm.prompts[0]
    assert "Widget Pro" in prompt
    assert "https://img.example.com/Widget-Pro-product-lifestyle/0.jpg" in prompt
    assert "https://img.example.com/happy-customer-testimonial/0.jpg" in prompt


@pytest.mark.parametrize(
    "llm",
    [
        FakeLLMClient(configured=False),
        FakeLLMClient(error=RuntimeError("model timeout")),
        FakeLLMClient(output=""),
        FakeLLMClient(output="I cannot help with that."),
        FakeLLMClient(output="I cannot build an <html5> page for this product, sorry."),
    ],
)
def test_synthesize_falls_back_to_template(llm):
    synthesizer, _ = _synthesizer(llm)

    document = asyncio.run(synthesizer.synthesize(SUMMARY))

    assert document.startswith("<!DOCTYPE html>")
    assert "Widget Pro" in document
    assert "https://img.example.com/Widget-Pro-product-lifestyle/0.jpg" in document
    assert "https://img.example.com/Widget-Pro-benefits-features/1.jpg" in document
    assert "https://img.example.com/happy-customer-testimonial/0.jpg" in document


def test_synthesize_without_model_key_never_calls_provider():
    llm = LLMClient("gemini-2.5-flash", gemini_api_key=None)

    def fail_generate(*args, **kwargs):
        raise AssertionError("provider called without a credential")

    llm._generate_with_gemini = fail_generate  # type: ignore[method-assign]
    synthesizer, _ = _synthesizer(llm)

    document = asyncio.run(synthesizer.synthesize(SUMMARY))

    assert "Sarah Johnson, Verified Customer" in document
