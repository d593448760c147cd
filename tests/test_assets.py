import asyncio

import pytest

from conftest import FakeGateway
from sitegen.assets import (
    DEFAULT_PAIRINGS,
    FALLBACK_PALETTE,
    AssetGenerator,
    default_section,
    google_fonts_url,
)
from sitegen.llm_client import CompletionTimeoutError, ConfigurationError
from sitegen.llm_prompts import build_section_prompt

SERVICES_ANSWER = {
    "title": "What We Do",
    "subtitle": "Handmade pasta, catered",
    "items": [
        {"title": "Catering", "description": "Events of any size.", "icon": "🍝"},
        {"title": "", "description": "no title, dropped"},
        "not an object",
    ],
}


def _run(coro):
    return asyncio.run(coro)


def test_section_prompt_falls_back_to_about_and_adds_context():
    prompt = build_section_prompt("pricing", "Bakery", "Crumbs", "warm", "Mention gluten-free options")
    assert "Create a About section for Crumbs in Bakery." in prompt
    assert "Additional context: Mention gluten-free options" in prompt
    assert prompt.endswith("Tone: warm. Make it sound natural and warm.")
    assert "Include 3-4 services." in build_section_prompt("services")
    assert "professional and engaging" in build_section_prompt("hero")


def test_section_generation_keeps_titled_items_only():
    gw = FakeGateway({"section generation": SERVICES_ANSWER})
    out = _run(AssetGenerator(gw).section("services", industry="Restaurant", business_name="Bella"))
    assert "fallback" not in out
    assert out["section"]["type"] == "services"
    assert [i["title"] for i in out["section"]["items"]] == ["Catering"]
    call = gw.calls_for("section generation")[0]
    assert call["temperature"] == 0.7 and call["max_tokens"] == 1500
    assert "Bella" in call["user"]


@pytest.mark.parametrize(
    "answer",
    [
        CompletionTimeoutError("slow"),
        ConfigurationError("OPENAI_API_KEY is not configured"),
        {"type": "hero", "title": "   "},
    ],
)
def test_section_failures_return_default_copy(answer):
    gw = FakeGateway({"section generation": answer})
    out = _run(AssetGenerator(gw).section("hero", business_name="Bella", industry="dining"))
    assert out["fallback"] is True
    assert out["section"]["title"] == "Welcome to Bella"
    assert out["section"]["cta"] == {"text": "Get Started", "action": "get-started"}


def test_default_section_for_unknown_type_is_about():
    section = default_section("pricing")
    assert section.type == "about"
    assert section.content.startswith("Your Business is dedicated to delivering exceptional results in your industry.")
    assert len(section.items) == 2


def test_seo_fills_open_graph_from_title():
    gw = FakeGateway(
        {
            "seo generation": {
                "title": "Bella Italia | Boston Trattoria",
                "description": "Fresh pasta in Boston. Book a table today.",
                "keywords": "italian, pasta , boston",
            }
        }
    )
    out = _run(AssetGenerator(gw).seo("Italian restaurant", industry="Restaurant", brand_name="Bella Italia"))
    assert out["seo"]["keywords"] == ["italian", "pasta", "boston"]
    assert out["seo"]["ogTitle"] == "Bella Italia | Boston Trattoria"
    assert out["seo"]["ogDescription"] == "Fresh pasta in Boston. Book a table today."
    call = gw.calls_for("seo generation")[0]
    assert "Brand: Bella Italia" in call["user"] and call["max_tokens"] == 400


def test_seo_without_keywords_uses_fallback():
    gw = FakeGateway({"seo generation": {"title": "T", "description": "D", "keywords": []}})
    out = _run(AssetGenerator(gw).seo("content", industry="design", brand_name="Ada"))
    assert out["fallback"] is True
    assert out["message"].startswith("Using fallback SEO due to: ")
    assert out["seo"]["title"] == "Ada | Professional Portfolio"
    assert out["seo"]["ogTitle"] == "Ada | Portfolio"
    assert out["seo"]["keywords"] == ["portfolio", "professional", "design", "projects", "hire"]


def test_seo_and_palette_propagate_missing_key():
    gw = FakeGateway(
        {
            "seo generation": ConfigurationError("OPENAI_API_KEY is not configured"),
            "palette generation": ConfigurationError("OPENAI_API_KEY is not configured"),
        }
    )
    with pytest.raises(ConfigurationError):
        _run(AssetGenerator(gw).seo("content"))
    with pytest.raises(ConfigurationError):
        _run(AssetGenerator(gw).palette(industry="Tech"))


def test_palette_normalises_hex():
    answer = {
        "primary": "0F766E",
        "secondary": "#115E59",
        "accent": "#F59E0B",
        "background": "#FFFFFF",
        "text": "#111827",
        "name": "Harbour",
    }
    gw = FakeGateway({"palette generation": answer})
    out = _run(AssetGenerator(gw).palette(mood="calm", brand_name="Dockside"))
    assert out["palette"]["primary"] == "#0F766E"
    assert out["palette"]["name"] == "Harbour"
    call = gw.calls_for("palette generation")[0]
    assert call["temperature"] == 0.8 and '"Dockside", a business' in call["user"]


def test_palette_with_named_colour_falls_back():
    answer = {"primary": "teal", "secondary": "#115E59", "accent": "#F59E0B", "background": "#FFF", "text": "#111"}
    out = _run(AssetGenerator(FakeGateway({"palette generation": answer})).palette(industry="Tech"))
    assert out["fallback"] is True
    assert out["palette"] == FALLBACK_PALETTE


def test_font_pairings_get_urls_and_are_capped():
    pairing = {"id": "p", "name": "P", "heading": "Playfair Display", "body": "Open Sans", "bestFor": "Blogs"}
    answer = {"pairings": [pairing] * 4 + [{"heading": "Inter"}]}
    out = _run(AssetGenerator(FakeGateway({"font suggestions": answer})).fonts(current_fonts={"heading": "Inter"}))
    assert len(out["pairings"]) == 3
    first = out["pairings"][0]
    assert first["bestFor"] == ["Blogs"]
    assert first["googleFontsUrl"] == (
        "https://fonts.googleapis.com/css2?family=Playfair+Display:wght@700&family=Open+Sans:wght@400&display=swap"
    )


@pytest.mark.parametrize(
    "answer",
    [ConfigurationError("OPENAI_API_KEY is not configured"), {"pairings": []}, {"pairings": "none"}],
)
def test_font_failures_return_default_pairings(answer):
    out = _run(AssetGenerator(FakeGateway({"font suggestions": answer})).fonts())
    assert out["fallback"] is True
    assert [p["id"] for p in out["pairings"]] == [p["id"] for p in DEFAULT_PAIRINGS]
    assert all(p["googleFontsUrl"] for p in out["pairings"])


def test_google_fonts_url_joins_words():
    assert google_fonts_url("DM Serif Display", "Inter") == (
        "https://fonts.googleapis.com/css2?family=DM+Serif+Display:wght@700&family=Inter:wght@400&display=swap"
    )
