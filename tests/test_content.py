import asyncio

import pytest

from conftest import BUSINESS_CONTENT, FakeGateway
from sitegen.cache import FingerprintCache
from sitegen.content import (
    PLACEHOLDER_CONTACT,
    ContentSynthesizer,
    fallback_content,
    repair_content,
    repair_restaurant_content,
    should_generate_projects,
)
from sitegen.llm_client import CompletionUpstreamError, ConfigurationError
from sitegen.models import RequirementRecord

PROJECT = {"id": "project-1", "title": "Rebrand", "description": "A rebrand.", "tags": ["brand"]}


def _record(**overrides):
    data = {
        "industry": "Consulting",
        "siteType": "business",
        "tone": "professional",
        "features": [],
        "siteName": "Acme Advisors",
        "description": "Strategy consulting for small firms.",
    }
    data.update(overrides)
    return RequirementRecord.model_validate(data)


def _synthesize(gateway, record, template_id, cache=None):
    return asyncio.run(ContentSynthesizer(gateway, cache=cache).synthesize(record, template_id))


@pytest.mark.parametrize(
    "template_id,overrides,expected",
    [
        ("modern-portfolio", {}, True),
        ("creative-resume", {}, True),
        ("restaurant-elegant", {"features": ["portfolio"]}, False),
        ("business-card", {}, False),
        ("business-card", {"features": ["Portfolio"]}, True),
        ("business-card", {"description": "We showcase our work samples."}, True),
        ("business-card", {"description": "Quality PROJECT delivery."}, True),
    ],
)
def test_project_gating(template_id, overrides, expected):
    assert should_generate_projects(_record(**overrides), template_id) is expected


def test_business_card_drops_unrequested_projects():
    answer = dict(BUSINESS_CONTENT, projects=[PROJECT])
    gw = FakeGateway({"content generation": answer})
    doc = _synthesize(gw, _record(), "business-card")
    assert doc.projects is None
    assert "projects" not in doc.to_dict()
    system = gw.calls_for("content generation")[0]["system"]
    assert "NOTE: Do NOT generate a projects section" in system
    assert '"projects":[' not in system


def test_business_card_keeps_projects_for_portfolio_requests():
    answer = dict(BUSINESS_CONTENT, projects=[PROJECT, "not a project"])
    gw = FakeGateway({"content generation": answer})
    doc = _synthesize(gw, _record(features=["portfolio"]), "business-card")
    assert doc.projects == [PROJECT]
    assert '"projects":[' in gw.calls_for("content generation")[0]["system"]


def test_keys_are_lowercased_and_required_sections_repaired():
    repaired = repair_content({"About": {"Title": "Us"}, "services": "oops"}, _record(), False)
    assert repaired["about"] == {"title": "Us"}
    assert "services" not in repaired
    assert repaired["hero"]["title"] == "Acme Advisors"
    assert repaired["hero"]["subtitle"] == "Professional Consulting Services"
    assert repaired["contact"] == PLACEHOLDER_CONTACT


def test_synthesized_document_has_lowercase_hero():
    doc = _synthesize(FakeGateway({"content generation": BUSINESS_CONTENT}), _record(), "business-card")
    assert doc.hero["title"] == "Bella Italia"
    assert doc.contact["location"] == "Boston, MA"


def test_restaurant_repair_fills_slides_menu_and_contact():
    record = _record(industry="Thai Restaurant", siteType="restaurant", siteName="Lotus")
    doc = repair_restaurant_content({"hero": {"title": "no slides"}, "menu": {"items": []}, "projects": []}, record)
    assert doc["hero"]["slides"][0]["title"] == "Lotus"
    assert doc["hero"]["slides"][0]["ctaprimary"]["link"] == "#menu"
    assert len(doc["menu"]["items"]) == 1
    assert doc["contact"]["address"].startswith("123 Main Street")
    assert "projects" not in doc


def test_restaurant_template_uses_its_own_prompt_and_budget():
    answer = {
        "Hero": {"slides": [{"id": "1", "title": "Lotus"}]},
        "menu": {"items": [{"id": "m1", "name": "Pad Thai", "price": "$16"}]},
        "contact": {"phone": "555"},
    }
    gw = FakeGateway({"content generation": answer})
    record = _record(industry="Thai Restaurant", siteType="restaurant")
    doc = _synthesize(gw, record, "restaurant-elegant")
    call = gw.calls_for("content generation")[0]
    assert call["max_tokens"] == 2500
    assert "restaurant" in call["system"].lower()
    assert doc.hero["slides"][0]["title"] == "Lotus"
    assert doc.to_dict()["menu"]["items"][0]["name"] == "Pad Thai"


def test_failure_returns_fallback_without_caching():
    cache = FingerprintCache(10, 3600, name="content")
    gw = FakeGateway({"content generation": CompletionUpstreamError("boom", status_code=502)})
    doc = _synthesize(gw, _record(), "business-card", cache=cache)
    assert doc.to_dict() == fallback_content(_record())
    assert doc.about["description"] == "We are a professional consulting business committed to excellence."
    assert len(cache) == 0


def test_restaurant_failure_returns_restaurant_fallback():
    doc = _synthesize(FakeGateway({}), _record(siteName="Lotus"), "restaurant-elegant")
    data = doc.to_dict()
    assert data["hero"]["slides"][0]["subtitle"] == "Authentic Culinary Experience"
    assert len(data["menu"]["items"]) == 2
    assert "reservations" in data


def test_missing_configuration_propagates():
    gw = FakeGateway({"content generation": ConfigurationError("OPENAI_API_KEY is not configured")})
    with pytest.raises(ConfigurationError):
        _synthesize(gw, _record(), "business-card")


def test_cache_is_keyed_by_template():
    cache = FingerprintCache(10, 3600, name="content")
    gw = FakeGateway({"content generation": BUSINESS_CONTENT})
    first = _synthesize(gw, _record(), "business-card", cache=cache)
    again = _synthesize(gw, _record(), "business-card", cache=cache)
    assert again.to_dict() == first.to_dict()
    assert len(gw.calls) == 1

    _synthesize(gw, _record(), "modern-portfolio", cache=cache)
    assert len(gw.calls) == 2
    assert ContentSynthesizer.cache_key(_record(), "business-card") != ContentSynthesizer.cache_key(
        _record(), "modern-portfolio"
    )
