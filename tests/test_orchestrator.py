import asyncio

import pytest

from conftest import FakeGateway, make_caches
from sitegen.llm_client import ConfigurationError
from sitegen.orchestrator import SiteOrchestrator, normalize_options

PROMPT = "An elegant Italian restaurant in Boston"


def test_restaurant_prompt_builds_business_card_site(fake_gateway, caches):
    orch = SiteOrchestrator(fake_gateway, caches)
    result = asyncio.run(orch.generate(PROMPT, {"tone": "professional"}))

    site = result.site
    assert result.success is True
    assert site.template_id == "business-card"
    assert site.title == "Bella Italia"
    assert site.design.colors.primary == "#C41E3A"
    assert site.design.fonts.heading == "Inter"
    assert site.section_order == ["hero", "about", "services", "contact", "social"]
    assert site.content["hero"]["title"] == "Bella Italia"
    assert "projects" not in site.content
    assert result.analysis.site_type == "restaurant"
    assert result.meta.cached is False
    assert result.meta.model == "fake-model"


def test_identical_request_is_served_from_site_cache(fake_gateway, caches):
    orch = SiteOrchestrator(fake_gateway, caches)
    first = asyncio.run(orch.generate(PROMPT, {"tone": "professional", "industry": None}))
    calls = len(fake_gateway.calls)
    second = asyncio.run(orch.generate(PROMPT.upper(), {"tone": "professional"}))

    assert second.meta.cached is True
    assert second.meta.model == "fake-model"
    assert second.site.to_dict() == first.site.to_dict()
    assert len(fake_gateway.calls) == calls
    assert caches.site.stats().hits == 1


def test_template_option_reaches_restaurant_template(caches):
    gw = FakeGateway(
        {
            "prompt analysis": {"industry": "Italian Restaurant", "siteType": "restaurant", "siteName": "Lotus"},
            "content generation": {
                "hero": {"slides": [{"id": "1", "title": "Lotus"}]},
                "menu": {"items": [{"id": "m1", "name": "Risotto"}]},
                "reservations": {"title": "Book"},
                "contact": {"phone": "555"},
            },
        }
    )
    result = asyncio.run(SiteOrchestrator(gw, caches).generate(PROMPT, {"templateId": "restaurant-elegant"}))
    assert result.site.template_id == "restaurant-elegant"
    assert result.site.section_order == ["hero", "menu", "reservations", "contact"]
    assert gw.calls_for("content generation")[0]["max_tokens"] == 2500


def test_model_failures_degrade_to_fallback_site(caches):
    orch = SiteOrchestrator(FakeGateway({}), caches)
    result = asyncio.run(orch.generate("A small accounting practice", {}))
    assert result.analysis.site_name == "My Website"
    assert result.site.template_id == "business-card"
    assert result.site.design.colors.primary == "#1E40AF"
    assert result.site.section_order == ["hero", "about", "contact"]
    assert len(caches.analysis) == 0
    assert len(caches.content) == 0


def test_unexpected_failure_caches_nothing(fake_gateway, caches, monkeypatch):
    orch = SiteOrchestrator(fake_gateway, caches)

    async def boom(record, template_id):
        raise RuntimeError("renderer exploded")

    monkeypatch.setattr(orch.synthesizer, "synthesize", boom)
    with pytest.raises(RuntimeError):
        asyncio.run(orch.generate(PROMPT, {}))
    assert len(caches.site) == 0
    assert orch._inflight == {}


def test_missing_configuration_propagates(caches):
    gw = FakeGateway({"prompt analysis": ConfigurationError("OPENAI_API_KEY is not configured")})
    with pytest.raises(ConfigurationError):
        asyncio.run(SiteOrchestrator(gw, caches).generate(PROMPT, {}))
    assert len(caches.site) == 0


def test_concurrent_identical_requests_share_one_pipeline_run(fake_gateway):
    orch = SiteOrchestrator(fake_gateway, make_caches())

    async def both():
        return await asyncio.gather(
            orch.generate(PROMPT, {"tone": "professional"}),
            orch.generate(PROMPT, {"tone": "professional"}),
        )

    first, second = asyncio.run(both())
    assert len(fake_gateway.calls_for("prompt analysis")) == 1
    assert len(fake_gateway.calls_for("content generation")) == 1
    assert first.site.to_dict() == second.site.to_dict()
    assert sorted([first.meta.cached, second.meta.cached]) == [False, True]


def test_normalize_options_drops_empty_values():
    opts = {"tone": "", "industry": "Tech", "features": [], "colors": None, "templateId": "business-card", "x": 1}
    assert normalize_options(opts) == {"industry": "Tech", "templateId": "business-card"}


def test_cancelling_first_caller_does_not_cancel_joiners(fake_gateway):
    orch = SiteOrchestrator(fake_gateway, make_caches())

    async def scenario():
        owner = asyncio.ensure_future(orch.generate(PROMPT, {}))
        await asyncio.sleep(0)
        joiner = asyncio.ensure_future(orch.generate(PROMPT, {}))
        await asyncio.sleep(0)
        owner.cancel()
        result = await joiner
        return owner, result

    owner, result = asyncio.run(scenario())
    assert owner.cancelled()
    assert result.meta.cached is True
    assert result.site.template_id == "business-card"
    assert len(fake_gateway.calls_for("prompt analysis")) == 1
