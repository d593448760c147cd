import asyncio

import pytest

from conftest import RESTAURANT_ANALYSIS, FakeGateway
from sitegen.analyzer import RequirementExtractor, analysis_options, fallback_requirements
from sitegen.cache import FingerprintCache
from sitegen.llm_client import CompletionRateLimitError, ConfigurationError


def _extract(gateway, prompt="Italian restaurant in Boston", options=None, cache=None):
    extractor = RequirementExtractor(gateway, cache=cache)
    return asyncio.run(extractor.extract(prompt, options))


def test_model_answer_becomes_a_record():
    gw = FakeGateway({"prompt analysis": RESTAURANT_ANALYSIS})
    record = _extract(gw)
    assert record.industry == "Italian Restaurant"
    assert record.site_type == "restaurant"
    assert record.site_name == "Bella Italia"
    assert record.features == ["menu", "reservations"]
    call = gw.calls_for("prompt analysis")[0]
    assert call["max_tokens"] == 500
    assert "Italian restaurant in Boston" in call["user"]


def test_missing_tone_and_name_are_filled():
    answer = dict(RESTAURANT_ANALYSIS, tone="", siteName="")
    record = _extract(FakeGateway({"prompt analysis": answer}), options={"tone": "casual"})
    assert record.tone == "casual"
    assert record.site_name == "My Italian Restaurant"

    record = _extract(FakeGateway({"prompt analysis": dict(answer)}))
    assert record.tone == "professional"


def test_unknown_site_type_is_treated_as_business():
    answer = dict(RESTAURANT_ANALYSIS, siteType="blog")
    assert _extract(FakeGateway({"prompt analysis": answer})).site_type == "business"


def test_colors_option_overrides_model_color():
    answer = dict(RESTAURANT_ANALYSIS, primaryColor="#123456")
    record = _extract(FakeGateway({"prompt analysis": answer}), options={"colors": "#FF0000"})
    assert record.primary_color == "#FF0000"


def test_second_identical_request_is_served_from_cache():
    gw = FakeGateway({"prompt analysis": RESTAURANT_ANALYSIS})
    cache = FingerprintCache(10, 3600, name="analysis")
    first = _extract(gw, options={"tone": "casual", "templateId": "ignored"}, cache=cache)
    second = _extract(gw, prompt="  ITALIAN restaurant in boston ", options={"tone": "casual"}, cache=cache)
    assert first.to_dict() == second.to_dict()
    assert len(gw.calls) == 1


def test_failures_fall_back_and_are_not_cached():
    gw = FakeGateway({"prompt analysis": CompletionRateLimitError("slow down")})
    cache = FingerprintCache(10, 3600, name="analysis")
    record = _extract(gw, prompt="x" * 150, options={"industry": "Bakery", "colors": "#00FF00"}, cache=cache)
    assert record.industry == "Bakery"
    assert record.site_type == "business"
    assert record.site_name == "My Website"
    assert record.description == "x" * 100
    assert record.primary_color == "#00FF00"
    assert len(cache) == 0


def test_malformed_answer_falls_back():
    record = _extract(FakeGateway({}))
    assert record.to_dict() == fallback_requirements("Italian restaurant in Boston").to_dict()


def test_missing_configuration_propagates():
    gw = FakeGateway({"prompt analysis": ConfigurationError("OPENAI_API_KEY is not configured")})
    with pytest.raises(ConfigurationError):
        _extract(gw)


def test_analysis_options_keeps_only_relevant_keys():
    opts = {"industry": "Tech", "tone": None, "colors": "#fff", "templateId": "business-card", "features": ["x"]}
    assert analysis_options(opts) == {"industry": "Tech", "colors": "#fff"}
    assert analysis_options(None) == {}
