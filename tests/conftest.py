import asyncio
import copy

import pytest

from sitegen.cache import CacheRegistry, FingerprintCache
from sitegen.llm_parsing import MalformedResponseError


class FakeGateway:
    """Stands in for CompletionGateway; answers are canned per call context.

    A canned answer may be a dict (returned as a copy), an exception
    (raised), or a callable taking (system, user) and returning a dict.
    """

    model = "fake-model"

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def status(self):
        return {"provider": "fake", "model": self.model, "has_token": True, "endpoint": "memory://"}

    def calls_for(self, context):
        return [c for c in self.calls if c["context"] == context]

    async def complete_json(self, system, user, *, context, temperature=0.7, max_tokens=None):
        self.calls.append(
            {
                "context": context,
                "system": system,
                "user": user,
                "temperature": temperature,
                "max_tokens": max_tokens,
            }
        )
        await asyncio.sleep(0)
        answer = self.responses.get(context)
        if answer is None:
            raise MalformedResponseError(f"no canned answer for {context}")
        if isinstance(answer, Exception):
            raise answer
        if callable(answer):
            return answer(system, user)
        return copy.deepcopy(answer)


def make_caches():
    return CacheRegistry(
        analysis=FingerprintCache(200, 7200, name="analysis"),
        content=FingerprintCache(100, 3600, name="content"),
        site=FingerprintCache(100, 3600, name="site"),
    )


RESTAURANT_ANALYSIS = {
    "industry": "Italian Restaurant",
    "siteType": "restaurant",
    "tone": "professional",
    "features": ["menu", "reservations"],
    "siteName": "Bella Italia",
    "description": "A family-run Italian restaurant in Boston.",
    "primaryColor": None,
}

BUSINESS_CONTENT = {
    "Hero": {"Title": "Bella Italia", "subtitle": "Authentic Italian", "description": "Fresh pasta daily."},
    "about": {"title": "About Us", "description": "Three generations of cooking."},
    "services": {
        "title": "What we offer",
        "items": [{"id": "s1", "title": "Catering", "description": "Events of any size."}],
    },
    "testimonials": {"title": "Guests", "items": []},
    "contact": {"email": "ciao@bella.example", "phone": "+1 617 555 0100", "location": "Boston, MA"},
    "social": {"instagram": "https://instagram.com/bella"},
}


@pytest.fixture()
def caches():
    return make_caches()


@pytest.fixture()
def fake_gateway():
    return FakeGateway(
        {
            "prompt analysis": RESTAURANT_ANALYSIS,
            "content generation": BUSINESS_CONTENT,
        }
    )
