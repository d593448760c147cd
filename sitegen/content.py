from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from sitegen.cache import fingerprint
from sitegen.llm_client import CompletionError, ConfigurationError
from sitegen.llm_parsing import MalformedResponseError, lowercase_keys
from sitegen.llm_prompts import (
    RESTAURANT_IMAGE,
    build_content_prompt,
    build_content_user_message,
    build_restaurant_prompt,
    build_restaurant_user_message,
)
from sitegen.models import ContentDocument, RequirementRecord

log = logging.getLogger(__name__)

# Bumped whenever the repair rules below change shape of stored content
CONTENT_REPAIR_VERSION = 2

CONTENT_TEMPERATURE = 0.8
CONTENT_MAX_TOKENS = 2000
RESTAURANT_MAX_TOKENS = 2500

RESTAURANT_TEMPLATE = "restaurant-elegant"
ALWAYS_PROJECTS = {"modern-portfolio", "creative-resume"}
PROJECT_FEATURES = {"projects", "portfolio"}
PROJECT_KEYWORDS = ("project", "portfolio", "work examples", "work samples")

_OBJECT_SECTIONS = ("about", "services", "testimonials", "social", "menu", "gallery", "reservations", "footer")

PLACEHOLDER_CONTACT = {
    "email": "contact@example.com",
    "phone": "+1 (555) 123-4567",
    "location": "San Francisco, CA",
}
RESTAURANT_CONTACT = {
    "phone": "+1 (555) 123-4567",
    "email": "info@restaurant.com",
    "address": "123 Main Street, City, State 12345",
    "hours": "Mon-Fri: 11:00 AM - 10:00 PM\nSat-Sun: 10:00 AM - 11:00 PM",
}


def should_generate_projects(record: RequirementRecord, template_id: str) -> bool:
    if template_id == RESTAURANT_TEMPLATE:
        return False
    if template_id in ALWAYS_PROJECTS:
        return True
    if template_id == "business-card":
        features = {f.lower() for f in record.features}
        if features & PROJECT_FEATURES:
            return True
        description = record.description.lower()
        return any(word in description for word in PROJECT_KEYWORDS)
    return False


def _default_hero(record: RequirementRecord) -> Dict[str, Any]:
    return {
        "title": record.site_name,
        "subtitle": f"Professional {record.industry} Services",
        "description": record.description or "Welcome to our website",
        "cta": {"primary": {"text": "Get Started", "link": "#contact"}},
    }


def _default_slide(record: RequirementRecord) -> Dict[str, Any]:
    return {
        "id": "1",
        "badge": "Welcome",
        "title": record.site_name,
        "subtitle": "Fine Dining Experience",
        "description": record.description or "Experience culinary excellence",
        "image": RESTAURANT_IMAGE,
        "ctaprimary": {"text": "View Menu", "link": "#menu"},
        "ctasecondary": {"text": "Book Table", "link": "#reservations"},
    }


def fallback_content(record: RequirementRecord) -> Dict[str, Any]:
    return {
        "hero": _default_hero(record),
        "about": {
            "title": "About Us",
            "description": (
                f"We are a professional {record.industry.lower()} business committed to excellence."
            ),
        },
        "contact": dict(PLACEHOLDER_CONTACT),
    }


def fallback_restaurant_content(record: RequirementRecord) -> Dict[str, Any]:
    slide = _default_slide(record)
    slide.update(
        subtitle="Authentic Culinary Experience",
        description=record.description or "Experience the finest dining",
        ctasecondary={"text": "Reserve Now", "link": "#reservations"},
    )
    return {
        "hero": {"slides": [slide]},
        "about": {
            "title": "About Us",
            "subtitle": "Our Story",
            "description": (
                f"Welcome to {record.site_name}. We bring authentic flavors and exceptional "
                "service to every dish."
            ),
            "features": [
                {"icon": "award", "title": "Award Winning", "description": "Recognized for culinary excellence"},
                {"icon": "heart", "title": "Made with Love", "description": "Every dish prepared with passion"},
                {"icon": "users", "title": "Family Friendly", "description": "Perfect for all occasions"},
            ],
        },
        "menu": {
            "title": "Our Menu",
            "subtitle": "Culinary Delights",
            "items": [
                {
                    "id": "item-1",
                    "name": "Chef's Signature Pasta",
                    "description": "Handmade pasta with seasonal ingredients and house-made sauce",
                    "price": "$28",
                    "category": "main course",
                    "rating": 5,
                    "tags": ["Chef's Special", "Popular"],
                },
                {
                    "id": "item-2",
                    "name": "Grilled Seafood Platter",
                    "description": "Fresh catch of the day with roasted vegetables",
                    "price": "$42",
                    "category": "main course",
                    "rating": 5,
                    "tags": ["Fresh", "Gluten-Free"],
                },
            ],
        },
        "testimonials": {
            "title": "What Our Guests Say",
            "subtitle": "Reviews",
            "items": [
                {
                    "id": "testimonial-1",
                    "content": "Absolutely amazing experience! The food and service exceeded all expectations.",
                    "author": "Sarah Johnson",
                    "role": "Food Critic",
                    "rating": 5,
                }
            ],
        },
        "reservations": {
            "title": "Book Your Table",
            "subtitle": "Reserve Now",
            "description": "Reserve your table for an unforgettable dining experience",
        },
        "contact": dict(RESTAURANT_CONTACT),
        "social": {
            "facebook": "https://facebook.com/restaurant",
            "instagram": "https://instagram.com/restaurant",
        },
    }


def _drop_misshapen(content: Dict[str, Any]) -> None:
    for name in _OBJECT_SECTIONS:
        if name in content and not isinstance(content[name], dict):
            log.warning("content.repair: dropping section=%s type=%s", name, type(content[name]).__name__)
            content.pop(name)
    if "projects" in content:
        projects = content["projects"]
        if isinstance(projects, list):
            content["projects"] = [p for p in projects if isinstance(p, dict)]
        else:
            content.pop("projects")


def repair_content(content: Dict[str, Any], record: RequirementRecord, include_projects: bool) -> Dict[str, Any]:
    """Normalize a general-template document: lowercase keys, hero and contact present."""
    doc = lowercase_keys(content)
    _drop_misshapen(doc)
    if not isinstance(doc.get("hero"), dict) or not doc["hero"]:
        doc["hero"] = _default_hero(record)
    if not isinstance(doc.get("contact"), dict) or not doc["contact"]:
        doc["contact"] = dict(PLACEHOLDER_CONTACT)
    if not include_projects and "projects" in doc:
        log.info("content.repair: dropping projects that were not requested")
        doc.pop("projects")
    return doc


def repair_restaurant_content(content: Dict[str, Any], record: RequirementRecord) -> Dict[str, Any]:
    """Restaurant documents need hero slides, a non-empty menu and a full contact block."""
    doc = lowercase_keys(content)
    _drop_misshapen(doc)
    doc.pop("projects", None)
    hero = doc.get("hero")
    if not isinstance(hero, dict) or not isinstance(hero.get("slides"), list) or not hero["slides"]:
        doc["hero"] = {"slides": [_default_slide(record)]}
    menu = doc.get("menu")
    if not isinstance(menu, dict) or not isinstance(menu.get("items"), list) or not menu["items"]:
        doc["menu"] = {
            "title": "Our Menu",
            "subtitle": "Culinary Excellence",
            "items": [
                {
                    "id": "item-1",
                    "name": "Signature Dish",
                    "description": "Chef's special creation with seasonal ingredients",
                    "price": "$32",
                    "category": "main course",
                    "rating": 5,
                    "tags": ["Chef's Special"],
                }
            ],
        }
    if not isinstance(doc.get("contact"), dict) or not doc["contact"]:
        doc["contact"] = dict(RESTAURANT_CONTACT)
    return doc


class ContentSynthesizer:
    """Generates template-aware copy for a RequirementRecord."""

    def __init__(self, gateway: Any, cache: Any = None) -> None:
        self.gateway = gateway
        self.cache = cache

    @staticmethod
    def cache_key(record: RequirementRecord, template_id: str) -> str:
        return fingerprint(
            f"content-{record.site_name}-{record.description}",
            {
                "templateId": template_id,
                "industry": record.industry,
                "tone": record.tone,
                "v": CONTENT_REPAIR_VERSION,
            },
        )

    async def synthesize(self, record: RequirementRecord, template_id: str) -> ContentDocument:
        key = self.cache_key(record, template_id)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                log.info("content.synthesize: cache hit key=%s template=%s", key, template_id)
                return ContentDocument.model_validate(copy.deepcopy(cached))

        restaurant = template_id == RESTAURANT_TEMPLATE
        include_projects = should_generate_projects(record, template_id)
        log.info("content.synthesize: template=%s projects=%s", template_id, include_projects)

        if restaurant:
            system = build_restaurant_prompt(record.industry, record.tone)
            user = build_restaurant_user_message(record)
            max_tokens = RESTAURANT_MAX_TOKENS
        else:
            system = build_content_prompt(record.industry, record.tone, include_projects)
            user = build_content_user_message(record)
            max_tokens = CONTENT_MAX_TOKENS

        try:
            raw = await self.gateway.complete_json(
                system,
                user,
                context="content generation",
                temperature=CONTENT_TEMPERATURE,
                max_tokens=max_tokens,
            )
            if restaurant:
                repaired = repair_restaurant_content(raw, record)
            else:
                repaired = repair_content(raw, record, include_projects)
            doc = ContentDocument.model_validate(repaired)
        except ConfigurationError:
            raise
        except (CompletionError, MalformedResponseError, ValidationError) as exc:
            log.warning("content.synthesize: falling back after %s: %s", type(exc).__name__, exc)
            fallback = fallback_restaurant_content(record) if restaurant else fallback_content(record)
            return ContentDocument.model_validate(fallback)

        log.info(
            "content.synthesize: sections=%s",
            ",".join(_section_names(doc)),
        )
        if self.cache is not None:
            self.cache.set(key, doc.to_dict())
        return doc


def _section_names(doc: ContentDocument) -> List[str]:
    return list(doc.to_dict().keys())
