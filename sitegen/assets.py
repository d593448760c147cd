from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sitegen.llm_client import CompletionError, ConfigurationError
from sitegen.llm_parsing import MalformedResponseError
from sitegen.llm_prompts import (
    FONTS_SYSTEM,
    PALETTE_SYSTEM,
    SECTION_SYSTEM,
    SEO_SYSTEM,
    build_fonts_prompt,
    build_palette_prompt,
    build_section_prompt,
    build_seo_prompt,
)
from sitegen.models import FontPairing, Palette, SectionContent, SeoMeta

log = logging.getLogger(__name__)

SECTION_TEMPERATURE = 0.7
SECTION_MAX_TOKENS = 1500
SEO_TEMPERATURE = 0.7
SEO_MAX_TOKENS = 400
PALETTE_TEMPERATURE = 0.8
PALETTE_MAX_TOKENS = 300
FONTS_TEMPERATURE = 0.7
FONTS_MAX_TOKENS = 1000
MAX_PAIRINGS = 3

FALLBACK_PALETTE = {
    "primary": "#4F46E5",
    "secondary": "#7C3AED",
    "accent": "#EC4899",
    "background": "#FFFFFF",
    "text": "#1F2937",
    "name": "Professional Blue",
    "description": "A trustworthy and modern color scheme perfect for any business.",
}

DEFAULT_PAIRINGS = (
    {
        "id": "classic-elegance",
        "name": "Classic Elegance",
        "heading": "Playfair Display",
        "body": "Source Sans Pro",
        "description": "Timeless serif heading paired with clean sans-serif body creates sophisticated balance",
        "vibe": "Elegant & Professional",
        "bestFor": ["Luxury brands", "Creative portfolios", "Editorial sites"],
    },
    {
        "id": "modern-clean",
        "name": "Modern Clean",
        "heading": "Montserrat",
        "body": "Open Sans",
        "description": "Contemporary geometric heading with friendly body text for approachable professionalism",
        "vibe": "Modern & Trustworthy",
        "bestFor": ["SaaS products", "Tech startups", "Corporate sites"],
    },
    {
        "id": "bold-impact",
        "name": "Bold Impact",
        "heading": "Bebas Neue",
        "body": "Lato",
        "description": "Strong condensed heading creates visual impact, balanced with readable body text",
        "vibe": "Bold & Confident",
        "bestFor": ["Creative agencies", "Fashion brands", "Event sites"],
    },
)


def google_fonts_url(heading: str, body: str) -> str:
    return (
        "https://fonts.googleapis.com/css2?"
        f"family={heading.replace(' ', '+')}:wght@700&family={body.replace(' ', '+')}:wght@400&display=swap"
    )


def default_section(section_type: str, business_name: Optional[str] = None, industry: Optional[str] = None) -> SectionContent:
    """Canned copy for a section type; unknown types get the about section."""
    name = business_name or "Your Business"
    field = industry or "your industry"
    defaults: Dict[str, Dict[str, Any]] = {
        "hero": {
            "type": "hero",
            "title": f"Welcome to {name}",
            "subtitle": "Your trusted partner for success",
            "content": f"We help businesses {field} achieve their goals with innovative solutions and dedicated support.",
            "cta": {"text": "Get Started", "action": "get-started"},
        },
        "about": {
            "type": "about",
            "title": "About Us",
            "content": (
                f"{name} is dedicated to delivering exceptional results in {field}. Our team combines expertise "
                "with passion to create solutions that make a real difference.\n\nWe believe in building lasting "
                "relationships with our clients through transparency, quality, and continuous innovation."
            ),
            "items": [
                {"title": "Our Mission", "description": "To empower businesses with innovative solutions", "icon": "🎯"},
                {"title": "Our Values", "description": "Integrity, excellence, and customer success", "icon": "💎"},
            ],
        },
        "services": {
            "type": "services",
            "title": "Our Services",
            "subtitle": "Comprehensive solutions tailored to your needs",
            "items": [
                {"title": "Service 1", "description": "Expert solutions designed to help you succeed", "icon": "⚡"},
                {"title": "Service 2", "description": "Innovative approaches to complex challenges", "icon": "🚀"},
                {"title": "Service 3", "description": "Dedicated support every step of the way", "icon": "💡"},
            ],
        },
        "features": {
            "type": "features",
            "title": "Key Features",
            "subtitle": "Everything you need to succeed",
            "items": [
                {"title": "Easy to Use", "description": "Intuitive interface designed for everyone", "icon": "✨"},
                {"title": "Fast & Reliable", "description": "Built for performance and stability", "icon": "⚡"},
                {"title": "Secure", "description": "Enterprise-grade security you can trust", "icon": "🔒"},
            ],
        },
        "testimonials": {
            "type": "testimonials",
            "title": "What Our Clients Say",
            "subtitle": "Trusted by businesses worldwide",
            "items": [
                {
                    "title": "Sarah Johnson, CEO",
                    "description": "Working with this team transformed our business. Highly recommended!",
                    "icon": "⭐",
                },
                {
                    "title": "Michael Chen, Founder",
                    "description": "Outstanding service and exceptional results. Could not be happier.",
                    "icon": "⭐",
                },
            ],
        },
        "cta": {
            "type": "cta",
            "title": "Ready to Get Started?",
            "subtitle": "Let's work together to achieve your goals",
            "content": "Join hundreds of satisfied clients and experience the difference.",
            "cta": {"text": "Contact Us Today", "action": "contact"},
        },
        "contact": {
            "type": "contact",
            "title": "Get in Touch",
            "content": "We'd love to hear from you. Reach out and let's start a conversation.",
            "items": [
                {"title": "Email", "description": "hello@example.com", "icon": "📧"},
                {"title": "Phone", "description": "+1 (555) 123-4567", "icon": "📱"},
            ],
        },
    }
    return SectionContent.model_validate(defaults.get(section_type, defaults["about"]))


def fallback_seo(brand_name: Optional[str] = None, industry: Optional[str] = None) -> SeoMeta:
    return SeoMeta(
        title=f"{brand_name} | Professional Portfolio" if brand_name else "Professional Portfolio",
        description="Explore my work, skills, and experience. Get in touch to discuss your next project.",
        keywords=["portfolio", "professional", industry or "developer", "projects", "hire"],
        og_title=f"{brand_name} | Portfolio" if brand_name else "Professional Portfolio",
        og_description="Check out my latest work and projects.",
    )


def default_pairings() -> List[FontPairing]:
    return [_with_url(FontPairing.model_validate(p)) for p in DEFAULT_PAIRINGS]


def _with_url(pairing: FontPairing) -> FontPairing:
    pairing.google_fonts_url = google_fonts_url(pairing.heading, pairing.body)
    return pairing


class AssetGenerator:
    """Single-purpose generations the editor asks for outside the main pipeline.

    Section copy and font pairings always answer, falling back to canned
    values on any failure. SEO and palette requests fail loudly only
    when no API key is configured.
    """

    def __init__(self, gateway: Any) -> None:
        self.gateway = gateway

    async def section(
        self,
        section_type: str,
        industry: Optional[str] = None,
        business_name: Optional[str] = None,
        tone: Optional[str] = None,
        context: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            data = await self.gateway.complete_json(
                SECTION_SYSTEM,
                build_section_prompt(section_type, industry, business_name, tone, context),
                context="section generation",
                temperature=SECTION_TEMPERATURE,
                max_tokens=SECTION_MAX_TOKENS,
            )
            data.setdefault("type", section_type)
            section = SectionContent.model_validate(data)
        except (CompletionError, MalformedResponseError, ValidationError) as exc:
            log.warning("assets.section: falling back after %s: %s", type(exc).__name__, exc)
            return {"section": default_section(section_type, business_name, industry).to_dict(), "fallback": True}
        log.info("assets.section: type=%s items=%d", section.type, len(section.items or []))
        return {"section": section.to_dict()}

    async def seo(self, content: str, industry: Optional[str] = None, brand_name: Optional[str] = None) -> Dict[str, Any]:
        try:
            data = await self.gateway.complete_json(
                SEO_SYSTEM,
                build_seo_prompt(content, brand_name, industry),
                context="seo generation",
                temperature=SEO_TEMPERATURE,
                max_tokens=SEO_MAX_TOKENS,
            )
            seo = SeoMeta.model_validate(data)
        except ConfigurationError:
            raise
        except (CompletionError, MalformedResponseError, ValidationError) as exc:
            log.warning("assets.seo: falling back after %s: %s", type(exc).__name__, exc)
            return {
                "seo": fallback_seo(brand_name, industry).to_dict(),
                "fallback": True,
                "message": f"Using fallback SEO due to: {exc}",
            }
        log.info("assets.seo: keywords=%d", len(seo.keywords))
        return {"seo": seo.to_dict()}

    async def palette(
        self,
        industry: Optional[str] = None,
        mood: Optional[str] = None,
        brand_name: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            data = await self.gateway.complete_json(
                PALETTE_SYSTEM,
                build_palette_prompt(industry, mood, brand_name),
                context="palette generation",
                temperature=PALETTE_TEMPERATURE,
                max_tokens=PALETTE_MAX_TOKENS,
            )
            palette = Palette.model_validate(data)
        except ConfigurationError:
            raise
        except (CompletionError, MalformedResponseError, ValidationError) as exc:
            log.warning("assets.palette: falling back after %s: %s", type(exc).__name__, exc)
            return {
                "palette": dict(FALLBACK_PALETTE),
                "fallback": True,
                "message": f"Using fallback palette due to: {exc}",
            }
        log.info("assets.palette: name=%r primary=%s", palette.name, palette.primary)
        return {"palette": palette.to_dict()}

    async def fonts(
        self,
        industry: Optional[str] = None,
        mood: Optional[str] = None,
        current_fonts: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            data = await self.gateway.complete_json(
                FONTS_SYSTEM,
                build_fonts_prompt(industry, mood, current_fonts),
                context="font suggestions",
                temperature=FONTS_TEMPERATURE,
                max_tokens=FONTS_MAX_TOKENS,
            )
        except (CompletionError, MalformedResponseError) as exc:
            log.warning("assets.fonts: falling back after %s: %s", type(exc).__name__, exc)
            return {"pairings": [p.to_dict() for p in default_pairings()], "fallback": True}

        pairings: List[FontPairing] = []
        raw = data.get("pairings")
        for idx, item in enumerate(raw if isinstance(raw, list) else []):
            try:
                pairings.append(_with_url(FontPairing.model_validate(item)))
            except ValidationError as exc:
                log.info("assets.fonts: dropping pairing idx=%d: %s", idx, exc.errors()[0]["msg"])
        if not pairings:
            log.warning("assets.fonts: no usable pairings in response; using defaults")
            return {"pairings": [p.to_dict() for p in default_pairings()], "fallback": True}
        return {"pairings": [p.to_dict() for p in pairings[:MAX_PAIRINGS]]}
