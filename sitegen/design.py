from __future__ import annotations

import colorsys
import logging
from typing import Any, Dict, List, Mapping, Optional

from sitegen.models import ColorScheme, DesignSystem, FontScheme, HeadingSizes, RequirementRecord, parse_hex

log = logging.getLogger(__name__)

TEMPLATES = ("modern-portfolio", "business-card", "creative-resume", "restaurant-elegant")
DEFAULT_TEMPLATE = "modern-portfolio"

TEMPLATE_BY_SITE_TYPE: Dict[str, str] = {
    "portfolio": "modern-portfolio",
    "business": "business-card",
    "resume": "creative-resume",
    "landing": "business-card",
    "restaurant": "business-card",
    "ecommerce": "modern-portfolio",
    "saas": "modern-portfolio",
}

_NEUTRALS = {
    "background": "#FFFFFF",
    "backgroundAlt": "#F9FAFB",
    "text": "#1F2937",
    "textSecondary": "#6B7280",
}

PALETTES: Dict[str, Dict[str, str]] = {
    "restaurant": dict(primary="#C41E3A", secondary="#FFF8DC", accent="#228B22", **_NEUTRALS),
    "technology": dict(primary="#3B82F6", secondary="#8B5CF6", accent="#10B981", **_NEUTRALS),
    "creative": dict(primary="#EC4899", secondary="#F59E0B", accent="#8B5CF6", **_NEUTRALS),
    "professional": dict(primary="#1E40AF", secondary="#64748B", accent="#0EA5E9", **_NEUTRALS),
    "health": dict(primary="#10B981", secondary="#059669", accent="#34D399", **_NEUTRALS),
}

# First match wins; anything else gets the professional palette
_INDUSTRY_PALETTE_RULES = (
    (("restaurant", "food"), "restaurant"),
    (("tech", "software"), "technology"),
    (("creative", "design", "art"), "creative"),
    (("health", "fitness", "medical"), "health"),
)

FONT_PAIRINGS: Dict[str, tuple] = {
    "professional": ("Inter", "Inter"),
    "creative": ("Playfair Display", "Open Sans"),
    "casual": ("Poppins", "Roboto"),
    "modern": ("Montserrat", "Inter"),
}


def select_template(record: RequirementRecord, override: Optional[str] = None) -> str:
    if override:
        if override in TEMPLATES:
            log.info("design.template: explicit template=%s", override)
            return override
        log.warning("design.template: ignoring unknown template override=%r", override)
    template_id = TEMPLATE_BY_SITE_TYPE.get(record.site_type, DEFAULT_TEMPLATE)
    log.info("design.template: template=%s site_type=%s", template_id, record.site_type)
    return template_id


def adjust_color(hex_color: str, percent: float) -> str:
    """Shift HSL lightness by ``percent`` points (negative darkens).

    Unparsable input is returned unchanged.
    """
    rgb = parse_hex(hex_color)
    if rgb is None:
        return hex_color
    h, l, s = colorsys.rgb_to_hls(*(c / 255.0 for c in rgb))
    l = min(1.0, max(0.0, l + percent / 100.0))
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return "#{:02X}{:02X}{:02X}".format(round(r * 255), round(g * 255), round(b * 255))


def custom_palette(primary: str) -> Dict[str, str]:
    return dict(
        primary=primary,
        secondary=adjust_color(primary, -20),
        accent=adjust_color(primary, 30),
        **_NEUTRALS,
    )


def industry_palette(industry: str) -> Dict[str, str]:
    lowered = (industry or "").lower()
    for needles, palette in _INDUSTRY_PALETTE_RULES:
        if any(n in lowered for n in needles):
            return dict(PALETTES[palette])
    return dict(PALETTES["professional"])


def font_scheme(tone: str) -> FontScheme:
    heading, body = FONT_PAIRINGS.get((tone or "").lower(), FONT_PAIRINGS["professional"])
    return FontScheme(heading=heading, body=body, heading_sizes=HeadingSizes())


def generate_design_system(record: RequirementRecord) -> DesignSystem:
    if record.primary_color and parse_hex(record.primary_color):
        colors = custom_palette(record.primary_color)
    else:
        if record.primary_color:
            log.warning("design.system: ignoring non-hex primary=%r", record.primary_color)
        colors = industry_palette(record.industry)
    log.info("design.system: industry=%s tone=%s primary=%s", record.industry, record.tone, colors["primary"])
    return DesignSystem(colors=ColorScheme.model_validate(colors), fonts=font_scheme(record.tone))


def _has_items(section: Any) -> bool:
    return isinstance(section, Mapping) and bool(section.get("items"))


def select_sections(content: Mapping[str, Any]) -> List[str]:
    """Section order derived from what the content actually contains."""
    order: List[str] = []
    if content.get("hero"):
        order.append("hero")
    if content.get("about"):
        order.append("about")
    if _has_items(content.get("services")):
        order.append("services")
    if isinstance(content.get("projects"), list) and content["projects"]:
        order.append("projects")
    if _has_items(content.get("testimonials")):
        order.append("testimonials")
    if _has_items(content.get("menu")):
        order.append("menu")
    gallery = content.get("gallery")
    if isinstance(gallery, Mapping) and gallery.get("images"):
        order.append("gallery")
    if content.get("reservations"):
        order.append("reservations")
    if content.get("contact"):
        order.append("contact")
    if content.get("social"):
        order.append("social")
    log.info("design.sections: order=%s", ",".join(order))
    return order
