from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sitegen.models import parse_hex
from sitegen.llm_prompts import SUGGESTIONS_SYSTEM, build_suggestions_prompt

log = logging.getLogger(__name__)

WCAG_AA_NORMAL = 4.5
DECORATIVE_FONTS = ("Comic Sans", "Papyrus", "Brush Script", "Curlz")
SUGGESTION_TEMPERATURE = 0.7
SUGGESTION_MAX_TOKENS = 1500
ACTION_TYPES = (
    "apply-color",
    "apply-font",
    "reorder-sections",
    "add-section",
    "update-spacing",
    "update-content",
)


def _channel(c: int) -> float:
    v = c / 255
    return v / 12.92 if v <= 0.03928 else ((v + 0.055) / 1.055) ** 2.4


def relative_luminance(hex_color: str) -> float:
    rgb = parse_hex(hex_color)
    if rgb is None:
        raise ValueError(f"not a hex colour: {hex_color!r}")
    r, g, b = (_channel(c) for c in rgb)
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(a: str, b: str) -> float:
    la = relative_luminance(a)
    lb = relative_luminance(b)
    return (max(la, lb) + 0.05) / (min(la, lb) + 0.05)


def check_color_contrast(colors: Mapping[str, Any]) -> bool:
    """True when text on background falls below WCAG AA (4.5:1)."""
    text = colors.get("text")
    background = colors.get("background")
    if not text or not background:
        return False
    try:
        return contrast_ratio(str(text), str(background)) < WCAG_AA_NORMAL
    except ValueError:
        return False


def check_font_readability(fonts: Mapping[str, Any]) -> bool:
    heading = fonts.get("heading")
    body = fonts.get("body")
    if not heading or not body:
        return True
    if heading == body:
        return True
    return any(bad in str(heading) or bad in str(body) for bad in DECORATIVE_FONTS)


def check_section_order(sections: Sequence[str]) -> bool:
    if not sections:
        return False
    if sections[0] != "hero":
        return True
    if "contact" in sections and list(sections).index("contact") < len(sections) - 2:
        return True
    return False


def suggestion_snapshot(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Reduced view of a site for the suggestions prompt.

    Accepts either a site document (``templateId``/``design``/``content``)
    or the editor's flat state (``template``/``colors``/``fonts`` with
    sections at the top level).
    """
    design = data.get("design") or {}
    content = data.get("content") if isinstance(data.get("content"), Mapping) else data
    hero = content.get("hero") if isinstance(content.get("hero"), Mapping) else {}
    about = content.get("about") if isinstance(content.get("about"), Mapping) else {}
    return {
        "template": data.get("templateId") or data.get("template") or "modern-portfolio",
        "colors": dict(design.get("colors") or data.get("colors") or {}),
        "fonts": dict(design.get("fonts") or data.get("fonts") or {}),
        "sections": list(data.get("sectionOrder") or []),
        "heroTitle": hero.get("title") or "",
        "aboutTitle": about.get("title") or "",
    }


def audit(snapshot: Mapping[str, Any]) -> Dict[str, Any]:
    colors = snapshot.get("colors") or {}
    findings: Dict[str, Any] = {
        "lowContrast": check_color_contrast(colors),
        "fontReadabilityIssue": check_font_readability(snapshot.get("fonts") or {}),
        "sectionOrderIssue": check_section_order(snapshot.get("sections") or []),
        "contrastRatio": None,
    }
    text, background = colors.get("text"), colors.get("background")
    if parse_hex(str(text or "")) and parse_hex(str(background or "")):
        findings["contrastRatio"] = round(contrast_ratio(text, background), 2)
    return findings


def _clean_suggestions(raw: Any) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if not isinstance(raw, list):
        return out
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        action = item.get("action")
        if not isinstance(action, dict) or action.get("type") not in ACTION_TYPES:
            log.info("audit.suggest: dropping suggestion without a usable action idx=%d", idx)
            continue
        params = action.get("params") if isinstance(action.get("params"), dict) else {}
        out.append(
            {
                "id": str(item.get("id") or f"suggestion-{idx + 1}"),
                "type": str(item.get("type") or "general"),
                "priority": item.get("priority") if item.get("priority") in ("high", "medium", "low") else "medium",
                "title": str(item.get("title") or ""),
                "description": str(item.get("description") or ""),
                "action": {"type": action["type"], "params": params},
                "expectedImpact": str(item.get("expectedImpact") or ""),
            }
        )
    return out


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


class SuggestionGenerator:
    """Runs the local design audit and asks the model for actionable fixes."""

    def __init__(self, gateway: Any) -> None:
        self.gateway = gateway

    async def suggest(self, data: Mapping[str, Any], analytics: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        snapshot = suggestion_snapshot(data)
        findings = audit(snapshot)
        log.info(
            "audit.suggest: contrast=%s fonts=%s order=%s",
            findings["lowContrast"],
            findings["fontReadabilityIssue"],
            findings["sectionOrderIssue"],
        )
        prompt = build_suggestions_prompt(
            snapshot,
            analytics,
            findings["lowContrast"],
            findings["fontReadabilityIssue"],
            findings["sectionOrderIssue"],
        )
        result = await self.gateway.complete_json(
            SUGGESTIONS_SYSTEM,
            prompt,
            context="smart suggestions",
            temperature=SUGGESTION_TEMPERATURE,
            max_tokens=SUGGESTION_MAX_TOKENS,
        )
        try:
            score = int(result.get("overallScore"))
        except (TypeError, ValueError):
            score = None
        return {
            "suggestions": _clean_suggestions(result.get("suggestions")),
            "overallScore": score,
            "strengths": _strings(result.get("strengths")),
            "areasToImprove": _strings(result.get("areasToImprove")),
            "audit": findings,
        }
