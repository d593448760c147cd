from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from sitegen.design import PALETTES, font_scheme
from sitegen.llm_parsing import MalformedResponseError
from sitegen.llm_prompts import COMMAND_SYSTEM, build_command_prompt
from sitegen.models import (
    ChangeSet,
    ColorScheme,
    ComponentChange,
    DesignSystem,
    FontScheme,
    LayoutChange,
    MutationResult,
    SiteDocument,
    SuggestionAction,
)

log = logging.getLogger(__name__)

COMMAND_TEMPERATURE = 0.7
COMMAND_MAX_TOKENS = 1000

PRESENCE_SECTIONS = ("hero", "about", "services", "projects", "testimonials", "contact")
CHANGE_KEYS = ("colors", "fonts", "content", "layout", "components", "animations")
_EDITOR_META_KEYS = {"template", "templateId", "title", "colors", "fonts", "sectionOrder"}


def site_from_editor_state(
    current_data: Optional[Mapping[str, Any]],
    current_colors: Optional[Mapping[str, Any]] = None,
    current_fonts: Optional[Mapping[str, Any]] = None,
    current_order: Optional[List[str]] = None,
) -> SiteDocument:
    """Build a SiteDocument from the editor's loose state.

    Missing colour or font fields are filled from the professional
    defaults so the result always carries a complete design system.
    """
    data = dict(current_data or {})
    content = {k: copy.deepcopy(v) for k, v in data.items() if k not in _EDITOR_META_KEYS}
    colors = dict(PALETTES["professional"])
    colors.update({k: v for k, v in (current_colors or {}).items() if v})
    fonts = font_scheme("professional").to_dict()
    fonts.update({k: v for k, v in (current_fonts or {}).items() if v})
    order = list(current_order or data.get("sectionOrder") or [k for k in content if content[k]])
    return SiteDocument(
        template_id=str(data.get("templateId") or data.get("template") or "modern-portfolio"),
        title=str(data.get("title") or ""),
        content=content,
        design=DesignSystem(colors=ColorScheme.model_validate(colors), fonts=FontScheme.model_validate(fonts)),
        section_order=order,
    )


def command_snapshot(site: SiteDocument) -> Dict[str, Any]:
    content = site.content
    hero = content.get("hero") if isinstance(content.get("hero"), dict) else {}
    about = content.get("about") if isinstance(content.get("about"), dict) else {}
    design = site.design.to_dict()
    return {
        "template": site.template_id,
        "sectionOrder": list(site.section_order),
        "colors": design["colors"],
        "fonts": {"heading": design["fonts"]["heading"], "body": design["fonts"]["body"]},
        "heroTitle": hero.get("title") or "",
        "aboutTitle": about.get("title") or "",
        "hasSections": {name: bool(content.get(name)) for name in PRESENCE_SECTIONS},
    }


def _merge_content(prior: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(prior)
    for section, override in overrides.items():
        current = merged.get(section)
        if isinstance(override, Mapping):
            if current is None:
                merged[section] = copy.deepcopy(dict(override))
            elif isinstance(current, dict):
                section_copy = dict(current)
                section_copy.update(copy.deepcopy(dict(override)))
                merged[section] = section_copy
            else:
                log.warning("mutation.merge: object override for non-object section=%s ignored", section)
        elif isinstance(override, list):
            if current is None or isinstance(current, list):
                merged[section] = copy.deepcopy(override)
            else:
                log.warning("mutation.merge: list override for object section=%s ignored", section)
        else:
            log.warning("mutation.merge: scalar override for section=%s ignored", section)
    # Nothing present before a merge may disappear after it
    for key, value in prior.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
    return merged


def _merge_fonts(prior: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    fonts = dict(prior)
    for key, value in overrides.items():
        if key == "headingSizes" and isinstance(value, Mapping):
            fonts["headingSizes"] = {**(prior.get("headingSizes") or {}), **value}
        elif isinstance(value, str):
            fonts[key] = value
    return fonts


def merge_changes(site: SiteDocument, changes: ChangeSet) -> SiteDocument:
    """Apply a ChangeSet to a site and return a new document.

    Neither argument is modified. Content sections are merged field by
    field, never replaced wholesale, and ``components.remove`` only
    takes ids out of the section order; their content stays.
    """
    design = site.design.to_dict()
    colors = {**design["colors"], **changes.colors}
    fonts = _merge_fonts(design["fonts"], changes.fonts)
    content = _merge_content(site.content, changes.content)

    order = list(site.section_order)
    if changes.layout.section_order is not None:
        order = list(changes.layout.section_order)
    for section in changes.components.add:
        if section not in order:
            order.append(section)
    if changes.components.remove:
        hidden = set(changes.components.remove)
        order = [s for s in order if s not in hidden]

    layout = dict(site.layout)
    if changes.layout.spacing:
        layout["spacing"] = changes.layout.spacing
    if changes.layout.alignment:
        layout["alignment"] = changes.layout.alignment

    return SiteDocument(
        template_id=site.template_id,
        title=site.title,
        content=content,
        design=DesignSystem(colors=ColorScheme.model_validate(colors), fonts=FontScheme.model_validate(fonts)),
        section_order=order,
        layout=layout,
        animations={**copy.deepcopy(site.animations), **copy.deepcopy(changes.animations)},
    )


def changes_for_action(action: SuggestionAction) -> ChangeSet:
    params = action.params
    if action.type == "apply-color":
        return ChangeSet(colors=params)
    if action.type == "apply-font":
        return ChangeSet(fonts=params)
    if action.type == "reorder-sections":
        order = params.get("order") or params.get("sectionOrder")
        if not order:
            raise ValueError("reorder-sections needs a non-empty order")
        return ChangeSet(layout=LayoutChange(section_order=order))
    if action.type == "add-section":
        section = params.get("section") or params.get("sections")
        if not section:
            raise ValueError("add-section needs a section id")
        return ChangeSet(components=ComponentChange(add=section))
    if action.type == "update-spacing":
        return ChangeSet(layout=LayoutChange(spacing=params.get("spacing")))
    if action.type == "update-content":
        section = params.get("section")
        fields = params.get("fields")
        if not section or not isinstance(fields, dict):
            raise ValueError("update-content needs a section and a fields object")
        return ChangeSet(content={section: fields})
    raise ValueError(f"Unknown suggestion action: {action.type}")


def apply_suggestion_action(site: SiteDocument, action: SuggestionAction) -> MutationResult:
    changes = changes_for_action(action)
    log.info("mutation.action: type=%s", action.type)
    return MutationResult(
        site=merge_changes(site, changes),
        changes=changes,
        explanation=f"Applied suggestion action {action.type}",
    )


class MutationEngine:
    """Turns a free-text edit command into a ChangeSet and merges it."""

    def __init__(self, gateway: Any) -> None:
        self.gateway = gateway

    async def parse(self, command: str, site: SiteDocument) -> Tuple[ChangeSet, str, List[str]]:
        prompt = build_command_prompt(command, command_snapshot(site))
        data = await self.gateway.complete_json(
            COMMAND_SYSTEM,
            prompt,
            context="natural command",
            temperature=COMMAND_TEMPERATURE,
            max_tokens=COMMAND_MAX_TOKENS,
        )
        raw = data.get("changes")
        if not isinstance(raw, dict):
            raw = {k: data[k] for k in CHANGE_KEYS if k in data}
        try:
            changes = ChangeSet.model_validate(raw)
        except ValidationError as exc:
            raise MalformedResponseError(f"Invalid change set in natural command: {exc}") from exc
        explanation = str(data.get("explanation") or "")
        suggestions = data.get("additionalSuggestions")
        return changes, explanation, suggestions if isinstance(suggestions, list) else []

    async def apply(self, command: str, site: SiteDocument) -> MutationResult:
        changes, explanation, suggestions = await self.parse(command, site)
        if changes.is_empty():
            log.info("mutation.apply: no-op command=%r", command[:100])
        log.info(
            "mutation.apply: colors=%d fonts=%d content=%d add=%s remove=%s",
            len(changes.colors),
            len(changes.fonts),
            len(changes.content),
            changes.components.add,
            changes.components.remove,
        )
        return MutationResult(
            site=merge_changes(site, changes),
            changes=changes,
            explanation=explanation,
            additional_suggestions=suggestions,
        )
