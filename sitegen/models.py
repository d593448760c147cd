from __future__ import annotations

import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SiteType = Literal["portfolio", "business", "resume", "landing", "restaurant", "ecommerce", "saas"]
SITE_TYPES = ("portfolio", "business", "resume", "landing", "restaurant", "ecommerce", "saas")

COLOR_FIELDS = ("primary", "secondary", "accent", "background", "backgroundAlt", "text", "textSecondary")
FONT_FIELDS = ("heading", "body", "headingSizes")
HEADING_LEVELS = ("h1", "h2", "h3")

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def parse_hex(value: str) -> Optional[tuple]:
    """``#rgb`` or ``#rrggbb`` to an (r, g, b) tuple of ints; None if invalid."""
    m = _HEX_RE.match((value or "").strip())
    if not m:
        return None
    digits = m.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i : i + 2], 16) for i in (0, 2, 4))


def normalize_hex(value: Any) -> Optional[str]:
    """Trimmed hex colour with a leading ``#``; None when not a hex colour."""
    if not isinstance(value, str) or parse_hex(value) is None:
        return None
    s = value.strip()
    return s if s.startswith("#") else f"#{s}"


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return []


def _dedupe(items: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


class RequirementRecord(_Model):
    industry: str = "Business"
    site_type: SiteType = Field("business", alias="siteType")
    tone: str = "professional"
    features: List[str] = Field(default_factory=list)
    site_name: str = Field("", alias="siteName")
    description: str = ""
    primary_color: Optional[str] = Field(None, alias="primaryColor")

    @field_validator("site_type", mode="before")
    @classmethod
    def _coerce_site_type(cls, v: Any) -> str:
        s = str(v or "").strip().lower()
        return s if s in SITE_TYPES else "business"

    @field_validator("industry", "tone", "description", "site_name", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("features", mode="before")
    @classmethod
    def _coerce_features(cls, v: Any) -> List[str]:
        return _str_list(v)

    @field_validator("primary_color", mode="before")
    @classmethod
    def _blank_color(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s if s and s.lower() not in {"null", "none"} else None

    @model_validator(mode="after")
    def _fill_required(self) -> "RequirementRecord":
        if not self.industry:
            self.industry = "Business"
        if not self.tone:
            self.tone = "professional"
        if not self.site_name:
            self.site_name = f"My {self.industry}"
        return self


class ContentDocument(_Model):
    """Typed view of synthesized content; unknown sections are kept as extras."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    hero: Dict[str, Any]
    about: Optional[Dict[str, Any]] = None
    services: Optional[Dict[str, Any]] = None
    testimonials: Optional[Dict[str, Any]] = None
    projects: Optional[List[Dict[str, Any]]] = None
    contact: Dict[str, Any]
    social: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ColorScheme(_Model):
    primary: str
    secondary: str
    accent: str
    background: str
    background_alt: str = Field(alias="backgroundAlt")
    text: str
    text_secondary: str = Field(alias="textSecondary")

    @field_validator("*", mode="before")
    @classmethod
    def _hex(cls, v: Any) -> str:
        hex_value = normalize_hex(v)
        if hex_value is None:
            raise ValueError(f"not a hex colour: {v!r}")
        return hex_value


class HeadingSizes(_Model):
    h1: str = "3rem"
    h2: str = "2.25rem"
    h3: str = "1.5rem"


class FontScheme(_Model):
    heading: str
    body: str
    heading_sizes: HeadingSizes = Field(default_factory=HeadingSizes, alias="headingSizes")


class DesignSystem(_Model):
    colors: ColorScheme
    fonts: FontScheme


class SiteDocument(_Model):
    template_id: str = Field(alias="templateId")
    title: str = ""
    content: Dict[str, Any] = Field(default_factory=dict)
    design: DesignSystem
    section_order: List[str] = Field(default_factory=list, alias="sectionOrder")
    layout: Dict[str, Any] = Field(default_factory=dict)
    animations: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("section_order", mode="before")
    @classmethod
    def _unique_order(cls, v: Any) -> List[str]:
        return _dedupe(_str_list(v))

    def to_payload(self) -> Dict[str, Any]:
        data = self.to_dict()
        for key in ("layout", "animations"):
            if not data.get(key):
                data.pop(key, None)
        return data


class LayoutChange(_Model):
    section_order: Optional[List[str]] = Field(None, alias="sectionOrder")
    spacing: Optional[str] = None
    alignment: Optional[str] = None

    @field_validator("section_order", mode="before")
    @classmethod
    def _order(cls, v: Any) -> Optional[List[str]]:
        if v is None:
            return None
        return _dedupe(_str_list(v))


class ComponentChange(_Model):
    add: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)

    @field_validator("add", "remove", mode="before")
    @classmethod
    def _ids(cls, v: Any) -> List[str]:
        return _str_list(v)


class ChangeSet(_Model):
    colors: Dict[str, str] = Field(default_factory=dict)
    fonts: Dict[str, Any] = Field(default_factory=dict)
    content: Dict[str, Any] = Field(default_factory=dict)
    layout: LayoutChange = Field(default_factory=LayoutChange)
    components: ComponentChange = Field(default_factory=ComponentChange)
    animations: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("colors", mode="before")
    @classmethod
    def _known_colors(cls, v: Any) -> Dict[str, str]:
        if not isinstance(v, dict):
            return {}
        colors = {k: normalize_hex(val) for k, val in v.items() if k in COLOR_FIELDS}
        return {k: val for k, val in colors.items() if val}

    @field_validator("fonts", mode="before")
    @classmethod
    def _known_fonts(cls, v: Any) -> Dict[str, Any]:
        if not isinstance(v, dict):
            return {}
        fonts: Dict[str, Any] = {}
        for key in ("heading", "body"):
            name = v.get(key)
            if isinstance(name, str) and name.strip():
                fonts[key] = name.strip()
        sizes = v.get("headingSizes")
        if isinstance(sizes, dict):
            # Bare numbers from the model are pixel sizes
            kept = {}
            for level in HEADING_LEVELS:
                size = sizes.get(level)
                if isinstance(size, (int, float)) and not isinstance(size, bool) and size > 0:
                    kept[level] = f"{size:g}px"
                elif isinstance(size, str) and size.strip():
                    kept[level] = size.strip()
            if kept:
                fonts["headingSizes"] = kept
        return fonts

    @field_validator("content", "animations", mode="before")
    @classmethod
    def _mapping(cls, v: Any) -> Dict[str, Any]:
        return v if isinstance(v, dict) else {}

    @field_validator("layout", "components", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v if isinstance(v, dict) or isinstance(v, BaseModel) else {}

    def is_empty(self) -> bool:
        return not (
            self.colors
            or self.fonts
            or self.content
            or self.animations
            or self.components.add
            or self.components.remove
            or self.layout.section_order is not None
            or self.layout.spacing
            or self.layout.alignment
        )


class GenerationMeta(_Model):
    generation_time_ms: int = Field(0, alias="generationTimeMs")
    cached: bool = False
    model: str = ""


class GenerationResult(_Model):
    success: bool = True
    site: SiteDocument
    analysis: RequirementRecord
    meta: GenerationMeta

    def to_payload(self) -> Dict[str, Any]:
        data = self.to_dict()
        data["site"] = self.site.to_payload()
        return data


class MutationResult(_Model):
    site: SiteDocument
    changes: ChangeSet
    explanation: str = ""
    additional_suggestions: List[str] = Field(default_factory=list, alias="additionalSuggestions")

    @field_validator("additional_suggestions", mode="before")
    @classmethod
    def _suggestions(cls, v: Any) -> List[str]:
        return _str_list(v)


class SuggestionAction(_Model):
    type: str
    params: Dict[str, Any] = Field(default_factory=dict)


class SectionItem(_Model):
    title: str
    description: str = ""
    icon: Optional[str] = None


class SectionCta(_Model):
    text: str
    action: str = "contact"


class SectionContent(_Model):
    """One regenerated section; ``items`` entries without a title are dropped."""

    type: str
    title: str
    subtitle: Optional[str] = None
    content: Optional[str] = None
    items: Optional[List[SectionItem]] = None
    cta: Optional[SectionCta] = None

    @field_validator("title")
    @classmethod
    def _title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("section title is empty")
        return v.strip()

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v: Any) -> Optional[List[Any]]:
        if v is None:
            return None
        if not isinstance(v, list):
            return []
        return [i for i in v if isinstance(i, dict) and str(i.get("title") or "").strip()]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class SeoMeta(_Model):
    title: str
    description: str
    keywords: List[str]
    og_title: str = Field("", alias="ogTitle")
    og_description: str = Field("", alias="ogDescription")

    @field_validator("keywords", mode="before")
    @classmethod
    def _keywords(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = v.split(",")
        return [k.strip() for k in _str_list(v)]

    @model_validator(mode="after")
    def _complete(self) -> "SeoMeta":
        if not self.title.strip() or not self.description.strip() or not self.keywords:
            raise ValueError("SEO data needs a title, a description and keywords")
        if not self.og_title:
            self.og_title = self.title
        if not self.og_description:
            self.og_description = self.description
        return self


class Palette(_Model):
    primary: str
    secondary: str
    accent: str
    background: str
    text: str
    name: str = ""
    description: str = ""

    @field_validator("primary", "secondary", "accent", "background", "text", mode="before")
    @classmethod
    def _hex(cls, v: Any) -> str:
        hex_value = normalize_hex(v)
        if hex_value is None:
            raise ValueError(f"not a hex colour: {v!r}")
        return hex_value


class FontPairing(_Model):
    id: str = ""
    name: str = ""
    heading: str
    body: str
    description: str = ""
    vibe: str = ""
    best_for: List[str] = Field(default_factory=list, alias="bestFor")
    google_fonts_url: str = Field("", alias="googleFontsUrl")

    @field_validator("heading", "body")
    @classmethod
    def _font(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("font name is empty")
        return v.strip()

    @field_validator("best_for", mode="before")
    @classmethod
    def _uses(cls, v: Any) -> List[str]:
        return _str_list(v)
