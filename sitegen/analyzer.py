from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from sitegen.cache import fingerprint
from sitegen.llm_client import CompletionError, ConfigurationError
from sitegen.llm_parsing import MalformedResponseError
from sitegen.llm_prompts import build_analysis_prompt, build_analysis_user_message
from sitegen.models import RequirementRecord

log = logging.getLogger(__name__)

ANALYSIS_TEMPERATURE = 0.7
ANALYSIS_MAX_TOKENS = 500


def analysis_options(options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """The subset of generation options the extractor looks at."""
    opts = options or {}
    return {k: opts.get(k) for k in ("industry", "tone", "colors") if opts.get(k) is not None}


def fallback_requirements(prompt: str, options: Optional[Dict[str, Any]] = None) -> RequirementRecord:
    opts = options or {}
    return RequirementRecord(
        industry=opts.get("industry") or "Business",
        site_type="business",
        tone=opts.get("tone") or "professional",
        features=[],
        site_name="My Website",
        description=(prompt or "")[:100],
        primary_color=opts.get("colors"),
    )


class RequirementExtractor:
    """Turns a free-text site description into a RequirementRecord."""

    def __init__(self, gateway: Any, cache: Any = None) -> None:
        self.gateway = gateway
        self.cache = cache

    async def extract(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> RequirementRecord:
        opts = analysis_options(options)
        key = fingerprint(prompt, opts)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                log.info("analyzer.extract: cache hit key=%s", key)
                return RequirementRecord.model_validate(cached)

        try:
            data = await self.gateway.complete_json(
                build_analysis_prompt(),
                build_analysis_user_message(prompt, opts),
                context="prompt analysis",
                temperature=ANALYSIS_TEMPERATURE,
                max_tokens=ANALYSIS_MAX_TOKENS,
            )
            if not str(data.get("tone") or "").strip() and opts.get("tone"):
                data["tone"] = opts["tone"]
            if not str(data.get("siteName") or "").strip():
                log.warning("analyzer.extract: model omitted siteName; synthesizing one")
            if opts.get("colors"):
                data["primaryColor"] = opts["colors"]
            record = RequirementRecord.model_validate(data)
        except ConfigurationError:
            raise
        except (CompletionError, MalformedResponseError, ValidationError) as exc:
            log.warning("analyzer.extract: falling back after %s: %s", type(exc).__name__, exc)
            return fallback_requirements(prompt, opts)

        log.info(
            "analyzer.extract: industry=%s site_type=%s site_name=%r features=%d",
            record.industry,
            record.site_type,
            record.site_name,
            len(record.features),
        )
        if self.cache is not None:
            self.cache.set(key, record.to_dict())
        return record
