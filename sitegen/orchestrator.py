from __future__ import annotations

import asyncio
import copy
import logging
import time
from typing import Any, Dict, Optional

from sitegen.analyzer import RequirementExtractor
from sitegen.cache import CacheRegistry, fingerprint
from sitegen.content import ContentSynthesizer
from sitegen.design import generate_design_system, select_sections, select_template
from sitegen.models import GenerationMeta, GenerationResult, SiteDocument

log = logging.getLogger(__name__)

OPTION_KEYS = ("industry", "tone", "colors", "features", "templateId")


def normalize_options(options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    opts = options or {}
    return {k: opts[k] for k in OPTION_KEYS if opts.get(k) not in (None, "", [])}


class SiteOrchestrator:
    """Runs the generation pipeline behind the whole-result cache.

    Concurrent calls for the same fingerprint share one in-flight task,
    so identical requests reach the model at most once.
    """

    def __init__(self, gateway: Any, caches: CacheRegistry) -> None:
        self.gateway = gateway
        self.caches = caches
        self.extractor = RequirementExtractor(gateway, caches.analysis)
        self.synthesizer = ContentSynthesizer(gateway, caches.content)
        self._inflight: Dict[str, asyncio.Future] = {}

    @property
    def model_name(self) -> str:
        return str(getattr(self.gateway, "model", "") or "")

    async def generate(self, prompt: str, options: Optional[Dict[str, Any]] = None) -> GenerationResult:
        started = time.perf_counter()
        opts = normalize_options(options)
        key = fingerprint(prompt, opts)

        cached = self.caches.site.get(key)
        if cached is not None:
            result = GenerationResult.model_validate(copy.deepcopy(cached))
            result.meta = GenerationMeta(
                generation_time_ms=_elapsed_ms(started),
                cached=True,
                model=result.meta.model,
            )
            log.info("orchestrator.generate: cache hit key=%s", key)
            return result

        pending = self._inflight.get(key)
        if pending is not None:
            log.info("orchestrator.generate: joining in-flight key=%s", key)
            payload = await asyncio.shield(pending)
            result = GenerationResult.model_validate(copy.deepcopy(payload))
            result.meta = GenerationMeta(
                generation_time_ms=_elapsed_ms(started),
                cached=True,
                model=result.meta.model,
            )
            return result

        task = asyncio.ensure_future(self._run(prompt, opts, key, started))
        self._inflight[key] = task
        task.add_done_callback(lambda done: self._forget(key, done))
        # Cancelling this caller must not cancel the run joiners are waiting on
        payload = await asyncio.shield(task)
        return GenerationResult.model_validate(copy.deepcopy(payload))

    def _forget(self, key: str, task: asyncio.Future) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def _run(self, prompt: str, opts: Dict[str, Any], key: str, started: float) -> Dict[str, Any]:
        log.info("orchestrator.generate: start key=%s options=%s", key, sorted(opts))
        record = await self.extractor.extract(prompt, opts)
        template_id = select_template(record, opts.get("templateId"))
        content = await self.synthesizer.synthesize(record, template_id)
        content_data = content.to_dict()
        design = generate_design_system(record)
        site = SiteDocument(
            template_id=template_id,
            title=record.site_name,
            content=content_data,
            design=design,
            section_order=select_sections(content_data),
        )
        result = GenerationResult(
            success=True,
            site=site,
            analysis=record,
            meta=GenerationMeta(
                generation_time_ms=_elapsed_ms(started),
                cached=False,
                model=self.model_name,
            ),
        )
        payload = result.to_dict()
        self.caches.site.set(key, payload)
        log.info(
            "orchestrator.generate: done key=%s template=%s sections=%d ms=%d",
            key,
            template_id,
            len(site.section_order),
            result.meta.generation_time_ms,
        )
        return payload


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
