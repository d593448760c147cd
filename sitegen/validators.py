from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

from jsonschema import Draft202012Validator
from pydantic import ValidationError

from sitegen.models import SiteDocument

log = logging.getLogger(__name__)

SITE_SCHEMA_PATH = Path(
    os.getenv("SITE_SCHEMA_PATH", "")
    or Path(__file__).resolve().parent.parent / "schemas" / "site_schema.json"
)


@lru_cache(maxsize=1)
def _site_validator() -> Draft202012Validator:
    schema = json.loads(SITE_SCHEMA_PATH.read_text(encoding="utf-8"))
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema)


def _pydantic_errors(site: Dict[str, Any]) -> List[Dict[str, str]]:
    try:
        SiteDocument.model_validate(site)
    except ValidationError as ve:
        return [
            {
                "path": ".".join(str(p) for p in e.get("loc", ())) or "(root)",
                "message": e.get("msg", "invalid"),
            }
            for e in ve.errors()
        ]
    return []


def collect_errors(site: Any) -> List[Dict[str, str]]:
    """
    Return a list of {"path": "...", "message": "..."} error dicts for a
    site document. JSON Schema findings come first; typed-model errors
    not already reported for the same path follow.
    """
    if not isinstance(site, dict):
        return [{"path": "(root)", "message": "site must be an object"}]

    errors: List[Dict[str, str]] = []
    for err in sorted(_site_validator().iter_errors(site), key=lambda e: list(map(str, e.path))):
        errors.append({"path": ".".join(str(p) for p in err.path) or "(root)", "message": err.message})

    seen = {e["path"] for e in errors}
    for err in _pydantic_errors(site):
        if err["path"] not in seen:
            errors.append(err)
    if errors:
        log.info("validators.site: %d error(s) first=%s", len(errors), errors[0]["path"])
    return errors


def validate_site(site: Dict[str, Any]) -> None:
    """
    Raise ValueError if there are any errors; otherwise return None.
    The HTTP layer turns this into 422 with the list from collect_errors().
    """
    errs = collect_errors(site)
    if errs:
        raise ValueError("site failed validation")
