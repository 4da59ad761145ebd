"""Map raw context-fetch payloads into EnrichmentContext.

The fetch collaborator is not consistent about nesting. Three shapes are
accepted:

1. A top-level object with the fields directly on it, extracted lawsuit
   details optionally nested under ``extraction``/``extract``/``json``.
2. A ``{"success": ..., "data": {...}}`` envelope around either of the others.
3. The flat scrape variant (``markdown``/``html``/``json``/``metadata``/
   ``screenshot``/``links``/``actions``), or a bare markdown/html string.

Mapping never raises. Anything unexpected is logged as a MappingError and the
best-effort partial context is returned.
"""

import json
from typing import Any

from specter.core.exceptions import MappingError
from specter.core.logging import get_logger
from specter.core.schemas_matches import EnrichmentContext

logger = get_logger(__name__)

EXTRACTION_KEYS = ("extraction", "extract", "json", "llm_extraction")
BODY_TEXT_KEYS = ("markdown", "text", "content", "html", "rawHtml")

# Context field -> accepted payload keys, first non-empty wins
LAWSUIT_FIELDS: dict[str, tuple[str, ...]] = {
    "payout": ("payout", "settlementAmount", "settlement_amount"),
    "participants": ("participants", "classSize", "class_size"),
    "deadline": ("deadline", "claimDeadline", "claim_deadline"),
    "law_firm": ("lawFirm", "law_firm", "lawFirms"),
    "eligibility": ("eligibility",),
    "case_number": ("caseNumber", "case_number"),
    "court_info": ("courtInfo", "court_info", "court"),
    "summary": ("summary",),
    "status": ("status",),
}


def _as_text(value: Any) -> str | None:
    """Coerce a payload value to a non-empty string, or None."""
    if value is None:
        return None
    if isinstance(value, str):
        return value if value.strip() else None
    if isinstance(value, bool):
        return "yes" if value else "no"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        items = [t for t in (_as_text(v) for v in value) if t]
        return ", ".join(items) if items else None
    if isinstance(value, dict):
        return json.dumps(value) if value else None
    return str(value)


def _first_text(sources: list[dict[str, Any]], keys: tuple[str, ...]) -> str | None:
    for source in sources:
        for key in keys:
            text = _as_text(source.get(key))
            if text:
                return text
    return None


def _as_dict(value: Any) -> dict[str, Any] | None:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return None
        return parsed if isinstance(parsed, dict) else None
    return None


def _unwrap_envelope(payload: dict[str, Any]) -> dict[str, Any]:
    data = payload.get("data")
    if "success" in payload and isinstance(data, dict):
        return data
    if isinstance(data, dict) and not any(k in payload for k in BODY_TEXT_KEYS):
        return data
    return payload


def _extract_links(body: dict[str, Any]) -> list[str] | None:
    raw_links = body.get("links")
    if not isinstance(raw_links, list):
        return None
    links = []
    for link in raw_links:
        if isinstance(link, str) and link:
            links.append(link)
        elif isinstance(link, dict) and isinstance(link.get("url"), str):
            links.append(link["url"])
    return links or None


def _extract_screenshot(body: dict[str, Any]) -> str | None:
    shot = _as_text(body.get("screenshot")) or _as_text(body.get("screenshotContentArea"))
    if shot:
        return shot
    actions = body.get("actions")
    if isinstance(actions, dict) and isinstance(actions.get("screenshots"), list):
        shots = [s for s in actions["screenshots"] if isinstance(s, str) and s]
        if shots:
            # Later screenshots target the main content area
            return shots[-1]
    return None


def _map_dict(payload: dict[str, Any]) -> EnrichmentContext:
    if payload.get("success") is False:
        return EnrichmentContext.failed(_as_text(payload.get("error")) or "Scrape unsuccessful")

    body = _unwrap_envelope(payload)

    error = _as_text(body.get("error")) or _as_text(payload.get("error"))
    if error:
        return EnrichmentContext.failed(error)

    extracted: dict[str, Any] = {}
    for key in EXTRACTION_KEYS:
        candidate = _as_dict(body.get(key))
        if candidate:
            extracted = candidate
            break

    metadata = body.get("metadata") if isinstance(body.get("metadata"), dict) else None
    sources = [extracted, body]

    fields: dict[str, Any] = {
        name: _first_text(sources, keys) for name, keys in LAWSUIT_FIELDS.items()
    }
    fields["title"] = _first_text(sources, ("title",)) or _first_text(
        [metadata or {}], ("title", "ogTitle")
    )
    fields["body_text"] = _first_text([body], BODY_TEXT_KEYS)

    return EnrichmentContext(
        **fields,
        screenshot_ref=_extract_screenshot(body),
        links=_extract_links(body),
        metadata=metadata or None,
        raw_payload=payload.get("raw", payload),
    )


def map_enrichment_payload(payload: Any) -> EnrichmentContext:
    """
    Map a raw fetch payload into an EnrichmentContext.

    Args:
        payload: Decoded JSON (dict) or a bare markdown/html string

    Returns:
        The mapped context; an error context for ``{error}`` payloads; a
        partial context carrying only ``raw_payload`` when the shape is not
        understood
    """
    try:
        if isinstance(payload, str):
            if not payload.strip():
                raise MappingError("Empty payload")
            return EnrichmentContext(body_text=payload, raw_payload=payload)
        if not isinstance(payload, dict):
            raise MappingError(f"Unexpected payload type: {type(payload).__name__}")
        return _map_dict(payload)
    except Exception as e:
        logger.warning(f"Best-effort mapping for enrichment payload: {e}")
        raw = payload if isinstance(payload, (dict, list, str, int, float)) else None
        return EnrichmentContext(raw_payload=raw)
