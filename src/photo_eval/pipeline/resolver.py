"""Turn whatever the model returned into an EvaluationResult."""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Mapping

from photo_eval.llm_client.responses import StructuredOutput, TextOutput
from photo_eval.pipeline.models import (
    MAX_LIST_ITEMS,
    SEVERITIES,
    EvaluationResult,
    Finding,
    FindingFlags,
)

logger = logging.getLogger(__name__)

UNSTRUCTURED_FINDING = Finding(
    label="Unstructured model output",
    severity="note",
    detail="Model response could not be parsed as schema JSON.",
    confidence_base=60,
    evidence=(),
    risk_cues=(),
    flags=FindingFlags(low_image_quality=False),
)


def extract_first_json(text: str) -> Any | None:
    """Parse the first balanced ``{...}`` span in ``text``.

    Braces inside JSON strings are not special-cased; any span that fails to
    parse counts as no JSON at all.
    """
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                try:
                    return json.loads(text[start : index + 1])
                except ValueError:
                    return None
    return None


def _unwrap(raw: Any) -> Any:
    if isinstance(raw, StructuredOutput):
        raw = raw.data
    elif isinstance(raw, TextOutput):
        raw = raw.text
    if isinstance(raw, Mapping) and "response" in raw and raw["response"] is not None:
        return raw["response"]
    return raw


def parse_payload(raw: Any) -> Any | None:
    payload = _unwrap(raw)
    if payload is None:
        return None
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8", errors="replace")
    if not isinstance(payload, str):
        return payload
    try:
        return json.loads(payload)
    except ValueError:
        return extract_first_json(payload)


def _string_list(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


def _optional_flag(flags: Mapping[str, Any], key: str) -> bool | None:
    value = flags.get(key)
    return value if isinstance(value, bool) else None


def _confidence(value: Any) -> float | int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _coerce_finding(item: Mapping[str, Any]) -> Finding:
    severity = str(item.get("severity") or "note").lower()
    flags = item.get("flags") if isinstance(item.get("flags"), Mapping) else {}
    return Finding(
        label=str(item.get("label") or "Finding"),
        severity=severity if severity in SEVERITIES else "note",
        detail=str(item.get("detail") or ""),
        confidence_base=_confidence(item.get("confidenceBase")),
        evidence=_string_list(item.get("evidence"))[:MAX_LIST_ITEMS],
        risk_cues=_string_list(item.get("riskCues"))[:MAX_LIST_ITEMS],
        flags=FindingFlags(
            code_sensitive=_optional_flag(flags, "codeSensitive"),
            needs_alternate_angle=_optional_flag(flags, "needsAlternateAngle"),
            low_image_quality=_optional_flag(flags, "lowImageQuality"),
        ),
    )


def _text_or(value: Any, default: str) -> str:
    if value is None or isinstance(value, (dict, list)):
        return default
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else default


def resolve(raw: Any, fallback_id: str, fallback_area: str | None, model: str) -> EvaluationResult:
    """Build a result that always carries id/area/model and the three lists."""
    area_default = fallback_area or "unspecified"
    parsed = parse_payload(raw)

    if not isinstance(parsed, dict) or parsed.get("findings") is None:
        logger.warning("Model %s output was not schema JSON; using fallback finding", model)
        return EvaluationResult(
            id=fallback_id,
            area=area_default,
            model=model,
            findings=(UNSTRUCTURED_FINDING,),
        )

    raw_findings = parsed.get("findings")
    findings = tuple(
        _coerce_finding(item)
        for item in (raw_findings if isinstance(raw_findings, list) else [])
        if isinstance(item, Mapping)
    )
    return EvaluationResult(
        id=_text_or(parsed.get("id"), fallback_id),
        area=_text_or(parsed.get("area"), area_default),
        model=_text_or(parsed.get("model"), model),
        findings=findings,
        quick_checks=_string_list(parsed.get("quickChecks")),
        cautions=_string_list(parsed.get("cautions")),
    )
