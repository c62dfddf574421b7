"""Structured output schema for the evaluation response."""

from __future__ import annotations

from photo_eval.pipeline.models import MAX_LIST_ITEMS, SEVERITIES


def finding_schema() -> dict:
    return {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "label": {"type": "string"},
            "severity": {"type": "string", "enum": list(SEVERITIES)},
            "detail": {"type": "string"},
            "confidenceBase": {"type": "integer", "minimum": 0, "maximum": 100},
            "evidence": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": 0,
                "maxItems": MAX_LIST_ITEMS,
            },
            "riskCues": {
                "type": "array",
                "items": {"type": "string"},
                "minItems": 0,
                "maxItems": MAX_LIST_ITEMS,
            },
            "flags": {
                "type": "object",
                "additionalProperties": False,
                "properties": {
                    "codeSensitive": {"type": "boolean"},
                    "needsAlternateAngle": {"type": "boolean"},
                    "lowImageQuality": {"type": "boolean"},
                },
            },
        },
        "required": ["label", "severity", "detail", "confidenceBase"],
    }


def evaluation_schema() -> dict:
    return {
        "name": "photo_evaluation",
        "schema": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "id": {"type": "string"},
                "area": {"type": "string"},
                "findings": {"type": "array", "items": finding_schema()},
                "quickChecks": {"type": "array", "items": {"type": "string"}},
                "cautions": {"type": "array", "items": {"type": "string"}},
                "model": {"type": "string"},
            },
            "required": ["id", "findings", "model"],
        },
        # optional fields above are not allowed under strict mode
        "strict": False,
    }
