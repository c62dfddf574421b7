"""Records passed between the evaluation pipeline stages."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Mapping

SEVERITIES = ("info", "note", "caution", "alert")
REVIEW_ACTIONS = ("manual_review", "auto_ok")
MAX_LIST_ITEMS = 5
DEFAULT_CONFIDENCE_BASE = 60


class ContextError(ValueError):
    """Raised when the user-supplied context cannot be interpreted."""


@dataclass(frozen=True)
class EvaluationContext:
    area: str | None = None
    bedrooms: int | None = None
    manufactured_home: bool | None = None
    notes: str | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "EvaluationContext":
        return cls(
            area=_optional_text(data, "area"),
            bedrooms=_optional_bedrooms(data.get("bedrooms")),
            manufactured_home=_optional_bool(data, "manufacturedHome"),
            notes=_optional_text(data, "notes"),
        )

    @classmethod
    def from_json(cls, raw: str | None) -> "EvaluationContext":
        """Parse the ``meta`` form field; an absent or blank field yields an empty context."""
        if raw is None or not raw.strip():
            return cls()
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ContextError(f"context is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ContextError("context must be a JSON object")
        return cls.from_mapping(data)


def _optional_text(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ContextError(f"'{key}' must be a string")
    return value.strip() or None


def _optional_bool(data: Mapping[str, Any], key: str) -> bool | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ContextError(f"'{key}' must be a boolean")
    return value


def _optional_bedrooms(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ContextError("'bedrooms' must be a non-negative integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 0:
        raise ContextError("'bedrooms' must be a non-negative integer")
    return value


@dataclass(frozen=True)
class FindingFlags:
    code_sensitive: bool | None = None
    needs_alternate_angle: bool | None = None
    low_image_quality: bool | None = None

    def to_dict(self) -> dict[str, bool]:
        out: dict[str, bool] = {}
        if self.code_sensitive is not None:
            out["codeSensitive"] = self.code_sensitive
        if self.needs_alternate_angle is not None:
            out["needsAlternateAngle"] = self.needs_alternate_angle
        if self.low_image_quality is not None:
            out["lowImageQuality"] = self.low_image_quality
        return out


@dataclass(frozen=True)
class Finding:
    label: str
    severity: str
    detail: str
    confidence_base: float | int | None
    evidence: tuple[str, ...] = ()
    risk_cues: tuple[str, ...] = ()
    flags: FindingFlags = field(default_factory=FindingFlags)

    def reported_confidence(self) -> int:
        """Model confidence as an integer in [0, 100], defaulted when unusable."""
        value = self.confidence_base
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            return DEFAULT_CONFIDENCE_BASE
        return max(0, min(100, round(value)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "severity": self.severity,
            "detail": self.detail,
            "confidenceBase": self.reported_confidence(),
            "evidence": list(self.evidence),
            "riskCues": list(self.risk_cues),
            "flags": self.flags.to_dict(),
        }


@dataclass(frozen=True)
class EvaluationResult:
    id: str
    area: str
    model: str
    findings: tuple[Finding, ...] = ()
    quick_checks: tuple[str, ...] = ()
    cautions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "area": self.area,
            "model": self.model,
            "findings": [finding.to_dict() for finding in self.findings],
            "quickChecks": list(self.quick_checks),
            "cautions": list(self.cautions),
        }


@dataclass(frozen=True)
class AdjustedFinding:
    finding: Finding
    adjusted_confidence: int
    review_action: str
