"""Policy adjustment of model-reported confidence and review routing."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from photo_eval.pipeline.models import DEFAULT_CONFIDENCE_BASE, AdjustedFinding, Finding


@dataclass(frozen=True)
class ConfidencePolicy:
    default_base: int = DEFAULT_CONFIDENCE_BASE
    low_image_quality_penalty: int = 20
    viewpoint_penalty: int = 15
    label_legibility_penalty: int = 10
    code_sensitive_penalty: int = 10
    floor: int = 5
    ceiling: int = 95
    review_threshold: int = 70


DEFAULT_POLICY = ConfidencePolicy()

VIEWPOINT_CUES = ("angle", "lighting", "obstruction")
LABEL_CUES = ("label", "nameplate", "plate", "date code")
CODE_SENSITIVE_PATTERN = re.compile(
    r"(bond|clearance|gfc|afc|disconnect|separation|lug|neutral|ground|trap|slope)"
)


def _base(finding: Finding, policy: ConfidencePolicy) -> float:
    value = finding.confidence_base
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return policy.default_base
    return value


def penalty(finding: Finding, policy: ConfidencePolicy = DEFAULT_POLICY) -> int:
    flags = finding.flags
    cues = " ".join(finding.risk_cues).lower()
    text = f"{finding.label} {finding.detail}".lower()

    total = 0
    if flags.low_image_quality:
        total += policy.low_image_quality_penalty
    if flags.needs_alternate_angle or any(cue in cues for cue in VIEWPOINT_CUES):
        total += policy.viewpoint_penalty
    if any(cue in cues for cue in LABEL_CUES):
        total += policy.label_legibility_penalty
    if flags.code_sensitive or CODE_SENSITIVE_PATTERN.search(text):
        total += policy.code_sensitive_penalty
    return total


def adjust(finding: Finding, policy: ConfidencePolicy = DEFAULT_POLICY) -> int:
    score = round(_base(finding, policy) - penalty(finding, policy))
    return max(policy.floor, min(policy.ceiling, score))


def action(score: int, policy: ConfidencePolicy = DEFAULT_POLICY) -> str:
    return "manual_review" if score < policy.review_threshold else "auto_ok"


def adjust_finding(finding: Finding, policy: ConfidencePolicy = DEFAULT_POLICY) -> AdjustedFinding:
    score = adjust(finding, policy)
    return AdjustedFinding(finding=finding, adjusted_confidence=score, review_action=action(score, policy))
