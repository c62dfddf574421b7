"""Plain-text report for the human-readable response format."""

from __future__ import annotations

from photo_eval.pipeline.confidence import adjust_finding
from photo_eval.pipeline.models import EvaluationResult

EMPTY_LIST = "—"
REMEDY_LINE = "  Remedy: Recommend evaluation and repair by a qualified, licensed professional."
EXHAUST_FAN_REMINDER = "Reminder: Verify exhaust fan suction with a paper test at the grille."
ACTION_TEXT = {
    "manual_review": "route for human review",
    "auto_ok": "proceed, no manual review required",
}


def _title(area: str) -> str:
    area = area or "Area"
    return f"{area[:1].upper()}{area[1:]} — Virtual Photo Evaluation (WA)"


def render_report(result: EvaluationResult) -> str:
    lines = [_title(result.area), "", "FIR:"]

    if result.findings:
        for item in (adjust_finding(finding) for finding in result.findings):
            finding = item.finding
            evidence = ", ".join(finding.evidence) or EMPTY_LIST
            cues = ", ".join(finding.risk_cues) or EMPTY_LIST
            lines.append(f"- [{finding.severity.upper()}] {finding.label}: {finding.detail}")
            lines.append(REMEDY_LINE)
            lines.append(f"  Confidence: {item.adjusted_confidence}%  |  Evidence: {evidence}")
            lines.append(f"  Risk cues: {cues}")
            lines.append(f"  Action: {ACTION_TEXT[item.review_action]}")
    else:
        lines.append("- No notable issues identified from this single photo.")
        lines.append("  Remedy: None at this time.")

    if result.quick_checks:
        lines.extend(["", "Quick Checks:"])
        lines.extend(f"- {check}" for check in result.quick_checks)

    if result.cautions:
        lines.extend(["", "Cautions:"])
        lines.extend(f"- {caution}" for caution in result.cautions)

    if "bathroom" in result.area.lower():
        lines.extend(["", EXHAUST_FAN_REMINDER])

    lines.extend(["", f"Ref: {result.id or 'ref'}"])
    return "\n".join(lines)
