"""Prompt templates for the photo evaluation request."""

from __future__ import annotations

from typing import Sequence

from photo_eval.pipeline.models import EvaluationContext

SYSTEM_RULES = """
You perform a Washington State-context VIRTUAL PHOTO EVALUATION (not an inspection).
Be direct and concise. Do not cite codes unless asked.

Always apply:
- Bathroom photos: include exhaust-fan paper test reminder.
- IAQ thresholds when legible:
  PM2.5 >12 caution, >35 unhealthy; CO2 >1000 elevated, >1500 poor;
  HCHO >0.10 mg/m3 caution, >0.30 high; TVOC >0.30 mg/m3 caution, >1.0 high;
  Humidity outside 40-60% note; >65% mold risk.
- Water-heater sizing (WA heuristic): occupants ~ bedrooms + 1.
  Storage: 1-2BR <40gal; 3BR <50; 4BR <60; 5+BR <80.
  Tankless: 1-2BR <4 GPM @ ~70F rise; 3BR <6; 4+BR <8. Note all-electric slow recovery; caution for soaking tubs/frequent simultaneous showers.
- Manufactured homes when indicated: remind about skirting/treatment stamp and HUD pre-1976 vs post-1976 awareness.

Output valid JSON with:
- id, area, model
- findings[] where each finding includes: label, severity (info|note|caution|alert), detail,
  confidenceBase (0-100 integer self-rating), evidence[] (2-3 short cues), riskCues[] (1-3 short cues),
  flags: { codeSensitive?: boolean, needsAlternateAngle?: boolean, lowImageQuality?: boolean }
- quickChecks[] and cautions[].

Keep phrasing plain-language; short bullets.
"""

TASK_BLOCK = """
Task:
1) Identify visible systems/components and obvious conditions from the photo while leveraging the knowledge provided.
2) List concise findings with severity (info|note|caution|alert).
3) Provide short "quickChecks" next steps.
4) Add applicable "cautions" (IAQ thresholds, moisture risk, electrical safety, etc.).
Return ONLY valid JSON per the schema.
"""

WARM_UP_PROMPT = "agree"


def build_prompt(
    context: EvaluationContext,
    knowledge_text: str = "",
    knowledge_sources: Sequence[str] = (),
) -> str:
    area = context.area if context.area is not None else "unspecified"
    bedrooms = context.bedrooms if context.bedrooms is not None else "n/a"
    manufactured = "yes" if context.manufactured_home else "no"
    notes = context.notes if context.notes is not None else "n/a"

    knowledge_block = ""
    if knowledge_text:
        knowledge_block = f"\n\nReference knowledge (operator-supplied documents):\n{knowledge_text}"
    sources_block = ""
    if knowledge_sources:
        listed = "\n".join(f"- {label}" for label in knowledge_sources)
        sources_block = f"\n\nKnowledge sources consulted:\n{listed}"

    return (
        "\nContext:\n"
        f"- Area: {area}\n"
        f"- Bedrooms (only if relevant to water heater sizing): {bedrooms}\n"
        f"- Manufactured home: {manufactured}\n"
        f"- Notes: {notes}"
        f"{knowledge_block}{sources_block}\n"
        f"{TASK_BLOCK}"
    )
