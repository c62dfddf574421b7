from __future__ import annotations

import json

import pytest

from photo_eval.llm_client.responses import StructuredOutput, TextOutput
from photo_eval.pipeline.resolver import UNSTRUCTURED_FINDING, extract_first_json, resolve

VALID = {
    "id": "eval-1",
    "area": "bathroom",
    "model": "m",
    "findings": [
        {
            "label": "Fan grille dusty",
            "severity": "note",
            "detail": "Dust on the exhaust grille.",
            "confidenceBase": 80,
            "evidence": ["grey film"],
            "riskCues": [],
            "flags": {"lowImageQuality": False},
        }
    ],
    "quickChecks": ["Paper test the fan"],
    "cautions": [],
}


def _assert_invariants(result):
    for value in (result.id, result.area, result.model):
        assert isinstance(value, str) and value
    for seq in (result.findings, result.quick_checks, result.cautions):
        assert isinstance(seq, tuple)


@pytest.mark.parametrize(
    "raw",
    [
        json.dumps(VALID),
        TextOutput(json.dumps(VALID)),
        StructuredOutput(VALID),
        {"response": VALID},
        {"response": json.dumps(VALID)},
        StructuredOutput({"response": VALID}),
    ],
)
def test_valid_payloads_in_every_wrapping(raw):
    result = resolve(raw, "uploads/key", "kitchen", "model-x")

    _assert_invariants(result)
    assert result.id == "eval-1"
    assert result.area == "bathroom"
    assert result.findings[0].label == "Fan grille dusty"
    assert result.findings[0].confidence_base == 80
    assert result.quick_checks == ("Paper test the fan",)


@pytest.mark.parametrize(
    "raw",
    [
        "The photo shows a bathroom with a fan.",
        "{ unbalanced",
        "{ not: json }",
        "[1, 2, 3]",
        TextOutput(""),
        None,
        {"response": None},
        json.dumps({"id": "x", "findings": None}),
        json.dumps({"id": "x"}),
    ],
)
def test_unusable_payloads_fall_back_to_single_note(raw):
    result = resolve(raw, "uploads/key", "kitchen", "model-x")

    _assert_invariants(result)
    assert result.findings == (UNSTRUCTURED_FINDING,)
    assert result.id == "uploads/key"
    assert result.area == "kitchen"
    assert result.model == "model-x"
    finding = result.findings[0]
    assert finding.severity == "note"
    assert finding.confidence_base == 60
    assert finding.evidence == () and finding.risk_cues == ()
    assert finding.flags.low_image_quality is False


def test_brace_extraction_from_noisy_text():
    assert extract_first_json('noise {"a":1,"b":{"c":2}} trailing') == {"a": 1, "b": {"c": 2}}
    assert extract_first_json("noise { \"a\": 1 ") is None
    assert extract_first_json("no braces at all") is None


def test_json_embedded_in_prose_is_recovered():
    text = "Here is the result:\n" + json.dumps(VALID) + "\nHope this helps."
    result = resolve(TextOutput(text), "k", None, "m")
    assert result.id == "eval-1"
    assert len(result.findings) == 1


def test_missing_fields_are_backfilled():
    result = resolve(json.dumps({"findings": []}), "uploads/key", None, "model-x")

    assert result.id == "uploads/key"
    assert result.area == "unspecified"
    assert result.model == "model-x"
    assert result.findings == ()
    assert result.quick_checks == ()
    assert result.cautions == ()


def test_blank_identity_fields_are_backfilled():
    result = resolve({"id": "", "area": "  ", "model": None, "findings": []}, "k", "porch", "m")
    assert (result.id, result.area, result.model) == ("k", "porch", "m")


def test_malformed_findings_are_coerced():
    payload = {
        "findings": [
            "not an object",
            {"severity": "CRITICAL", "confidenceBase": "high", "evidence": ["a", 3, "b", "c", "d", "e", "f"]},
        ]
    }
    result = resolve(StructuredOutput(payload), "k", "attic", "m")

    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.label == "Finding"
    assert finding.severity == "note"
    assert finding.detail == ""
    assert finding.confidence_base is None
    assert finding.evidence == ("a", "b", "c", "d", "e")


def test_serialization_has_exactly_the_declared_fields():
    payload = dict(VALID, extra="dropped")
    payload["findings"] = [dict(VALID["findings"][0], bogus=True)]
    data = resolve(StructuredOutput(payload), "k", None, "m").to_dict()

    assert set(data) == {"id", "area", "model", "findings", "quickChecks", "cautions"}
    assert set(data["findings"][0]) == {
        "label",
        "severity",
        "detail",
        "confidenceBase",
        "evidence",
        "riskCues",
        "flags",
    }
    assert data["findings"][0]["flags"] == {"lowImageQuality": False}


@pytest.mark.parametrize(
    ("reported", "serialized"),
    [(None, 60), ("high", 60), (True, 60), (87.6, 88), (140, 100), (-5, 0), (72, 72)],
)
def test_serialized_confidence_base_is_an_integer_in_range(reported, serialized):
    payload = {"findings": [{"label": "Trap", "severity": "note", "detail": "", "confidenceBase": reported}]}
    finding = resolve(StructuredOutput(payload), "k", None, "m").findings[0]

    assert finding.to_dict()["confidenceBase"] == serialized


def test_out_of_range_base_is_kept_for_the_confidence_engine():
    payload = {"findings": [{"label": "Trap", "severity": "note", "detail": "", "confidenceBase": 140}]}
    finding = resolve(StructuredOutput(payload), "k", None, "m").findings[0]

    assert finding.confidence_base == 140
    assert finding.to_dict()["confidenceBase"] == 100
