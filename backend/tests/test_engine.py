import json

import pytest
from google.genai import errors

from interview import engine
from interview.errors import UpstreamError, UpstreamFormatError, ValidationError

ALL_LABELS = engine.SOFT_SKILLS + ["SQL", "Caching"]


def test_required_skills_is_soft_then_hard():
    assert engine.required_skills(["SQL", "Caching"]) == [
        "Communication", "Teamwork", "Attitude", "Professionalism",
        "Leadership", "Creativity", "Sociability", "SQL", "Caching",
    ]


def test_required_skills_drops_duplicates():
    labels = engine.required_skills(["Communication", "SQL", "SQL"])
    assert labels == engine.SOFT_SKILLS + ["SQL"]


def test_system_prompt_names_every_label():
    prompt = engine.build_system_prompt(ALL_LABELS)
    assert ", ".join(ALL_LABELS) in prompt
    assert '"scores"' in prompt and '"summary"' in prompt


def test_request_shape(llm, score_reply):
    llm.reply = score_reply(ALL_LABELS)
    engine.score_transcript("Candidate: hi", ["SQL", "Caching"])

    (call,) = llm.calls
    assert call["model"] == engine.MODEL_NAME
    assert call["contents"] == "Candidate: hi"
    config = call["config"]
    assert config.temperature == 0.2
    assert config.max_output_tokens == 400
    assert config.response_mime_type == "application/json"
    assert ", ".join(ALL_LABELS) in config.system_instruction


def test_well_formed_reply_is_returned_unchanged(llm):
    scores = {label: 50 + i for i, label in enumerate(ALL_LABELS)}
    llm.reply = json.dumps({"scores": scores, "summary": "Good."})

    result = engine.score_transcript("t", ["SQL", "Caching"])

    assert result.scores == scores
    assert result.summary == "Good."


def test_unrequested_labels_are_dropped(llm):
    scores = {label: 80 for label in ALL_LABELS}
    llm.reply = json.dumps({"scores": {**scores, "Juggling": 99}, "summary": "ok"})
    assert "Juggling" not in engine.score_transcript("t", ["SQL", "Caching"]).scores


@pytest.mark.parametrize("hard_skills", [[], None, "SQL", [""], [1]])
def test_bad_skill_list_fails_before_calling_model(llm, hard_skills):
    with pytest.raises(ValidationError):
        engine.score_transcript("t", hard_skills)
    assert llm.calls == []


def test_transcript_must_be_text(llm):
    with pytest.raises(ValidationError):
        engine.score_transcript(None, ["SQL"])
    assert llm.calls == []


def test_invalid_json_is_format_error_and_logged(llm, caplog):
    llm.reply = "Sure! Here are the scores: Communication 80"
    with pytest.raises(UpstreamFormatError):
        engine.score_transcript("t", ["SQL"])
    assert "Here are the scores" in caplog.text


@pytest.mark.parametrize("payload", [
    ["not", "an", "object"],
    {"scores": {}, "summary": "missing every label"},
    {"summary": "no scores"},
    {"scores": {label: 50 for label in ALL_LABELS}},
    {"scores": {label: 50 for label in ALL_LABELS}, "summary": "   "},
    {"scores": {**{label: 50 for label in ALL_LABELS}, "SQL": 101}, "summary": "too high"},
    {"scores": {**{label: 50 for label in ALL_LABELS}, "SQL": -1}, "summary": "too low"},
    {"scores": {**{label: 50 for label in ALL_LABELS}, "SQL": "80"}, "summary": "string"},
    {"scores": {**{label: 50 for label in ALL_LABELS}, "SQL": True}, "summary": "bool"},
])
def test_shape_violations_are_format_errors(llm, payload):
    llm.reply = json.dumps(payload)
    with pytest.raises(UpstreamFormatError):
        engine.score_transcript("t", ["SQL", "Caching"])


def test_service_error_is_upstream_error(llm):
    llm.error = errors.ServerError(
        503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
    )
    with pytest.raises(UpstreamError) as exc_info:
        engine.score_transcript("t", ["SQL"])
    assert not isinstance(exc_info.value, UpstreamFormatError)
    assert exc_info.value.message == "LLM scoring failed"


def test_missing_api_key(monkeypatch):
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(UpstreamError):
        engine._get_client()
