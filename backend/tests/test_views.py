import json

import pytest

from interview import catalogue, engine

PROMPT = {"topic": "Backend Engineer", "instructions": "Ask about caching.", "hard_skills": ["SQL", "Caching"]}


def _post(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def test_health(client):
    assert client.get("/api/health/").json() == {"ok": True}


def test_demo_page(client):
    res = client.get("/")
    assert res.status_code == 200
    assert b"Interview Test" in res.content


def test_demo_page_reads_transcription_streams_and_drops_stale_joins(client):
    page = client.get("/").content.decode()
    assert 'registerTextStreamHandler("lk.transcription"' in page
    assert "if (epoch !== state.epoch) { await lkRoom.disconnect(); return; }" in page


def test_prompts_lists_catalogue(client):
    res = client.get("/api/prompts/")
    assert res.status_code == 200
    assert res.json() == [p.to_dict() for p in catalogue.list_prompts()]


def test_prompts_is_get_only(client):
    assert client.post("/api/prompts/").status_code == 405


# --- connection details -----------------------------------------------------

def test_connection_details(client, livekit):
    res = _post(client, "/api/connection-details/", {"prompt": PROMPT})

    assert res.status_code == 200
    body = res.json()
    assert set(body) == {"serverUrl", "roomName", "participantIdentity", "participantToken"}
    assert body["serverUrl"].startswith("wss://")
    assert livekit.created[0].name == body["roomName"]
    assert "no-cache" in res["Cache-Control"] or "no-store" in res["Cache-Control"]


def test_connection_details_requires_topic(client, livekit):
    res = _post(client, "/api/connection-details/", {"prompt": {"instructions": "x"}})

    assert res.status_code == 400
    assert res.json() == {"error": "Missing prompt.topic in request body"}
    assert livekit.created == []


def test_connection_details_upstream_failure(client, livekit):
    livekit.fail_with = OSError("secret detail: connection refused")
    res = _post(client, "/api/connection-details/", {"prompt": PROMPT})

    assert res.status_code == 500
    assert res.json() == {"error": "Could not provision session"}


def test_connection_details_rejects_bad_json(client, livekit):
    res = client.post("/api/connection-details/", data="{nope", content_type="application/json")
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid JSON"}


def test_connection_details_is_post_only(client, livekit):
    assert client.get("/api/connection-details/").status_code == 405
    assert livekit.created == []


# --- analyze transcript -----------------------------------------------------

TRANSCRIPT = "Candidate: I design REST APIs\nInterviewer: Tell me about caching"


def test_analyze_returns_model_result_unmodified(client, llm):
    labels = engine.required_skills(["SQL", "Caching"])
    scores = {label: 60 + i for i, label in enumerate(labels)}
    llm.reply = json.dumps({"scores": scores, "summary": "Clear and structured."})

    res = _post(client, "/api/analyze-transcript/", {"transcript": TRANSCRIPT, "hardSkills": ["SQL", "Caching"]})

    assert res.status_code == 200
    assert res.json() == {"scores": scores, "summary": "Clear and structured."}


def test_analyze_asks_for_soft_and_hard_skills(client, llm, score_reply):
    expected = [
        "Communication", "Teamwork", "Attitude", "Professionalism",
        "Leadership", "Creativity", "Sociability", "SQL", "Caching",
    ]
    llm.reply = score_reply(expected)

    _post(client, "/api/analyze-transcript/", {"transcript": TRANSCRIPT, "hardSkills": ["SQL", "Caching"]})

    (call,) = llm.calls
    assert call["contents"] == TRANSCRIPT
    assert ", ".join(expected) in call["config"].system_instruction


@pytest.mark.parametrize("payload", [
    {"transcript": TRANSCRIPT},
    {"transcript": TRANSCRIPT, "hardSkills": []},
    {"transcript": TRANSCRIPT, "hardSkills": "SQL"},
])
def test_analyze_requires_hard_skills(client, llm, payload):
    res = _post(client, "/api/analyze-transcript/", payload)
    assert res.status_code == 400
    assert "error" in res.json()
    assert llm.calls == []


def test_analyze_hides_unparsable_output(client, llm, caplog):
    llm.reply = "I think the candidate did great!"

    res = _post(client, "/api/analyze-transcript/", {"transcript": TRANSCRIPT, "hardSkills": ["SQL"]})

    assert res.status_code == 500
    assert res.json() == {"error": "Invalid LLM output"}
    assert b"did great" not in res.content
    assert "I think the candidate did great!" in caplog.text


def test_analyze_partial_scores_are_rejected(client, llm):
    llm.reply = json.dumps({"scores": {"Communication": 70}, "summary": "Partial."})
    res = _post(client, "/api/analyze-transcript/", {"transcript": TRANSCRIPT, "hardSkills": ["SQL"]})
    assert res.status_code == 500


def test_analyze_leaves_out_unrequested_labels(client, llm, score_reply):
    labels = engine.required_skills(["SQL"])
    reply = json.loads(score_reply(labels))
    reply["scores"]["Kubernetes"] = 90
    llm.reply = json.dumps(reply)

    res = _post(client, "/api/analyze-transcript/", {"transcript": TRANSCRIPT, "hardSkills": ["SQL"]})

    assert res.status_code == 200
    assert "Kubernetes" not in res.json()["scores"]
    assert sorted(res.json()["scores"]) == sorted(labels)
