"""
Transcript Scoring Engine
=========================
Uses google.genai with system_instruction + generate_content.

One call per finished interview:
  1. build a system instruction naming every skill to score
     (7 fixed soft skills + the prompt's hard skills)
  2. send the transcript as the user content, JSON response requested
  3. parse and validate {"scores": {...}, "summary": "..."}

No retries and no caching: a failure is reported to the caller, who may
simply ask again.
"""
from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from typing import Any, List

import httpx
from google import genai
from google.genai import errors, types

from .errors import UpstreamError, UpstreamFormatError, ValidationError
from .models import ScoreResult, as_skill_list

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Client config
# ---------------------------------------------------------------------------
MODEL_NAME = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
TEMPERATURE = 0.2
MAX_TOKENS = 400

SOFT_SKILLS = [
    "Communication",
    "Teamwork",
    "Attitude",
    "Professionalism",
    "Leadership",
    "Creativity",
    "Sociability",
]

SCORE_MIN = 0
SCORE_MAX = 100


@lru_cache(maxsize=1)
def _client_for(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def _get_client() -> genai.Client:
    api_key = os.getenv("GOOGLE_API_KEY", "")
    if not api_key:
        logger.error("GOOGLE_API_KEY is not set")
        raise UpstreamError("LLM scoring failed")
    return _client_for(api_key)


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------
def required_skills(hard_skills: List[str]) -> List[str]:
    """Soft skills first, then hard skills, without duplicates."""
    labels: List[str] = []
    for label in [*SOFT_SKILLS, *hard_skills]:
        if label not in labels:
            labels.append(label)
    return labels


def build_system_prompt(labels: List[str]) -> str:
    return f"""You are an assistant that reads an interview transcript and returns two things:
1) A JSON object named "scores" where each key is exactly one skill from this list: {", ".join(labels)}, and each value is a number between {SCORE_MIN} and {SCORE_MAX}.
2) A brief (2-3 sentence) overall summary of the candidate's performance, returned under the key "summary".

Respond with valid JSON containing exactly two top-level keys: "scores" and "summary". Do not include any extra commentary."""


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------
def _is_score(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and SCORE_MIN <= value <= SCORE_MAX
    )


def parse_result(raw: str, labels: List[str]) -> ScoreResult:
    """Strict JSON parse + shape check. Extra skill keys are dropped."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.error("Invalid JSON from LLM: %s", raw)
        raise UpstreamFormatError("Invalid LLM output")

    if not isinstance(data, dict):
        logger.error("LLM output is not a JSON object: %s", raw)
        raise UpstreamFormatError("Invalid LLM output")

    scores = data.get("scores")
    summary = data.get("summary")
    if not isinstance(scores, dict) or not isinstance(summary, str) or not summary.strip():
        logger.error("LLM output missing scores/summary: %s", raw)
        raise UpstreamFormatError("Invalid LLM output")

    bad = [label for label in labels if not _is_score(scores.get(label))]
    if bad:
        logger.error("LLM output has missing or out-of-range scores %s: %s", bad, raw)
        raise UpstreamFormatError("Invalid LLM output")

    return ScoreResult(scores={label: scores[label] for label in labels}, summary=summary)


# ---------------------------------------------------------------------------
# Main engine function
# ---------------------------------------------------------------------------
def score_transcript(transcript: Any, hard_skills: Any) -> ScoreResult:
    """
    Single synchronous call: transcript + hard skills → Gemini → ScoreResult.
    Raises ValidationError before contacting the model on bad input.
    """
    skills = as_skill_list(hard_skills)
    if not isinstance(transcript, str):
        raise ValidationError("transcript must be a string")

    labels = required_skills(skills)
    try:
        response = _get_client().models.generate_content(
            model=MODEL_NAME,
            contents=transcript,
            config=types.GenerateContentConfig(
                system_instruction=build_system_prompt(labels),
                temperature=TEMPERATURE,
                max_output_tokens=MAX_TOKENS,
                response_mime_type="application/json",
            ),
        )
    except errors.APIError as e:
        logger.error("LLM scoring failed: %s %s", e.code, e.message)
        raise UpstreamError("LLM scoring failed") from e
    except httpx.HTTPError as e:
        logger.error("LLM scoring request failed: %s", e)
        raise UpstreamError("LLM scoring failed") from e

    raw = response.text or ""
    result = parse_result(raw, labels)
    logger.info("Scored transcript (%d chars, %d skills)", len(transcript), len(labels))
    return result
