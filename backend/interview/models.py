"""
Plain value types for the interview routes.

Nothing here is persisted: prompts come from a static catalogue, sessions
live on the LiveKit server and score results are handed straight back to
the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List

from .errors import ValidationError


@dataclass(frozen=True)
class Prompt:
    topic: str
    instructions: str = ""
    hard_skills: tuple = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: Any) -> "Prompt":
        if not isinstance(raw, dict):
            raise ValidationError("prompt must be an object")
        topic = raw.get("topic")
        if not isinstance(topic, str) or not topic.strip():
            raise ValidationError("Missing prompt.topic in request body")
        skills = raw.get("hard_skills") or []
        if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
            raise ValidationError("prompt.hard_skills must be a list of strings")
        return cls(
            topic=topic,
            instructions=str(raw.get("instructions") or ""),
            hard_skills=tuple(skills),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "instructions": self.instructions,
            "hard_skills": list(self.hard_skills),
        }


@dataclass(frozen=True)
class ConnectionDetails:
    server_url: str
    room_name: str
    participant_identity: str
    participant_token: str

    def to_dict(self) -> Dict[str, str]:
        # camelCase on the wire, matching the browser client
        return {
            "serverUrl": self.server_url,
            "roomName": self.room_name,
            "participantIdentity": self.participant_identity,
            "participantToken": self.participant_token,
        }


@dataclass(frozen=True)
class ScoreResult:
    scores: Dict[str, float]
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def as_skill_list(raw: Any) -> List[str]:
    """Validate a caller-supplied hard-skill list."""
    if not isinstance(raw, list) or not raw:
        raise ValidationError("hardSkills array missing")
    if not all(isinstance(s, str) and s.strip() for s in raw):
        raise ValidationError("hardSkills must contain non-empty strings")
    return list(raw)
