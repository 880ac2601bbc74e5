"""
Interview lifecycle as an explicit state object.

    idle       --start-->            connecting
    connecting --connected-->        live
    connecting --connect_failed-->   idle
    live       --disconnected-->     ended  (idle if nothing was said)
    ended      --start-->            connecting

Every network request is issued against a ``Ticket`` carrying the epoch it
was started in. ``start`` bumps the epoch, so a response that arrives after
a restart no longer matches and is dropped.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

SOFT_SKILLS = [
    "Communication",
    "Teamwork",
    "Attitude",
    "Professionalism",
    "Leadership",
    "Creativity",
    "Sociability",
]

ROLE_LABELS = {"user": "Candidate", "agent": "Interviewer"}


class LifecycleError(RuntimeError):
    pass


class Phase(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    LIVE = "live"
    ENDED = "ended"


class Ticket(NamedTuple):
    epoch: int


@dataclass
class TranscriptSegment:
    id: str
    role: str  # "user" | "agent"
    text: str

    def __post_init__(self):
        if self.role not in ROLE_LABELS:
            raise ValueError(f"unknown transcript role {self.role!r}")

    def line(self) -> str:
        return f"{ROLE_LABELS[self.role]}: {self.text}"


@dataclass
class ScoreResult:
    scores: Dict[str, float]
    summary: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ScoreResult":
        return cls(scores=dict(raw.get("scores") or {}), summary=str(raw.get("summary") or ""))


@dataclass
class InterviewState:
    phase: Phase = Phase.IDLE
    epoch: int = 0
    prompt: Optional[Dict[str, Any]] = None
    hard_skills: List[str] = field(default_factory=list)
    segments: List[TranscriptSegment] = field(default_factory=list)
    scoring_requested: bool = False
    result: Optional[ScoreResult] = None
    error: Optional[str] = None

    # --- transitions -----------------------------------------------------

    def start(self, prompt: Dict[str, Any]) -> Ticket:
        if self.phase is Phase.LIVE:
            raise LifecycleError("interview already live; disconnect first")
        self.epoch += 1
        self.phase = Phase.CONNECTING
        self.prompt = dict(prompt)
        self.hard_skills = list(prompt.get("hard_skills") or [])
        self.segments = []
        self.scoring_requested = False
        self.result = None
        self.error = None
        return Ticket(self.epoch)

    def is_current(self, ticket: Ticket) -> bool:
        return ticket.epoch == self.epoch

    def connected(self, ticket: Ticket) -> bool:
        if not self.is_current(ticket) or self.phase is not Phase.CONNECTING:
            return False
        self.phase = Phase.LIVE
        return True

    def connect_failed(self, ticket: Ticket, message: str) -> bool:
        if not self.is_current(ticket) or self.phase is not Phase.CONNECTING:
            return False
        self.phase = Phase.IDLE
        self.error = message
        return True

    def add_segment(self, segment: TranscriptSegment) -> bool:
        """Append in arrival order; a known id only has its text updated."""
        if self.phase is not Phase.LIVE:
            return False
        for existing in self.segments:
            if existing.id == segment.id:
                existing.text = segment.text
                return True
        self.segments.append(segment)
        return True

    def disconnected(self) -> Optional[Ticket]:
        """Leave ``live``. Returns a scoring ticket at most once per session."""
        if self.phase is not Phase.LIVE:
            return None
        if not self.segments:
            self.phase = Phase.IDLE
            return None
        self.phase = Phase.ENDED
        if self.scoring_requested:
            return None
        self.scoring_requested = True
        return Ticket(self.epoch)

    def scored(self, ticket: Ticket, result: ScoreResult) -> bool:
        if not self.is_current(ticket) or self.phase is not Phase.ENDED:
            return False
        self.result = result
        return True

    def scoring_failed(self, ticket: Ticket, message: str) -> bool:
        if not self.is_current(ticket) or self.phase is not Phase.ENDED:
            return False
        self.error = message
        return True

    # --- derived ---------------------------------------------------------

    def transcript_text(self) -> str:
        return "\n".join(s.line() for s in self.segments)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "epoch": self.epoch,
            "prompt": self.prompt,
            "hard_skills": list(self.hard_skills),
            "segments": [{"id": s.id, "role": s.role, "text": s.text} for s in self.segments],
            "scoring_requested": self.scoring_requested,
            "result": (
                {"scores": dict(self.result.scores), "summary": self.result.summary}
                if self.result else None
            ),
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "InterviewState":
        result = raw.get("result")
        return cls(
            phase=Phase(raw.get("phase", Phase.IDLE.value)),
            epoch=int(raw.get("epoch", 0)),
            prompt=raw.get("prompt"),
            hard_skills=list(raw.get("hard_skills") or []),
            segments=[TranscriptSegment(**s) for s in raw.get("segments") or []],
            scoring_requested=bool(raw.get("scoring_requested")),
            result=ScoreResult.from_dict(result) if result else None,
            error=raw.get("error"),
        )


def chart_series(result: ScoreResult, hard_skills: List[str]) -> Dict[str, List[tuple]]:
    """(label, value) pairs for the soft-skill radar and hard-skill bars."""
    def value(label):
        return result.scores.get(label, 0)

    return {
        "soft": [(label, value(label)) for label in SOFT_SKILLS],
        "hard": [(label, value(label)) for label in hard_skills],
    }
