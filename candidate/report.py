"""Plain-text rendering of a finished interview."""
from .lifecycle import InterviewState, chart_series

BAR_WIDTH = 40


def _bar(label: str, value: float, width: int) -> str:
    filled = int(round(BAR_WIDTH * max(0, min(100, value)) / 100))
    return f"  {label:<{width}} {'#' * filled:<{BAR_WIDTH}} {value:g}"


def render_report(state: InterviewState) -> str:
    if state.result is None:
        return "No score available."
    series = chart_series(state.result, state.hard_skills)
    width = max(len(label) for label, _ in series["soft"] + series["hard"])
    lines = ["Candidate Summary", f"  {state.result.summary}", "", "Soft-Skill Breakdown"]
    lines += [_bar(label, value, width) for label, value in series["soft"]]
    lines += ["", "Hard-Skill Breakdown"]
    lines += [_bar(label, value, width) for label, value in series["hard"]]
    return "\n".join(lines)
