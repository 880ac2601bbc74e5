"""
Static interview prompt catalogue.

The catalogue is a JSON array of ``{topic, instructions, hard_skills}``
objects. It is read once when the app starts and never changes afterwards.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from .errors import ValidationError
from .models import Prompt

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parent / "data" / "prompt_catalogue.json"

_prompts: Optional[List[Prompt]] = None


def _source_path() -> Path:
    return Path(getattr(settings, "PROMPT_CATALOGUE_PATH", None) or DEFAULT_PATH)


def load(path: Optional[Path] = None) -> List[Prompt]:
    """(Re)load the catalogue from disk. Any problem is a deployment error."""
    global _prompts
    path = Path(path) if path else _source_path()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ImproperlyConfigured(f"Prompt catalogue not found: {path}")
    except json.JSONDecodeError as e:
        raise ImproperlyConfigured(f"Prompt catalogue is not valid JSON: {path}: {e}")

    if not isinstance(raw, list):
        raise ImproperlyConfigured(f"Prompt catalogue must be a JSON array: {path}")

    prompts: List[Prompt] = []
    seen = set()
    for i, item in enumerate(raw):
        try:
            prompt = Prompt.from_dict(item)
        except ValidationError as e:
            raise ImproperlyConfigured(f"Prompt #{i} in {path}: {e.message}")
        if prompt.topic in seen:
            raise ImproperlyConfigured(f"Duplicate prompt topic {prompt.topic!r} in {path}")
        seen.add(prompt.topic)
        prompts.append(prompt)

    _prompts = prompts
    logger.info("Loaded %d interview prompts from %s", len(prompts), path)
    return prompts


def list_prompts() -> List[Prompt]:
    if _prompts is None:
        load()
    return list(_prompts)


def get_prompt(topic: str) -> Optional[Prompt]:
    for prompt in list_prompts():
        if prompt.topic == topic:
            return prompt
    return None
