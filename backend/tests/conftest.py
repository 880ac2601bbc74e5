import json
from types import SimpleNamespace

import pytest

from interview import engine, provisioning

LIVEKIT_KEY = "devkey"
LIVEKIT_SECRET = "test-secret-that-is-long-enough-for-hs256"


class FakeRoomService:
    def __init__(self, owner):
        self._owner = owner

    async def create_room(self, request):
        if self._owner.fail_with is not None:
            raise self._owner.fail_with
        self._owner.created.append(request)
        return SimpleNamespace(name=request.name)


class FakeLiveKitAPI:
    """Stands in for livekit.api.LiveKitAPI; records every room request."""
    created = []
    opened = []
    fail_with = None

    def __init__(self, url=None, api_key=None, api_secret=None, **kwargs):
        FakeLiveKitAPI.opened.append((url, api_key, api_secret))
        self.room = FakeRoomService(FakeLiveKitAPI)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeModels:
    def __init__(self):
        self.calls = []
        self.reply = None
        self.error = None

    def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply)


@pytest.fixture
def livekit(settings, monkeypatch):
    settings.LIVEKIT_URL = "https://lk.example.test"
    settings.LIVEKIT_API_KEY = LIVEKIT_KEY
    settings.LIVEKIT_API_SECRET = LIVEKIT_SECRET
    settings.LIVEKIT_ROOM_EMPTY_TIMEOUT_S = 600
    FakeLiveKitAPI.created = []
    FakeLiveKitAPI.opened = []
    FakeLiveKitAPI.fail_with = None
    monkeypatch.setattr(provisioning.api, "LiveKitAPI", FakeLiveKitAPI)
    return FakeLiveKitAPI


@pytest.fixture
def llm(monkeypatch):
    models = FakeModels()
    monkeypatch.setattr(engine, "_get_client", lambda: SimpleNamespace(models=models))
    return models


@pytest.fixture
def score_reply():
    def _reply(labels, value=70, summary="Solid, clear answers."):
        return json.dumps({"scores": {label: value for label in labels}, "summary": summary})

    return _reply
