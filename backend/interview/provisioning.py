"""
LiveKit session provisioning.

Every call creates a fresh room tagged with the selected prompt (the voice
agent worker reads it from the room metadata) and signs a participant token
for that room. Rooms are never deleted here: LiveKit closes them once they
have been empty for ``LIVEKIT_ROOM_EMPTY_TIMEOUT_S`` seconds, including rooms
nobody ever joined.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
import uuid
from typing import Any

import aiohttp
from django.conf import settings
from livekit import api

from .errors import UpstreamError
from .models import ConnectionDetails, Prompt

logger = logging.getLogger(__name__)

ROOM_PREFIX = "interview-"
IDENTITY_PREFIX = "voice_assistant_user_"


def _livekit_settings() -> tuple:
    url = getattr(settings, "LIVEKIT_URL", "") or ""
    key = getattr(settings, "LIVEKIT_API_KEY", "") or ""
    secret = getattr(settings, "LIVEKIT_API_SECRET", "") or ""
    if not (url and key and secret):
        logger.error("LiveKit is not configured (LIVEKIT_URL / LIVEKIT_API_KEY / LIVEKIT_API_SECRET)")
        raise UpstreamError("Could not provision session")
    return url, key, secret


def websocket_url(url: str) -> str:
    # http://host -> ws://host, https://host -> wss://host
    return re.sub(r"^http", "ws", url)


def new_room_name() -> str:
    return f"{ROOM_PREFIX}{uuid.uuid4()}"


def new_identity() -> str:
    return f"{IDENTITY_PREFIX}{uuid.uuid4()}"


def issue_token(api_key: str, api_secret: str, *, identity: str, room_name: str) -> str:
    return (
        api.AccessToken(api_key, api_secret)
        .with_identity(identity)
        .with_grants(
            api.VideoGrants(
                room=room_name,
                room_join=True,
                can_publish=True,
                can_subscribe=True,
                can_publish_data=True,
            )
        )
        .to_jwt()
    )


async def create_session(prompt: Any) -> ConnectionDetails:
    """Create a room for ``prompt`` and a token to join it.

    ``prompt`` is the raw object posted by the client. It is validated before
    anything is sent to LiveKit and stored verbatim as room metadata.
    """
    Prompt.from_dict(prompt)
    url, key, secret = _livekit_settings()

    room_name = new_room_name()
    empty_timeout = int(getattr(settings, "LIVEKIT_ROOM_EMPTY_TIMEOUT_S", 600))
    try:
        async with api.LiveKitAPI(url, key, secret) as lkapi:
            await lkapi.room.create_room(
                api.CreateRoomRequest(
                    name=room_name,
                    metadata=json.dumps(prompt),
                    empty_timeout=empty_timeout,
                )
            )
    except (api.TwirpError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
        logger.error("LiveKit create_room failed for %s: %s", room_name, e)
        raise UpstreamError("Could not provision session") from e

    identity = new_identity()
    token = issue_token(key, secret, identity=identity, room_name=room_name)
    logger.info("Provisioned room %s for %s (topic=%r)", room_name, identity, prompt.get("topic"))

    return ConnectionDetails(
        server_url=websocket_url(url),
        room_name=room_name,
        participant_identity=identity,
        participant_token=token,
    )
