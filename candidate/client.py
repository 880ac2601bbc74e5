import asyncio
import json
import logging
import wave
from typing import Any, Callable, Dict, List, Optional

import aiohttp
from livekit import rtc

from .lifecycle import InterviewState, ScoreResult, TranscriptSegment

logger = logging.getLogger("candidate")

DEFAULT_BACKEND_URL = "http://127.0.0.1:8000"
TRANSCRIPTION_TOPIC = "lk.transcription"
SEGMENT_ID_ATTRIBUTE = "lk.segment_id"

JOIN_FAILED_ALERT = "Could not start interview. See logs."
DEVICE_FAILED_ALERT = (
    "Error acquiring camera or microphone permissions. Please enable permissions and reload."
)


class BackendError(RuntimeError):
    pass


class MediaDeviceError(RuntimeError):
    pass


class BackendClient:
    """
    Calls the Django interview routes and returns parsed JSON.
    """
    def __init__(self, session: aiohttp.ClientSession, base_url: str = DEFAULT_BACKEND_URL,
                 timeout: float = 30.0) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _request(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(method, url, json=payload, timeout=self._timeout) as resp:
                txt = await resp.text()
        except asyncio.TimeoutError as e:
            raise BackendError(f"{path} timed out after {self._timeout.total}s") from e
        except aiohttp.ClientError as e:
            raise BackendError(f"{path} request failed: {e}") from e
        if resp.status >= 400:
            raise BackendError(f"{path} HTTP {resp.status}: {txt[:200]}")
        try:
            return json.loads(txt)
        except json.JSONDecodeError:
            raise BackendError(f"{path} returned non-JSON: {txt[:200]}")

    async def _request_object(self, method: str, path: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        data = await self._request(method, path, payload)
        if not isinstance(data, dict):
            raise BackendError(f"{path} returned {type(data).__name__}, expected a JSON object")
        return data

    async def fetch_prompts(self) -> List[Dict[str, Any]]:
        data = await self._request("GET", "/api/prompts/")
        if not isinstance(data, list):
            raise BackendError(f"/api/prompts/ returned {type(data).__name__}, expected a JSON array")
        return data

    async def connection_details(self, prompt: Dict[str, Any]) -> Dict[str, str]:
        return await self._request_object("POST", "/api/connection-details/", {"prompt": prompt})

    async def analyze_transcript(self, transcript: str, hard_skills: List[str]) -> Dict[str, Any]:
        return await self._request_object(
            "POST", "/api/analyze-transcript/", {"transcript": transcript, "hardSkills": hard_skills}
        )


class LocalMedia:
    """Publishes a microphone and a camera track from in-process sources.

    With ``audio_file`` set, a 16-bit PCM WAV file is streamed into the
    microphone track in real time; otherwise the track stays silent.
    """
    SAMPLE_RATE = 48000
    NUM_CHANNELS = 1
    FRAME_MS = 10
    VIDEO_WIDTH = 640
    VIDEO_HEIGHT = 480

    def __init__(self, audio_file: Optional[str] = None) -> None:
        self.audio_file = audio_file
        self._wav: Optional[wave.Wave_read] = None
        self._audio_source: Optional[rtc.AudioSource] = None
        self._task: Optional[asyncio.Task] = None

    async def enable(self, participant: rtc.LocalParticipant) -> None:
        sample_rate, channels = self.SAMPLE_RATE, self.NUM_CHANNELS
        if self.audio_file:
            try:
                self._wav = wave.open(self.audio_file, "rb")
            except (OSError, wave.Error) as e:
                raise MediaDeviceError(f"cannot open audio file {self.audio_file}: {e}") from e
            if self._wav.getsampwidth() != 2:
                raise MediaDeviceError(f"{self.audio_file}: only 16-bit PCM is supported")
            sample_rate, channels = self._wav.getframerate(), self._wav.getnchannels()

        try:
            self._audio_source = rtc.AudioSource(sample_rate, channels)
            mic = rtc.LocalAudioTrack.create_audio_track("microphone", self._audio_source)
            await participant.publish_track(
                mic, rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_MICROPHONE)
            )
            camera_source = rtc.VideoSource(self.VIDEO_WIDTH, self.VIDEO_HEIGHT)
            cam = rtc.LocalVideoTrack.create_video_track("camera", camera_source)
            await participant.publish_track(
                cam, rtc.TrackPublishOptions(source=rtc.TrackSource.SOURCE_CAMERA)
            )
        except Exception as e:
            raise MediaDeviceError(f"could not publish local media: {e}") from e

        if self._wav is not None:
            self._task = asyncio.create_task(self._stream_wav())

    async def _stream_wav(self) -> None:
        wav, source = self._wav, self._audio_source
        samples = wav.getframerate() * self.FRAME_MS // 1000
        while True:
            chunk = wav.readframes(samples)
            if not chunk:
                break
            n = len(chunk) // (2 * wav.getnchannels())
            await source.capture_frame(
                rtc.AudioFrame(
                    data=chunk,
                    sample_rate=wav.getframerate(),
                    num_channels=wav.getnchannels(),
                    samples_per_channel=n,
                )
            )
        logger.info("Finished streaming %s", self.audio_file)

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        if self._wav is not None:
            self._wav.close()


class InterviewClient:
    """
    Drives one interview at a time: credentials, room, transcript, scoring.
    """
    def __init__(
        self,
        backend: BackendClient,
        *,
        room_factory: Callable[[], rtc.Room] = rtc.Room,
        media: Optional[LocalMedia] = None,
        alert: Optional[Callable[[str], None]] = None,
        agent_timeout: float = 15.0,
    ) -> None:
        self.backend = backend
        self.state = InterviewState()
        self._room_factory = room_factory
        self._media = media or LocalMedia()
        self._alert = alert or (lambda msg: logger.error("ALERT: %s", msg))
        self._agent_timeout = agent_timeout
        self._room: Optional[rtc.Room] = None
        self._pending: List[asyncio.Task] = []

    # -- room events ---------------------------------------------------------

    def _role_for(self, identity: Optional[str]) -> str:
        local = self._room.local_participant.identity if self._room else None
        return "user" if identity and identity == local else "agent"

    def _on_transcription(self, segments, participant=None, publication=None) -> None:
        role = self._role_for(participant.identity if participant else None)
        for seg in segments:
            if seg.text:
                self.state.add_segment(TranscriptSegment(id=seg.id, role=role, text=seg.text))

    def _on_text_stream(self, reader, participant_identity: str) -> None:
        async def _read():
            text = await reader.read_all()
            seg_id = reader.info.attributes.get(SEGMENT_ID_ATTRIBUTE) or reader.info.stream_id
            if text:
                self.state.add_segment(
                    TranscriptSegment(id=seg_id, role=self._role_for(participant_identity), text=text)
                )

        self._pending.append(asyncio.create_task(_read()))

    def _wire(self, room: rtc.Room, disconnected: asyncio.Event) -> None:
        room.on("transcription_received", self._on_transcription)
        room.on("disconnected", lambda *_: disconnected.set())
        room.register_text_stream_handler(TRANSCRIPTION_TOPIC, self._on_text_stream)

    async def _watch_for_agent(self, room: rtc.Room) -> None:
        await asyncio.sleep(self._agent_timeout)
        agents = [
            p for p in room.remote_participants.values()
            if p.kind == rtc.ParticipantKind.PARTICIPANT_KIND_AGENT
        ]
        if not agents:
            logger.warning(
                "No interviewer agent joined %s after %.0fs; is the agent worker running?",
                room.name, self._agent_timeout,
            )

    # -- lifecycle -------------------------------------------------------------

    async def run(self, prompt: Dict[str, Any], *, duration: Optional[float] = None) -> InterviewState:
        """Run one interview for ``prompt`` and return the final state.

        The interview ends when the room disconnects (the agent or the server
        closes it) or, with ``duration`` set, after that many seconds.
        """
        ticket = self.state.start(prompt)

        try:
            details = await self.backend.connection_details(prompt)
        except BackendError as e:
            logger.error("Failed to get connection details: %s", e)
            self.state.connect_failed(ticket, str(e))
            self._alert(JOIN_FAILED_ALERT)
            return self.state

        room = self._room_factory()
        self._room = room
        disconnected = asyncio.Event()
        self._wire(room, disconnected)

        try:
            await room.connect(details["serverUrl"], details["participantToken"])
        except (rtc.ConnectError, KeyError) as e:
            logger.error("Failed to join room %s: %s", details.get("roomName"), e)
            self.state.connect_failed(ticket, str(e))
            self._alert(JOIN_FAILED_ALERT)
            return self.state

        if not self.state.connected(ticket):
            logger.info("Interview restarted while connecting; leaving %s", room.name)
            await room.disconnect()
            return self.state
        logger.info("Joined %s as %s", details.get("roomName"), details.get("participantIdentity"))

        try:
            await self._media.enable(room.local_participant)
        except MediaDeviceError as e:
            logger.error("%s", e)
            self._alert(DEVICE_FAILED_ALERT)

        watchdog = asyncio.create_task(self._watch_for_agent(room))
        try:
            if duration is None:
                await disconnected.wait()
            else:
                try:
                    await asyncio.wait_for(disconnected.wait(), timeout=duration)
                except asyncio.TimeoutError:
                    logger.info("Interview time is up, leaving room")
                    await room.disconnect()
        finally:
            watchdog.cancel()
            await self._media.close()

        for outcome in await asyncio.gather(*self._pending, return_exceptions=True):
            if isinstance(outcome, Exception):
                logger.error("Failed to read transcription stream: %s", outcome)
        self._pending.clear()

        await self._finish()
        return self.state

    async def _finish(self) -> None:
        ticket = self.state.disconnected()
        if ticket is None:
            logger.info("Interview ended with no transcript; nothing to score")
            return

        try:
            raw = await self.backend.analyze_transcript(
                self.state.transcript_text(), self.state.hard_skills
            )
        except BackendError as e:
            logger.error("Transcript analysis failed: %s", e)
            self.state.scoring_failed(ticket, str(e))
            return

        if not self.state.scored(ticket, ScoreResult.from_dict(raw)):
            logger.info("Dropping stale score result for epoch %d", ticket.epoch)
