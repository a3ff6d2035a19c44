"""
Conversation Session Controller

State machine for one live voice conversation in one client session:

    idle -> requesting_permission -> ready | blocked
    ready -> connecting -> active -> ending -> summarizing -> saved | save_failed
    ending -> discarded                     (nothing was said)
    saved | save_failed | discarded -> idle (result view closed)

Agent events are handled synchronously by `dispatch`, which only appends to
the transcript or records errors; everything that waits on the network is an
async command (`start`, `end`, `retry_save`, `meter`, ...).

A device switch during a call tears the whole call down and starts a new one
on the new device; live hot-swap is not attempted.
"""
import asyncio
import datetime as dt
import logging
from enum import Enum
from typing import Callable, List, Optional

from ..core.errors import AppError, QuotaError, UpstreamError
from ..core.quota import MIN_CALL_START_SECONDS, quota_level
from ..config import settings
from ..models.conversation import NO_SUMMARY
from ..services.summarizer import SUMMARY_FAILED
from .base import (
    AgentEvent,
    AgentEventType,
    AudioInput,
    BackendGateway,
    MicrophoneNotFound,
    MicrophonePermissionDenied,
    VoiceAgent,
)

logger = logging.getLogger(__name__)


EMPTY_CONVERSATION = "Cannot save empty conversation"
SAVE_FAILED = "Conversation ended but failed to save. Please try saving again."
START_FAILED = "Failed to start conversation"
NOT_ENOUGH_TIME = "Not enough call time remaining to start a conversation."
TIME_USED_UP = "Your call time has run out."
PERMISSION_DENIED = "Microphone access was denied. Please allow microphone access to use voice chat."
NO_MICROPHONE = "No microphone found. Please connect a microphone and try again."

SPEAKER_PREFIX = {"user": "You: ", "ai": "Assistant: "}


class CallState(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    READY = "ready"
    BLOCKED = "blocked"
    CONNECTING = "connecting"
    ACTIVE = "active"
    ENDING = "ending"
    SUMMARIZING = "summarizing"
    SAVED = "saved"
    SAVE_FAILED = "save_failed"
    DISCARDED = "discarded"


class InvalidTransition(RuntimeError):
    pass


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class ConversationController:
    def __init__(
        self,
        agent: VoiceAgent,
        audio: AudioInput,
        gateway: BackendGateway,
        *,
        min_start_seconds: int = MIN_CALL_START_SECONDS,
        summary_timeout: Optional[float] = None,
        opening_line: Optional[str] = None,
        clock: Callable[[], dt.datetime] = _utcnow,
    ):
        self.agent = agent
        self.audio = audio
        self.gateway = gateway
        self.min_start_seconds = min_start_seconds
        self.summary_timeout = (
            summary_timeout if summary_timeout is not None else settings.summary_timeout_seconds
        )
        self.opening_line = opening_line
        self._clock = clock

        self.state = CallState.IDLE
        self.has_permission = False
        self.device_id: Optional[str] = None
        self.is_muted = False

        self.lines: List[str] = []
        self.current_subtitle = ""
        self.summary = ""
        self.error_message = ""
        self.start_time: Optional[dt.datetime] = None
        self.end_time: Optional[dt.datetime] = None
        self.duration = 0
        self.saved_record: Optional[dict] = None
        self.remaining_seconds: Optional[int] = None
        self.quota_exceeded = False

        agent.subscribe(self.dispatch)

    # ---------- state helpers ----------
    def _transition(self, new_state: CallState) -> CallState:
        old_state = self.state
        self.state = new_state
        logger.debug("call state %s -> %s", old_state.value, new_state.value)
        return old_state

    def _require(self, *states: CallState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise InvalidTransition(f"expected one of [{allowed}], in {self.state.value}")

    @property
    def transcript(self) -> str:
        return "\n\n".join(self.lines)

    @property
    def quota_level(self) -> str:
        return quota_level(self.remaining_seconds)

    # ---------- agent events ----------
    def dispatch(self, event: AgentEvent) -> None:
        """React to one voice-agent event, in local arrival order."""
        if event.type == AgentEventType.CONNECTED:
            if self.state == CallState.CONNECTING:
                self._transition(CallState.ACTIVE)
        elif event.type == AgentEventType.DISCONNECTED:
            self.current_subtitle = ""
            logger.info("voice agent disconnected (state=%s)", self.state.value)
        elif event.type == AgentEventType.TRANSCRIPT:
            if self.state not in (CallState.CONNECTING, CallState.ACTIVE):
                logger.debug("dropping transcript event in state %s", self.state.value)
                return
            payload = event.payload
            if isinstance(payload, str):
                self._append("ai", payload)
            elif isinstance(payload, dict) and payload.get("message"):
                source = "user" if payload.get("source") == "user" else "ai"
                self._append(source, payload["message"])
        elif event.type == AgentEventType.ERROR:
            payload = event.payload
            self.error_message = payload if isinstance(payload, str) else str(payload)
            logger.error("voice agent error: %s", self.error_message)

    def _append(self, source: str, text: str) -> None:
        self.current_subtitle = text
        self.lines.append(f"{SPEAKER_PREFIX[source]}{text}")

    # ---------- commands ----------
    async def mount(self) -> CallState:
        """Ask for the microphone; ends in ready or blocked."""
        self._require(CallState.IDLE)
        self._transition(CallState.REQUESTING_PERMISSION)
        try:
            await self.audio.request_permission()
        except MicrophonePermissionDenied:
            self.error_message = PERMISSION_DENIED
            return self._block()
        except MicrophoneNotFound:
            self.error_message = NO_MICROPHONE
            return self._block()
        except Exception as e:
            self.error_message = f"Microphone error: {e}"
            return self._block()
        self.has_permission = True
        self._transition(CallState.READY)
        return self.state

    def _block(self) -> CallState:
        logger.warning("microphone unavailable: %s", self.error_message)
        self.has_permission = False
        self._transition(CallState.BLOCKED)
        return self.state

    async def start(self) -> None:
        """
        Start a call.

        Raises:
            QuotaError: quota configured but below the start floor (stays ready)
            UpstreamError: the agent or recorder failed to start (back to ready)
            AppError: the quota check itself failed
        """
        if self.state == CallState.IDLE and self.has_permission:
            self._transition(CallState.READY)
        self._require(CallState.READY)
        self.error_message = ""

        try:
            self.remaining_seconds = await self.gateway.tick(0)
        except QuotaError as e:
            if e.kind != QuotaError.UNCONFIGURED:
                self.error_message = NOT_ENOUGH_TIME
                raise
            # No quota configured: calls are not metered
            self.remaining_seconds = None
        except AppError as e:
            self.error_message = START_FAILED
            logger.error("quota check failed: %s", e.detail)
            raise

        if self.remaining_seconds is not None and self.remaining_seconds < self.min_start_seconds:
            self.error_message = NOT_ENOUGH_TIME
            raise QuotaError(
                QuotaError.EXHAUSTED,
                remaining=self.remaining_seconds,
                detail=f"{self.remaining_seconds}s left, {self.min_start_seconds}s needed to start",
            )

        self.lines = []
        self.summary = ""
        self.saved_record = None
        self.quota_exceeded = False
        self._transition(CallState.CONNECTING)
        try:
            await self.audio.start_recording(self.device_id)
            await self.agent.start(self.device_id)
        except Exception as e:
            logger.error("failed to start conversation: %r", e)
            await self._stop_recording()
            self.error_message = START_FAILED
            self._transition(CallState.READY)
            raise UpstreamError(f"voice agent start failed: {e!r}") from e

        self.start_time = self._clock()
        if self.opening_line:
            self._append("ai", self.opening_line)
        if self.state == CallState.CONNECTING:
            self._transition(CallState.ACTIVE)

    async def end(self) -> Optional[dict]:
        """
        End the call, summarize and save it.

        Returns the saved record, or None when nothing was said or the save
        failed (see `state` and `error_message`).
        """
        self._require(CallState.CONNECTING, CallState.ACTIVE)
        self._transition(CallState.ENDING)
        self.error_message = ""

        # The transcript is already local; closing failures must not lose it
        await self._stop_recording()
        try:
            await self.agent.end()
        except Exception as e:
            logger.warning("voice agent end failed: %r", e)
        self.current_subtitle = ""

        self.end_time = self._clock()
        started = self.start_time or self.end_time
        self.duration = max(0, int((self.end_time - started).total_seconds()))

        transcript = self.transcript
        if not transcript.strip():
            self.error_message = EMPTY_CONVERSATION
            self._transition(CallState.DISCARDED)
            return None

        self._transition(CallState.SUMMARIZING)
        self.summary = await self._summarize(transcript)
        return await self._save()

    async def _summarize(self, transcript: str) -> str:
        try:
            return await asyncio.wait_for(self.gateway.summarize(transcript), timeout=self.summary_timeout)
        except asyncio.TimeoutError:
            logger.warning("summary timed out after %ss", self.summary_timeout)
        except AppError as e:
            logger.warning("summary failed: %s", e.detail)
        except Exception as e:
            logger.warning("summary failed unexpectedly: %r", e)
        return SUMMARY_FAILED

    async def _stop_recording(self) -> None:
        try:
            await self.audio.stop_recording()
        except Exception as e:
            logger.warning("stopping the recorder failed: %r", e)

    async def _save(self) -> Optional[dict]:
        payload = {
            "transcript": self.transcript.strip(),
            "summary": (self.summary or "").strip() or NO_SUMMARY,
            "duration": self.duration,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "status": "completed",
        }
        try:
            record = await self.gateway.save_conversation(payload)
        except Exception as e:
            detail = e.detail if isinstance(e, AppError) else repr(e)
            logger.error("saving conversation failed: %s", detail)
            self.error_message = SAVE_FAILED
            self._transition(CallState.SAVE_FAILED)
            return None

        self.saved_record = record
        self.quota_exceeded = bool(record.get("quotaExceeded"))
        self.error_message = ""
        self._transition(CallState.SAVED)
        return record

    async def retry_save(self) -> Optional[dict]:
        """Resubmit after a failed save. Each successful submit creates a new record."""
        self._require(CallState.SAVE_FAILED)
        return await self._save()

    def close(self) -> None:
        """Close the result view and forget the call."""
        self._require(CallState.SAVED, CallState.SAVE_FAILED, CallState.DISCARDED)
        self.lines = []
        self.summary = ""
        self.saved_record = None
        self.current_subtitle = ""
        self.error_message = ""
        self._transition(CallState.IDLE)

    async def switch_device(self, device_id: str) -> None:
        """Select an audio device; during a call this restarts the call on it."""
        self.device_id = device_id
        if self.state != CallState.ACTIVE:
            return
        logger.info("audio device changed mid-call, restarting on %s", device_id)
        await self.end()
        self.close()
        await self.start()

    async def toggle_mute(self) -> None:
        try:
            await self.agent.set_volume(1.0 if self.is_muted else 0.0)
        except Exception as e:
            logger.error("changing volume failed: %r", e)
            self.error_message = "Failed to change volume"
            return
        self.is_muted = not self.is_muted

    # ---------- metering ----------
    async def meter(self, seconds: int = 1) -> Optional[int]:
        """
        Charge `seconds` of call time. An exhausted quota ends the call.

        Returns the remaining balance, or None when not in a call or unmetered.
        """
        if self.state != CallState.ACTIVE:
            return None
        try:
            self.remaining_seconds = await self.gateway.tick(seconds)
        except QuotaError as e:
            if e.kind == QuotaError.UNCONFIGURED:
                self.remaining_seconds = None
                return None
            self.remaining_seconds = 0
            if self.state != CallState.ACTIVE:
                # ended by the user while the tick was in flight
                return 0
            logger.info("call time exhausted, ending call")
            await self.end()
            if not self.error_message:
                self.error_message = TIME_USED_UP
            return 0
        return self.remaining_seconds

    async def run_metering(self, interval: float = 1.0, tick_seconds: int = 1) -> None:
        """Tick the ledger every `interval` seconds for as long as the call is active."""
        while self.state == CallState.ACTIVE:
            await asyncio.sleep(interval)
            await self.meter(tick_seconds)
