"""
Voice Session Collaborator Interfaces

The conversation controller talks to three capabilities it does not own:
- VoiceAgent: the external streaming speech-conversation service
- AudioInput: microphone permission and the local recording buffer
- BackendGateway: this service's HTTP API (summaries, saving, quota ticks)
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional


class AgentEventType(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    TRANSCRIPT = "transcript"
    ERROR = "error"


@dataclass
class AgentEvent:
    """
    One event emitted by the voice agent.

    For TRANSCRIPT events the payload is either a plain string (agent speech)
    or a dict {"source": "user" | "ai", "message": str}.
    For ERROR events the payload is a string or an exception.
    """
    type: AgentEventType
    payload: Any = None


AgentListener = Callable[[AgentEvent], None]


class VoiceAgent(ABC):
    """Voice agent session (opaque bidirectional stream)"""

    @abstractmethod
    def subscribe(self, listener: AgentListener) -> None:
        """Register the callback that receives every AgentEvent, in arrival order"""
        pass

    @abstractmethod
    async def start(self, device_id: Optional[str] = None) -> None:
        """Open a session; transcript events follow asynchronously"""
        pass

    @abstractmethod
    async def end(self) -> None:
        pass

    @abstractmethod
    async def set_volume(self, volume: float) -> None:
        """0.0 mutes the agent, 1.0 restores it"""
        pass


class MicrophonePermissionDenied(Exception):
    pass


class MicrophoneNotFound(Exception):
    pass


class AudioInput(ABC):
    """Microphone access and local recording buffer"""

    @abstractmethod
    async def request_permission(self) -> None:
        """
        Ask the runtime for microphone access.

        Raises:
            MicrophonePermissionDenied: the user or OS refused
            MicrophoneNotFound: no input device
        """
        pass

    @abstractmethod
    async def start_recording(self, device_id: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def stop_recording(self) -> None:
        pass


class BackendGateway(ABC):
    """Backend API used by the controller"""

    @abstractmethod
    async def summarize(self, transcript: str) -> str:
        pass

    @abstractmethod
    async def save_conversation(self, payload: dict) -> dict:
        """Persist a finished conversation; returns the stored record"""
        pass

    @abstractmethod
    async def tick(self, seconds: int) -> int:
        """
        Consume call-seconds (0 = peek) and return the remaining balance.

        Raises:
            QuotaError: exhausted or unconfigured
        """
        pass
