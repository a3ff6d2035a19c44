"""
Voice client

Client-side conversation controller and the interfaces of the collaborators
it drives (voice agent, microphone, backend API).
"""

from .base import (
    AgentEvent,
    AgentEventType,
    AudioInput,
    BackendGateway,
    MicrophoneNotFound,
    MicrophonePermissionDenied,
    VoiceAgent,
)
from .controller import CallState, ConversationController, InvalidTransition
from .gateway import HttpBackendGateway

__all__ = [
    "AgentEvent",
    "AgentEventType",
    "AudioInput",
    "BackendGateway",
    "MicrophoneNotFound",
    "MicrophonePermissionDenied",
    "VoiceAgent",
    "CallState",
    "ConversationController",
    "InvalidTransition",
    "HttpBackendGateway",
]
