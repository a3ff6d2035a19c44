"""
Services Module

- Quota ledger: per-user call-seconds metering
- Token bridge: one-time login token -> session credential
- Summarizer: OpenAI chat completion summaries of call transcripts
- Conversation store: persistence of finished conversations
"""

from .quota_ledger import QuotaLedger, quota_ledger
from .token_bridge import (
    TokenBridge,
    token_bridge,
    attach_session_cookie,
    clear_session_cookie,
)
from .summarizer import (
    SummarizerService,
    summarizer,
    SUMMARY_FAILED,
    EMPTY_TRANSCRIPT,
)
from . import conversation_store

__all__ = [
    # Quota
    "QuotaLedger",
    "quota_ledger",
    # Auth
    "TokenBridge",
    "token_bridge",
    "attach_session_cookie",
    "clear_session_cookie",
    # Summaries
    "SummarizerService",
    "summarizer",
    "SUMMARY_FAILED",
    "EMPTY_TRANSCRIPT",
    # Conversations
    "conversation_store",
]
