"""Brain module - AI replies, reply queue and sequencing."""

from .ai_service import AIResponse, AIService
from .llm_client import LLMClient
from .orchestrator import AutoReplyRule, ReplyOrchestrator
from .reply_queue import NullDisplay, QueuedReply, ReplyQueue, ReplySequencer, ReplyState

__all__ = [
    "AIResponse", "AIService", "LLMClient",
    "AutoReplyRule", "ReplyOrchestrator",
    "NullDisplay", "QueuedReply", "ReplyQueue", "ReplySequencer", "ReplyState",
]
