"""
Conversational listing-data extraction engine.

Each turn the caller sends the chat history plus the fields extracted so far;
``run_turn`` asks the completion service to continue the conversation and
folds its reply back into a ``TurnResult``.
"""

from .completion import CompletionClient, RetryPolicy, UpstreamError
from .config import ConfigurationError, Settings, get_settings
from .models import Message, TurnRequest, TurnResult
from .turn import run_turn

__all__ = [
    "CompletionClient",
    "ConfigurationError",
    "Message",
    "RetryPolicy",
    "Settings",
    "TurnRequest",
    "TurnResult",
    "UpstreamError",
    "get_settings",
    "run_turn",
]
