"""
Assistant Chat Package

Streams the assistant's reply into the conversation as it arrives.
"""

from brisk_insights.chat.errors import (
    AuthenticationError,
    ChatError,
    DecodeError,
    NetworkError,
    RequestTimeoutError,
    ServerError,
)
from brisk_insights.chat.decoder import DecodeBuffer, IncrementalDecoder
from brisk_insights.chat.transport import ChatTransport
from brisk_insights.chat.reconciler import ChatReconciler

__all__ = [
    # Errors
    "AuthenticationError",
    "ChatError",
    "DecodeError",
    "NetworkError",
    "RequestTimeoutError",
    "ServerError",
    # Components
    "ChatReconciler",
    "ChatTransport",
    "DecodeBuffer",
    "IncrementalDecoder",
]
