"""
Local views of the agent service's message content together with the
session configuration class.
"""
from .models import (
    ContentItem,
    ImageFileContent,
    Message,
    OtherContent,
    SessionConfig,
    TextContent,
    parse_content_item,
)

__all__ = [
    "ContentItem",
    "ImageFileContent",
    "Message",
    "OtherContent",
    "SessionConfig",
    "TextContent",
    "parse_content_item",
]
