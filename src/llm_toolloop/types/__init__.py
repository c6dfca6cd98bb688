from .chat import ChatMessage, CompletionResult, ProviderOptions, TokenCallback
from .tool import AssistantStep, BeforeRequest, ToolCall, ToolCallEvent, ToolResultEvent

__all__ = [
    "ChatMessage",
    "CompletionResult",
    "ProviderOptions",
    "TokenCallback",
    "ToolCall",
    "AssistantStep",
    "BeforeRequest",
    "ToolCallEvent",
    "ToolResultEvent",
]
