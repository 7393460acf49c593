"""LLM module - client per i modelli linguistici."""
from llm.base import BaseLLMClient, LLMResponse, parse_structured_output
from llm.openai_client import OpenAIChatClient

__all__ = [
    "BaseLLMClient",
    "LLMResponse",
    "parse_structured_output",
    "OpenAIChatClient",
]
