"""
LLM Module
多供应商 LLM 抽象层
"""
from .base import BaseLLM, GenerationCall, LLMResponse, Message, MessageRole
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM
from .deepseek_llm import DeepSeekLLM
from .gemini_llm import GeminiLLM
from .factory import get_llm, SUPPORTED_PROVIDERS

__all__ = [
    "BaseLLM",
    "GenerationCall",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "AnthropicLLM",
    "DeepSeekLLM",
    "GeminiLLM",
    "get_llm",
    "SUPPORTED_PROVIDERS",
]
