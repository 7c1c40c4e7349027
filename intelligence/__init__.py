"""
Intelligence Module
智能层 - 多供应商 LLM 抽象
"""
from .llm import (
    BaseLLM,
    GenerationCall,
    LLMResponse,
    Message,
    OpenAILLM,
    AnthropicLLM,
    DeepSeekLLM,
    GeminiLLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "GenerationCall",
    "LLMResponse",
    "Message",
    "OpenAILLM",
    "AnthropicLLM",
    "DeepSeekLLM",
    "GeminiLLM",
    "get_llm",
]
