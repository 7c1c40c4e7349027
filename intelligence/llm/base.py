"""
Base LLM
LLM 抽象基类
"""
from abc import ABC, abstractmethod
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from enum import Enum


MODEL_HINTS = ("chat", "thinking", "auto")


class MessageRole(str, Enum):
    """消息角色"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    """对话消息"""
    role: MessageRole
    content: str

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典 (用于 API 调用)"""
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=content)


@dataclass
class LLMResponse:
    """LLM 响应"""
    content: str
    model: str
    provider: str = ""
    usage: Dict[str, int] = field(default_factory=dict)  # prompt_tokens, completion_tokens, total_tokens
    finish_reason: Optional[str] = None
    raw_response: Optional[Any] = None  # 原始响应对象


@dataclass
class GenerationCall:
    """
    一次生成调用

    流水线与外部生成能力之间唯一的交互单元: 输入消息 + 选项。
    """
    messages: List[Message]
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    model_hint: str = "auto"  # chat | thinking | auto

    def options(self) -> Dict[str, Any]:
        opts: Dict[str, Any] = {"model_hint": self.model_hint}
        if self.temperature is not None:
            opts["temperature"] = self.temperature
        if self.max_tokens is not None:
            opts["max_tokens"] = self.max_tokens
        return opts


class BaseLLM(ABC):
    """
    LLM 抽象基类

    所有 LLM 供应商实现需继承此类
    """

    def __init__(
        self,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 1400,
        timeout: float = 60.0,
        chat_model: Optional[str] = None,
        thinking_model: Optional[str] = None,
        **kwargs,
    ):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.chat_model = chat_model
        self.thinking_model = thinking_model
        self.extra_config = kwargs

    @property
    @abstractmethod
    def provider(self) -> str:
        """返回供应商名称"""
        pass

    def resolve_model(self, model_hint: Optional[str] = None) -> str:
        """
        根据 model_hint 选择模型

        thinking 适合分析类任务, chat 适合快速创作; 未配置时回落到默认模型。
        """
        hint = str(model_hint or "auto").strip().lower()
        if hint == "thinking" and self.thinking_model:
            return self.thinking_model
        if hint == "chat" and self.chat_model:
            return self.chat_model
        return self.model

    @abstractmethod
    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        """
        异步生成响应

        Args:
            messages: 对话消息列表
            **kwargs: temperature, max_tokens, model_hint

        Returns:
            LLMResponse
        """
        pass

    async def achat(self, user_message: str, system_prompt: Optional[str] = None) -> str:
        """异步简单对话接口"""
        messages = []
        if system_prompt:
            messages.append(Message.system(system_prompt))
        messages.append(Message.user(user_message))

        response = await self.acomplete(messages)
        return response.content

    async def aclose(self) -> None:
        """
        关闭底层客户端资源（默认 no-op）。
        子类可覆盖以释放 HTTP 连接池。
        """
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model}, provider={self.provider})"
