from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Union

from tool_loop.execution import Message
from tool_loop.tools import ToolDescriptor

ChunkCallback = Callable[[str], Awaitable[None]]


@dataclass(frozen=True)
class GenerationParams:
    temperature: float = 0.7
    top_p: float = 0.9
    max_tokens: int = 2048

    def as_kwargs(self) -> dict:
        return {
            "temperature": self.temperature,
            "top_p": self.top_p,
            "max_tokens": self.max_tokens,
        }


@dataclass(frozen=True)
class InferenceRequest:
    messages: list[Message]
    params: GenerationParams = field(default_factory=GenerationParams)


@dataclass(frozen=True)
class NativeToolCall:
    """A tool call delivered in a structured field of the model response.

    OpenAI-style backends send ``arguments`` as a JSON-encoded string;
    Ollama sends a mapping.
    """

    id: str
    name: str
    arguments: Union[str, dict]


@dataclass(frozen=True)
class ModelResponse:
    message: Message
    native_tool_calls: list[NativeToolCall] = field(default_factory=list)
    model: str = ""


class ModelAdaptor:
    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkCallback] = None,
        **kwargs,
    ) -> ModelResponse:
        """Call the model with messages and available tools.

        When ``on_chunk`` is given the adaptor streams and awaits it with each
        piece of generated text before returning the complete response.
        """
        raise NotImplementedError
