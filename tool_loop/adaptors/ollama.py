"""Ollama adaptor for tool-loop."""

from typing import Optional

from ollama import AsyncClient

from tool_loop.execution import Message
from tool_loop.model import ChunkCallback, ModelAdaptor, ModelResponse, NativeToolCall
from tool_loop.tools import ToolDescriptor


class OllamaAdaptor(ModelAdaptor):
    """Ollama model adaptor using the official SDK.

    Args:
        model: Model name (default: qwen2.5-coder:7b).
        host: Ollama server URL (default: None, SDK defaults to localhost:11434).
    """

    def __init__(
        self,
        model: str = "qwen2.5-coder:7b",
        host: Optional[str] = None,
    ):
        self.model = model
        self.client = AsyncClient(host=host)

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkCallback] = None,
        **kwargs,
    ) -> ModelResponse:
        chat_kwargs = {
            "model": self.model,
            "messages": [{"role": msg.role, "content": msg.content} for msg in messages],
        }
        if tools:
            chat_kwargs["tools"] = [self._convert_tool(tool) for tool in tools]

        options = self._options(kwargs)
        if options:
            chat_kwargs["options"] = options

        if on_chunk is None:
            response = await self.client.chat(**chat_kwargs)
            return self._parse_response(response.message.content or "", response.message.tool_calls)

        content_parts: list[str] = []
        tool_calls = []
        async for part in await self.client.chat(stream=True, **chat_kwargs):
            text = part.message.content
            if text:
                content_parts.append(text)
                await on_chunk(text)
            if part.message.tool_calls:
                tool_calls.extend(part.message.tool_calls)

        return self._parse_response("".join(content_parts), tool_calls)

    @staticmethod
    def _options(kwargs: dict) -> dict:
        # Ollama calls the completion length num_predict.
        options = {}
        if kwargs.get("temperature") is not None:
            options["temperature"] = kwargs["temperature"]
        if kwargs.get("top_p") is not None:
            options["top_p"] = kwargs["top_p"]
        if kwargs.get("max_tokens") is not None:
            options["num_predict"] = kwargs["max_tokens"]
        return options

    def _convert_tool(self, tool: ToolDescriptor) -> dict:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters(),
            },
        }

    def _parse_response(self, content: str, tool_calls) -> ModelResponse:
        # Ollama does not assign call ids; the loop synthesizes them.
        native_calls = [
            NativeToolCall(
                id="",
                name=tc.function.name,
                arguments=dict(tc.function.arguments or {})
                if not isinstance(tc.function.arguments, str)
                else tc.function.arguments,
            )
            for tc in tool_calls or []
        ]
        return ModelResponse(
            message=Message(role="assistant", content=content),
            native_tool_calls=native_calls,
            model=self.model,
        )
