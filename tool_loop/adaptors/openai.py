"""OpenAI-compatible API adaptor for tool-loop."""

import json
import logging
import os
from typing import Optional

import httpx

from tool_loop.execution import Message
from tool_loop.model import ChunkCallback, ModelAdaptor, ModelResponse, NativeToolCall
from tool_loop.tools import ToolDescriptor

logger = logging.getLogger(__name__)

_GENERATION_KWARGS = ("temperature", "top_p", "max_tokens")


class OpenAIAdaptor(ModelAdaptor):
    """OpenAI-compatible model adaptor.

    Supports the OpenAI API and compatible endpoints (llama.cpp server, vLLM,
    proxies). Local servers usually need no key, so the key is optional.

    Args:
        api_key: API key. Falls back to OPENAI_API_KEY environment variable.
        model: Model name (default: gpt-5-mini).
        base_url: Base URL for the API (default: https://api.openai.com/v1).
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-5-mini",
        base_url: Optional[str] = None,
    ):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self.base_url = (base_url or "https://api.openai.com/v1").rstrip("/")

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolDescriptor],
        on_chunk: Optional[ChunkCallback] = None,
        **kwargs,
    ) -> ModelResponse:
        """Call the chat completions endpoint.

        Args:
            messages: Conversation so far.
            tools: Tools offered to the model as native functions.
            on_chunk: When given, the response is streamed and each content
                delta is awaited through it.
            **kwargs: temperature, top_p, max_tokens, tool_choice, timeout.

        Returns:
            ModelResponse with the assistant message and any native tool calls.

        Raises:
            ValueError: If API response is malformed or unexpected.
            httpx.HTTPError: If the API request fails.
        """
        payload = {
            "model": self.model,
            "messages": self._convert_messages(messages),
        }
        for key in _GENERATION_KWARGS:
            if kwargs.get(key) is not None:
                payload[key] = kwargs[key]

        if tools:
            payload["tools"] = [self._convert_tool(tool) for tool in tools]
            payload["tool_choice"] = kwargs.get("tool_choice", "auto")

        url = f"{self.base_url}/chat/completions"
        timeout = kwargs.get("timeout", 60.0)

        if on_chunk is not None:
            payload["stream"] = True
            return await self._stream(url, payload, timeout, on_chunk)

        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )

        if response.status_code != 200:
            raise ValueError(f"OpenAI API error: {self._error_message(response.json())}")

        return self._parse_response(response.json())

    async def _stream(
        self, url: str, payload: dict, timeout: float, on_chunk: ChunkCallback
    ) -> ModelResponse:
        content_parts: list[str] = []
        # Tool-call deltas arrive in pieces keyed by their index.
        partial_calls: dict[int, dict] = {}

        async with httpx.AsyncClient() as client:
            async with client.stream(
                "POST", url, json=payload, headers=self._headers(), timeout=timeout
            ) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    try:
                        message = self._error_message(json.loads(body))
                    except ValueError:
                        message = body.decode(errors="replace") or "Unknown error"
                    raise ValueError(f"OpenAI API error: {message}")

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    try:
                        event = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping unparsable stream line: {line!r}")
                        continue

                    for choice in event.get("choices") or []:
                        delta = choice.get("delta") or {}
                        text = delta.get("content")
                        if text:
                            content_parts.append(text)
                            await on_chunk(text)
                        for tc in delta.get("tool_calls") or []:
                            self._merge_tool_call_delta(partial_calls, tc)

        native_calls = [
            NativeToolCall(id=call["id"], name=call["name"], arguments=call["arguments"])
            for _, call in sorted(partial_calls.items())
        ]
        return ModelResponse(
            message=Message(role="assistant", content="".join(content_parts)),
            native_tool_calls=native_calls,
            model=self.model,
        )

    @staticmethod
    def _merge_tool_call_delta(partial_calls: dict[int, dict], delta: dict) -> None:
        index = delta.get("index", len(partial_calls))
        call = partial_calls.setdefault(index, {"id": "", "name": "", "arguments": ""})
        if delta.get("id"):
            call["id"] = delta["id"]
        function = delta.get("function") or {}
        if function.get("name"):
            call["name"] += function["name"]
        if function.get("arguments"):
            call["arguments"] += function["arguments"]

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def _error_message(error_data: dict) -> str:
        error = error_data.get("error") if isinstance(error_data, dict) else None
        if isinstance(error, dict):
            return error.get("message", "Unknown error")
        if isinstance(error, str):
            return error
        return "Unknown error"

    def _convert_messages(self, messages: list[Message]) -> list[dict]:
        """Convert tool-loop messages to OpenAI format.

        Tool calls and results already live in the message text (tool-call
        notation stripped, results as <tool_result> user messages), so only
        role and content are sent.
        """
        return [{"role": msg.role, "content": msg.content} for msg in messages]

    def _convert_tool(self, tool: ToolDescriptor) -> dict:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters(),
            },
        }

    def _parse_response(self, data: dict) -> ModelResponse:
        """Parse an OpenAI chat completion into a ModelResponse.

        Raises:
            ValueError: If response format is unexpected.
        """
        if not data.get("choices"):
            raise ValueError("OpenAI response missing 'choices' field")

        choice = data["choices"][0]
        message = choice.get("message", {})
        content = message.get("content") or ""

        native_calls = []
        for tool_call_data in message.get("tool_calls") or []:
            function = tool_call_data.get("function", {})
            native_calls.append(
                NativeToolCall(
                    id=tool_call_data.get("id", ""),
                    name=function.get("name", ""),
                    arguments=function.get("arguments", "{}"),
                )
            )

        return ModelResponse(
            message=Message(role="assistant", content=content),
            native_tool_calls=native_calls,
            model=data.get("model", self.model),
        )
