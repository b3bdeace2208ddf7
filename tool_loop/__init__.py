from tool_loop.adaptors.openai import OpenAIAdaptor

# The Ollama SDK is an optional extra
try:
    from tool_loop.adaptors.ollama import OllamaAdaptor
except ImportError:
    pass

from tool_loop.agent import DEFAULT_MAX_ITERATIONS, Agent
from tool_loop.config import (
    AIConfig,
    AIMode,
    ModelProvider,
    configure_logging,
    create_adaptor,
    create_agent,
    load_config,
)
from tool_loop.exceptions import (
    ConfigError,
    InferenceError,
    MaxIterationsReached,
    ToolExecutionError,
    ToolLoopError,
    ToolNotFound,
)
from tool_loop.execution import Execution, Message, ToolCall, ToolExecution, ToolOutcome
from tool_loop.executor import ToolExecutor
from tool_loop.hooks import (
    AfterIterationEventData,
    AfterModelCallEventData,
    AfterRunEventData,
    AfterToolCallEventData,
    BeforeIterationEventData,
    BeforeModelCallEventData,
    BeforeRunEventData,
    BeforeToolCallEventData,
    ChunkEventData,
    HookEvent,
    HookRegistry,
    Middleware,
    OnToolErrorEventData,
)
from tool_loop.model import (
    GenerationParams,
    InferenceRequest,
    ModelAdaptor,
    ModelResponse,
    NativeToolCall,
)
from tool_loop.notation import (
    detect_tool_call,
    extract_tool_calls,
    has_tool_result,
    render_tool_result,
    strip_tool_calls,
)
from tool_loop.prompts import build_agent_request
from tool_loop.tools import ToolCallResponse, ToolContent, ToolDescriptor, format_tools_for_prompt

__all__ = [
    # Core
    "Agent",
    "DEFAULT_MAX_ITERATIONS",
    "Execution",
    "GenerationParams",
    "InferenceRequest",
    "Message",
    "ModelAdaptor",
    "ModelResponse",
    "NativeToolCall",
    "OpenAIAdaptor",
    "OllamaAdaptor",
    "ToolCall",
    "ToolExecution",
    "ToolOutcome",
    # Tools
    "ToolCallResponse",
    "ToolContent",
    "ToolDescriptor",
    "ToolExecutor",
    "format_tools_for_prompt",
    # Notation
    "detect_tool_call",
    "extract_tool_calls",
    "has_tool_result",
    "render_tool_result",
    "strip_tool_calls",
    # Config and prompts
    "AIConfig",
    "AIMode",
    "ModelProvider",
    "build_agent_request",
    "configure_logging",
    "create_adaptor",
    "create_agent",
    "load_config",
    # Hooks
    "HookRegistry",
    "HookEvent",
    "Middleware",
    # Hook Event Data
    "BeforeRunEventData",
    "AfterRunEventData",
    "BeforeIterationEventData",
    "AfterIterationEventData",
    "BeforeModelCallEventData",
    "ChunkEventData",
    "AfterModelCallEventData",
    "BeforeToolCallEventData",
    "AfterToolCallEventData",
    "OnToolErrorEventData",
    # Exceptions
    "ToolLoopError",
    "ConfigError",
    "InferenceError",
    "MaxIterationsReached",
    "ToolExecutionError",
    "ToolNotFound",
]
