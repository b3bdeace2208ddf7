"""Prompt templates for the QA and agent modes.

The agent template is where the model learns the wire notation: the tool list
is substituted into ``{mcp_tools}`` and the instructions show the
``<tool_call>`` form the loop parses and the ``<tool_result>`` form results
come back in.
"""

import re
from dataclasses import dataclass
from typing import Optional

from tool_loop.config import AIMode
from tool_loop.execution import Message
from tool_loop.model import GenerationParams, InferenceRequest
from tool_loop.tools import ToolDescriptor, format_tools_for_prompt


@dataclass(frozen=True)
class PromptTemplate:
    id: str
    name: str
    mode: AIMode
    system_prompt: str
    user_prompt: str
    variables: tuple[str, ...]


def build_prompt(template: str, variables: dict[str, str]) -> str:
    """Replace every ``{key}`` in ``template`` with its value.

    Placeholders without a value are left as they are.
    """
    result = template
    for key, value in variables.items():
        result = re.sub(r"\{" + re.escape(key) + r"\}", lambda _: value, result)
    return result


QA_TEMPLATE = PromptTemplate(
    id="qa-default",
    name="File System QA",
    mode=AIMode.QA,
    system_prompt="""You are an intelligent file system assistant.
Your goal is to help the user manage and understand their files based EXACTLY on the context provided.
The context below is the REAL-TIME state of the user's current directory.

Current Directory: {current_path}

Context Information:
{fs_context}

Instructions:
- You are NOT a generic AI. You are a tool integrated into this specific file explorer.
- Always assume the "Visible Files" list is what the user is looking at RIGHT NOW.
- Answer specific questions about file sizes, dates, and types using the provided metadata.
- If the user asks "Where am I?", look at the "Current Directory" and answer confidently.
- Be concise and direct.""",
    user_prompt="{user_query}",
    variables=("fs_context", "current_path", "user_query"),
)


AGENT_TEMPLATE = PromptTemplate(
    id="agent-default",
    name="File System Agent",
    mode=AIMode.AGENT,
    system_prompt="""You are an AI agent with access to file system operations via tools. You can help users manage, analyze, and organize their files.

Available Tools:
{mcp_tools}

To use a tool, reply with a tool call in exactly this form:
<tool_call>
{"name": "tool_name", "arguments": {"arg": "value"}}
</tool_call>

Each result comes back in a user message:
<tool_result name="tool_name">
...
</tool_result>
An error="true" attribute on the result means the tool failed.

Guidelines:
- Think step-by-step before using tools
- Use tools to gather information before answering
- Explain what you're doing and why
- Be cautious with destructive operations
- Always confirm before deleting or moving files
- When you have the answer, reply without any tool call

Current Directory: {current_path}
File System Context: {fs_context}""",
    user_prompt="{user_query}",
    variables=("mcp_tools", "current_path", "fs_context", "user_query"),
)


PROMPT_TEMPLATES: dict[str, PromptTemplate] = {
    QA_TEMPLATE.id: QA_TEMPLATE,
    AGENT_TEMPLATE.id: AGENT_TEMPLATE,
}


def get_template_for_mode(mode: AIMode) -> PromptTemplate:
    if mode == AIMode.AGENT:
        return AGENT_TEMPLATE
    return QA_TEMPLATE


def build_agent_request(
    query: str,
    tools: list[ToolDescriptor],
    current_path: str = "",
    fs_context: str = "",
    params: Optional[GenerationParams] = None,
) -> InferenceRequest:
    """Build the opening [system, user] request for an agent run."""
    variables = {
        "mcp_tools": format_tools_for_prompt(tools),
        "current_path": current_path,
        "fs_context": fs_context,
        "user_query": query,
    }
    messages = [
        Message(role="system", content=build_prompt(AGENT_TEMPLATE.system_prompt, variables)),
        Message(role="user", content=build_prompt(AGENT_TEMPLATE.user_prompt, variables)),
    ]
    return InferenceRequest(messages=messages, params=params or GenerationParams())
