"""LangGraph agent and the text-generation capability the report pipeline depends on."""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.tools import ToolException
from langgraph.graph import END, START, MessagesState, StateGraph
from pydantic import ValidationError

from rssnews_agent.config import Config
from rssnews_agent.models import NewsCollection
from rssnews_agent.tools import NEWS_TOOL_NAME, NewsCollector, make_news_tool

logger = logging.getLogger(__name__)


@dataclass
class AgentResult:
    """Final text of a tool-augmented generation, plus the news tool's output if it was called."""

    text: str
    news: NewsCollection | None = None


class ReportGenerator(ABC):
    """Text generation used by the report pipeline.

    Backends subclass this and implement both coroutines.
    """

    @abstractmethod
    async def generate(self, prompt: str, instructions: str = "") -> str:
        """Return the model's reply to prompt."""

    @abstractmethod
    async def generate_with_news(
        self, prompt: str, collect: NewsCollector, instructions: str = ""
    ) -> AgentResult:
        """Reply to prompt, letting the model call the news tool backed by collect."""


class AgentGenerator(ReportGenerator):
    """ReportGenerator backed by Claude through LangChain."""

    def __init__(self, config: Config, model=None):
        self.config = config
        self.model = model if model is not None else create_model(config)

    async def generate(self, prompt: str, instructions: str = "") -> str:
        messages: list[BaseMessage] = []
        if instructions:
            messages.append(SystemMessage(content=instructions))
        messages.append(HumanMessage(content=prompt))
        response = await self.model.ainvoke(messages)
        return message_text(response).strip()

    async def generate_with_news(
        self, prompt: str, collect: NewsCollector, instructions: str = ""
    ) -> AgentResult:
        agent = create_agent(
            self.model,
            tools=[make_news_tool(collect)],
            system_prompt=instructions,
            max_steps=self.config.max_agent_steps,
        )
        state = await agent.ainvoke({"messages": [HumanMessage(content=prompt)]})
        messages = state["messages"]
        return AgentResult(
            text=message_text(messages[-1]).strip(),
            news=find_news_output(messages),
        )


def create_model(config: Config) -> ChatAnthropic:
    """Create the chat model from the run configuration."""
    kwargs = {}
    if config.base_url:
        kwargs["base_url"] = config.base_url
    return ChatAnthropic(
        model=config.model,
        api_key=config.api_key,
        temperature=0,
        **kwargs,
    )


def create_agent(model, tools: list, system_prompt: str = "", max_steps: int = 4):
    """Create and compile the LangGraph agent.

    Args:
        model: Chat model supporting ``bind_tools``.
        tools: Tools to bind to the agent.
        system_prompt: Instructions prepended to every model call.
        max_steps: Maximum number of model calls before the run stops,
            whether or not the model asked for more tools.

    Returns:
        Compiled LangGraph agent.
    """
    model_with_tools = model.bind_tools(tools) if tools else model
    tools_by_name = {tool.name: tool for tool in tools}

    async def agent_node(state: MessagesState):
        """LLM call node: decides whether to use a tool or respond directly."""
        messages = list(state["messages"])
        if system_prompt:
            messages = [SystemMessage(content=system_prompt)] + messages
        response = await model_with_tools.ainvoke(messages)
        return {"messages": [response]}

    async def tool_node(state: MessagesState):
        """Execute tool calls from the LLM response."""
        results = []
        last_message = state["messages"][-1]
        for tool_call in last_message.tool_calls:
            tool = tools_by_name.get(tool_call["name"])
            if tool is None:
                results.append(_tool_error(tool_call, f"Unknown tool: {tool_call['name']}"))
                continue

            logger.info("Model called %s", tool.name)
            try:
                output = await tool.ainvoke(tool_call["args"])
            except (ValidationError, ToolException) as e:
                logger.warning("Tool call %s rejected: %s", tool.name, e)
                results.append(_tool_error(tool_call, f"Invalid call to {tool.name}: {e}"))
                continue
            results.append(
                ToolMessage(
                    content=_tool_content(output),
                    tool_call_id=tool_call["id"],
                    name=tool.name,
                    artifact=output,
                )
            )
        return {"messages": results}

    def should_continue(state: MessagesState) -> Literal["tool_node", "__end__"]:
        """Route to tool execution or end based on LLM output and the step budget."""
        messages = state["messages"]
        steps = sum(1 for m in messages if isinstance(m, AIMessage))
        if getattr(messages[-1], "tool_calls", None) and steps < max_steps:
            return "tool_node"
        return END

    builder = StateGraph(MessagesState)
    builder.add_node("agent_node", agent_node)
    builder.add_node("tool_node", tool_node)

    builder.add_edge(START, "agent_node")
    builder.add_conditional_edges("agent_node", should_continue, ["tool_node", END])
    builder.add_edge("tool_node", "agent_node")

    return builder.compile()


def find_news_output(messages: list[BaseMessage]) -> NewsCollection | None:
    """Return the output of the first news tool call in messages, if any."""
    for message in messages:
        if (
            isinstance(message, ToolMessage)
            and message.name == NEWS_TOOL_NAME
            and isinstance(message.artifact, NewsCollection)
        ):
            return message.artifact
    return None


def message_text(message: BaseMessage) -> str:
    """Plain text of a message whose content may be a list of content blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def _tool_content(output) -> str:
    if isinstance(output, NewsCollection):
        return json.dumps(output.to_dict(), ensure_ascii=False)
    return str(output)


def _tool_error(tool_call: dict, message: str) -> ToolMessage:
    """Report a failed tool call back to the model so it can correct itself."""
    return ToolMessage(
        content=message,
        tool_call_id=tool_call["id"],
        name=tool_call["name"],
        status="error",
    )
