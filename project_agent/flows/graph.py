"""LangGraph construction and node implementations for one conversation turn.

The provider decides which tools to call. The graph only relays:

    provider --(function calls pending)--> tools --(rounds left)--> provider
        |                                     |
        +--(no calls)--> END                  +--(round limit)--> finalize --> END
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from langgraph.graph import END, StateGraph
from langgraph.graph.state import CompiledStateGraph

from project_agent.domain.exceptions import ProviderTimeoutError
from project_agent.domain.models import ChatRequest, ChatResult, ToolInvocationRecord
from project_agent.flows.state import TurnState
from project_agent.infrastructure.logging.logger import logger
from project_agent.providers.base import ProviderClient
from project_agent.tools.definitions import ToolContext
from project_agent.tools.executor import ToolExecutor


def _log(level: int, message: str, state: TurnState, **fields: Any) -> None:
    payload: Dict[str, Any] = {"trace_id": state.get("trace_id")}
    payload.update(fields)
    logger.log(level, message, extra={"extra": payload})


def _hosted_records(result: ChatResult) -> List[ToolInvocationRecord]:
    return [
        ToolInvocationRecord(
            name=call.name,
            call_id=call.id,
            arguments={},
            output=call.output,
            status="error" if call.status == "failed" else "ok",
        )
        for call in result.hosted_calls
    ]


async def _call_provider(provider: ProviderClient, req: ChatRequest, timeout: float) -> ChatResult:
    try:
        return await asyncio.wait_for(provider.chat(req), timeout=timeout)
    except asyncio.TimeoutError:
        raise ProviderTimeoutError(
            code="PROVIDER_TIMEOUT",
            message=f"provider did not answer within {timeout}s",
            http_status=504,
        )


def recursion_limit_for(max_rounds: int) -> int:
    # provider + tools per round, plus the opening provider call and finalize
    return 2 * max_rounds + 5


def build_turn_graph(provider: ProviderClient, executor: ToolExecutor, configuration) -> CompiledStateGraph:
    tools = list(configuration.tools) or None
    max_rounds = configuration.max_tool_rounds

    def _request(state: TurnState, **overrides: Any) -> ChatRequest:
        first = state.get("rounds", 0) == 0 and not state.get("response_id")
        fields: Dict[str, Any] = {
            "model": configuration.model,
            "instructions": configuration.instructions,
            "message": state["message"] if first else None,
            "tool_outputs": list(state.get("pending_outputs") or []),
            "tools": tools,
            "previous_response_id": state.get("response_id"),
            "temperature": configuration.temperature,
            "context": {"user_id": state.get("user_id"), "trace_id": state.get("trace_id")},
        }
        fields.update(overrides)
        return ChatRequest(**fields)

    async def provider_node(state: TurnState) -> Dict[str, Any]:
        _log(logging.INFO, "Calling provider", state, round=state.get("rounds", 0) + 1, max_rounds=max_rounds)
        result = await _call_provider(provider, _request(state), configuration.provider_timeout)
        records = list(state.get("records") or [])
        records.extend(_hosted_records(result))
        update: Dict[str, Any] = {
            "response_id": result.response_id,
            "records": records,
            "pending_outputs": [],
            "pending_calls": list(result.tool_calls),
        }
        if result.usage:
            _log(
                logging.INFO,
                "Token usage",
                state,
                input_tokens=result.usage.input_tokens,
                output_tokens=result.usage.output_tokens,
                total_tokens=result.usage.total_tokens,
            )
        if not result.has_tool_calls:
            update["final_text"] = result.text
        return update

    async def tools_node(state: TurnState) -> Dict[str, Any]:
        ctx = ToolContext(user_id=state.get("user_id"), trace_id=state.get("trace_id"))
        records = list(state.get("records") or [])
        outputs: List[Dict[str, Any]] = []
        calls = state.get("pending_calls") or []
        _log(logging.INFO, "Executing tool calls", state, call_count=len(calls))
        # one at a time, in the order the provider asked for them
        for call in calls:
            _log(
                logging.INFO,
                "Tool call received",
                state,
                tool_name=call.name,
                tool_call_id=call.id,
                tool_args=call.arguments,
            )
            record = await executor.execute(call, ctx)
            _log(
                logging.INFO if record.ok else logging.WARNING,
                "Tool execution finished",
                state,
                tool_name=record.name,
                tool_call_id=record.call_id,
                status=record.status,
                result_preview=str(record.output)[:200],
            )
            records.append(record)
            outputs.append({"call_id": call.id, "output": record.output})
        return {
            "records": records,
            "pending_calls": [],
            "pending_outputs": outputs,
            "rounds": state.get("rounds", 0) + 1,
        }

    async def finalize_node(state: TurnState) -> Dict[str, Any]:
        _log(logging.WARNING, "Reached max tool rounds", state, max_rounds=max_rounds)
        result = await _call_provider(
            provider,
            _request(state, tool_choice="none"),
            configuration.provider_timeout,
        )
        records = list(state.get("records") or [])
        records.extend(_hosted_records(result))
        return {
            "response_id": result.response_id,
            "records": records,
            "pending_outputs": [],
            "final_text": result.text or f"(stopped after {max_rounds} tool rounds)",
            "forced_final": True,
        }

    def route_after_provider(state: TurnState) -> str:
        if state.get("pending_calls"):
            return "tools"
        return END

    def route_after_tools(state: TurnState) -> str:
        if state.get("rounds", 0) >= max_rounds:
            return "finalize"
        return "provider"

    graph = StateGraph(TurnState)
    graph.add_node("provider", provider_node)
    graph.add_node("tools", tools_node)
    graph.add_node("finalize", finalize_node)
    graph.set_entry_point("provider")
    graph.add_conditional_edges("provider", route_after_provider, {"tools": "tools", END: END})
    graph.add_conditional_edges("tools", route_after_tools, {"provider": "provider", "finalize": "finalize"})
    graph.add_edge("finalize", END)
    return graph.compile()
