"""单轮对话编排引擎。

OrchestrationEngine 持有编译好的 LangGraph（每个配置只编译一次），
负责：
- 生成 trace_id，组装首轮输入（用户身份、可选的历史摘要、当前输入）。
- 运行 provider/tools 循环。
- 把调用记录整理成有序的 toolOutputs（同名工具追加 #2、#3 后缀）。

引擎不捕获 BusinessError，provider 失败由服务层统一降级。
"""

import time
import uuid
from typing import Any, Dict, List

from project_agent.agents.config_builder import AgentConfiguration
from project_agent.domain.models import ConversationRequest, ConversationResult, ToolInvocationRecord
from project_agent.flows.graph import build_turn_graph, recursion_limit_for
from project_agent.flows.state import TurnState
from project_agent.infrastructure.logging.logger import logger
from project_agent.providers.base import ProviderClient
from project_agent.tools.executor import ToolExecutor


EMPTY_ANSWER = "I wasn't able to put together an answer this time. Could you rephrase your request?"


def new_trace_id() -> str:
    return f"tr-{uuid.uuid4().hex}"


def compose_input(request: ConversationRequest) -> str:
    """首轮发给 provider 的输入文本。"""

    lines = [f"User ID for this session: {request.user_id or 'anonymous'}", ""]
    if request.history:
        lines.append("Previous conversation:")
        for msg in request.history:
            role = "User" if msg.get("role") == "user" else "Assistant"
            lines.append(f"{role}: {msg.get('content', '')}")
        lines.append("")
        lines.append(f"Current User: {request.text}")
    else:
        lines.append(f"User: {request.text}")
    return "\n".join(lines)


def collect_tool_outputs(records: List[ToolInvocationRecord]) -> Dict[str, Any]:
    """按调用顺序整理工具输出，重名调用用 name#2、name#3 区分。"""

    outputs: Dict[str, Any] = {}
    seen: Dict[str, int] = {}
    for record in records:
        count = seen.get(record.name, 0) + 1
        seen[record.name] = count
        key = record.name if count == 1 else f"{record.name}#{count}"
        outputs[key] = record.output
    return outputs


class OrchestrationEngine:
    def __init__(self, provider: ProviderClient, configuration: AgentConfiguration):
        self.provider = provider
        self.configuration = configuration
        self.executor = ToolExecutor(configuration.tools, timeout=configuration.tool_timeout)
        self._graph = build_turn_graph(provider, self.executor, configuration)
        self._recursion_limit = recursion_limit_for(configuration.max_tool_rounds)

    async def run_turn(self, request: ConversationRequest) -> ConversationResult:
        trace_id = new_trace_id()
        start = time.time()
        log_ctx = {
            "trace_id": trace_id,
            "user_id": request.user_id,
            "provider": getattr(self.provider, "name", "unknown"),
            "model": self.configuration.model,
        }
        logger.info("Turn started", extra={"extra": {**log_ctx, "history_size": len(request.history)}})

        state: TurnState = {
            "message": compose_input(request),
            "user_id": request.user_id,
            "trace_id": trace_id,
            "response_id": None,
            "pending_calls": [],
            "pending_outputs": [],
            "records": [],
            "final_text": None,
            "rounds": 0,
            "forced_final": False,
        }
        final_state = await self._graph.ainvoke(state, config={"recursion_limit": self._recursion_limit})

        records = final_state.get("records") or []
        text = (final_state.get("final_text") or "").strip() or EMPTY_ANSWER
        logger.info(
            "Turn finished",
            extra={
                "extra": {
                    **log_ctx,
                    "rounds": final_state.get("rounds", 0),
                    "tool_calls": len(records),
                    "forced_final": bool(final_state.get("forced_final")),
                    "latency_ms": int((time.time() - start) * 1000),
                }
            },
        )
        return ConversationResult(
            assistant_text=text,
            tool_outputs=collect_tool_outputs(records),
            trace_id=trace_id,
        )
