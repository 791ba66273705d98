"""State definition for the per-turn LangGraph flow."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

from project_agent.domain.models import ToolInvocationRecord
from project_agent.tools.definitions import ToolCall


class TurnState(TypedDict, total=False):
    """State shared across the nodes of one conversation turn.

    Every turn gets a fresh state; nothing here outlives the turn.
    """

    message: str
    user_id: Optional[str]
    trace_id: str
    response_id: Optional[str]
    pending_calls: List[ToolCall]
    pending_outputs: List[Dict[str, Any]]
    records: List[ToolInvocationRecord]
    final_text: Optional[str]
    rounds: int
    forced_final: bool
