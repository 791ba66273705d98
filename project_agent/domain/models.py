"""统一的对话与结果数据模型。

本模块定义两类数据结构：

- Provider 交换模型：ChatRequest / ChatResult / ChatUsage，
  所有 Provider 适配器（如 OpenAIResponsesClient）只依赖这些模型，
  负责在各自的 API JSON 和这些模型之间做转换。
- 对外会话模型：ConversationRequest / ToolInvocationRecord /
  ConversationResult / HealthStatus，由服务层返回给调用方。

除 HealthStatus 外，这里的对象都只存活于单轮对话内，不做持久化。
"""

from dataclasses import dataclass, field
from typing import Literal, Optional, Any, Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from project_agent.tools.definitions import ToolCall, HostedToolCall, ToolDescriptor


Action = Literal["open_template", "apply_brand", "upload_asset", "none"]
ToolStatus = Literal["ok", "error"]


@dataclass
class ChatRequest:
    """一次发给 completion provider 的请求。

    - message: 首轮的用户输入文本；后续轮次为 None。
    - tool_outputs: 后续轮次要回传给 provider 的工具结果，
      形如 {"call_id": ..., "output": <任意 JSON 值>}。
    - previous_response_id: 用于在 provider 侧串联同一轮内的多次请求。
    """

    model: str
    instructions: str
    message: Optional[str] = None
    tool_outputs: List[Dict[str, Any]] = field(default_factory=list)
    tools: Optional[List["ToolDescriptor"]] = None
    previous_response_id: Optional[str] = None
    tool_choice: Literal["auto", "none", "required"] = "auto"
    temperature: float = 0.7
    max_output_tokens: Optional[int] = None
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    input_tokens: int
    output_tokens: int
    total_tokens: int


@dataclass
class ChatResult:
    """一次 provider 调用解析后的结果。

    - text: 本次响应里助手消息的全部文本。
    - tool_calls: 需要本地执行的函数工具调用，顺序即 provider 给出的顺序。
    - hosted_calls: provider 自己执行完成的托管工具（如 web_search）。
    """

    provider: str
    model: str
    response_id: Optional[str] = None
    text: str = ""
    tool_calls: List["ToolCall"] = field(default_factory=list)
    hosted_calls: List["HostedToolCall"] = field(default_factory=list)
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


@dataclass
class ConversationRequest:
    """调用方的一次输入：文本 + 可选的调用者身份与历史。"""

    text: str
    user_id: Optional[str] = None
    history: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class ToolInvocationRecord:
    """一次已完成的工具调用记录。

    arguments 保存的是校验/裁剪之后实际使用的参数；output 是工具的真实返回值，
    失败时为 {"error": ...}。
    """

    name: str
    call_id: str
    arguments: Dict[str, Any]
    output: Any
    status: ToolStatus = "ok"

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class ConversationResult:
    """单轮对话的最终结果。suggestions / action 只在 fallback 与护栏路径上出现。"""

    assistant_text: str
    tool_outputs: Dict[str, Any] = field(default_factory=dict)
    trace_id: Optional[str] = None
    suggestions: Optional[List[str]] = None
    action: Optional[Action] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "assistant_text": self.assistant_text,
            "toolOutputs": dict(self.tool_outputs),
        }
        if self.trace_id:
            payload["traceId"] = self.trace_id
        if self.suggestions is not None:
            payload["suggestions"] = list(self.suggestions)
        if self.action is not None:
            payload["action"] = self.action
        return payload


@dataclass
class HealthStatus:
    """进程级状态的只读快照。两个 ready 标记表示协作方是否初始化成功。"""

    initialized: bool
    model: str
    app: str
    tools: List[str] = field(default_factory=list)
    vector_store_ready: bool = False
    image_analysis_ready: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "initialized": self.initialized,
            "model": self.model,
            "app": self.app,
            "tools": list(self.tools),
            "vector_store_ready": self.vector_store_ready,
            "image_analysis_ready": self.image_analysis_ready,
        }
