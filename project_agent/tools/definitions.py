"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的 schema，既用于：
- 将可用工具列表暴露给 LLM（ToolDescriptor / ToolParam）。
- 在编排引擎中保存和执行模型触发的工具调用（ToolCall / HostedToolCall）。
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Literal, Optional

ToolKind = Literal["function", "hosted"]


@dataclass(frozen=True)
class ToolParam:
    """单个工具参数的定义。schema 中的 minimum/maximum/default 会被执行器用来裁剪参数。"""

    name: str
    description: str
    required: bool
    schema: Dict[str, Any]


@dataclass(frozen=True)
class ToolContext:
    """单次请求的上下文，随每次工具调用一起传给执行函数。"""

    user_id: Optional[str] = None
    trace_id: Optional[str] = None


ToolFunc = Callable[[Dict[str, Any], ToolContext], Awaitable[Any]]


@dataclass(frozen=True)
class ToolDescriptor:
    """一个可供 LLM 调用的工具定义。

    - kind="function": 由本地 executor 执行，结果回传给 provider。
    - kind="hosted": 由 provider 自己执行（例如 web_search），executor 为空，
      options 中的内容会原样并入工具声明。
    """

    name: str
    description: str
    params: Dict[str, ToolParam] = field(default_factory=dict)
    kind: ToolKind = "function"
    executor: Optional[ToolFunc] = None
    options: Dict[str, Any] = field(default_factory=dict)

    @property
    def hosted(self) -> bool:
        return self.kind == "hosted"


@dataclass
class ToolCall:
    """模型发起的一次函数工具调用请求。"""

    id: str
    name: str
    arguments: Dict[str, Any]


@dataclass
class HostedToolCall:
    """provider 已经自行完成的托管工具调用（例如 web_search_call）。"""

    id: str
    name: str
    status: str
    output: Dict[str, Any]
