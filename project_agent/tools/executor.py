import asyncio
from typing import Any, Dict, Iterable, List, Optional

from project_agent.domain.exceptions import ToolExecutionFailure
from project_agent.domain.models import ToolInvocationRecord
from .definitions import ToolCall, ToolContext, ToolDescriptor, ToolParam


DEFAULT_TOOL_TIMEOUT = 15.0


def _coerce_integer(param: ToolParam, raw: Any) -> int:
    schema = param.schema
    default = schema.get("default")
    minimum = schema.get("minimum")
    maximum = schema.get("maximum")
    if raw is None or isinstance(raw, bool):
        value = default
    else:
        try:
            value = int(float(raw))
        except (TypeError, ValueError):
            value = default
        except OverflowError:
            # ±inf 贴到对应边界，没有边界时退回默认值
            bound = maximum if float(raw) > 0 else minimum
            value = default if bound is None else bound
    if value is None:
        raise ToolExecutionFailure(code="INVALID_ARGUMENT", message=f"{param.name} must be an integer")
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def _coerce_string(param: ToolParam, raw: Any) -> Optional[str]:
    if raw is None:
        return param.schema.get("default")
    text = str(raw).strip()
    if not text:
        return param.schema.get("default")
    return text


def coerce_arguments(descriptor: ToolDescriptor, raw_args: Dict[str, Any]) -> Dict[str, Any]:
    """按 descriptor 的参数 schema 校验、补默认值并裁剪参数。

    未声明的参数会被丢弃；缺失的必填参数抛出 ToolExecutionFailure。
    """

    args: Dict[str, Any] = {}
    for name, param in descriptor.params.items():
        raw = (raw_args or {}).get(name)
        kind = param.schema.get("type", "string")
        if kind == "integer":
            value: Any = _coerce_integer(param, raw)
        elif kind == "string":
            value = _coerce_string(param, raw)
        else:
            value = raw if raw is not None else param.schema.get("default")
        if value is None:
            if param.required:
                raise ToolExecutionFailure(
                    code="MISSING_ARGUMENT",
                    message=f"missing required argument: {name}",
                )
            continue
        args[name] = value
    return args


class ToolExecutor:
    """按名称解析工具并执行，所有失败都转换为带 error 标记的调用记录。"""

    def __init__(self, tools: Iterable[ToolDescriptor], timeout: float = DEFAULT_TOOL_TIMEOUT):
        self._tools: Dict[str, ToolDescriptor] = {
            tool.name: tool for tool in tools if not tool.hosted
        }
        self._timeout = timeout

    @property
    def tool_names(self) -> List[str]:
        return list(self._tools)

    async def execute(self, call: ToolCall, ctx: ToolContext) -> ToolInvocationRecord:
        descriptor = self._tools.get(call.name)
        if descriptor is None or descriptor.executor is None:
            return ToolInvocationRecord(
                name=call.name,
                call_id=call.id,
                arguments=dict(call.arguments or {}),
                output={"error": f"Tool not registered: {call.name}"},
                status="error",
            )
        args: Dict[str, Any] = dict(call.arguments or {})
        try:
            args = coerce_arguments(descriptor, args)
            output = await asyncio.wait_for(descriptor.executor(args, ctx), timeout=self._timeout)
        except asyncio.TimeoutError:
            return self._failed(call, args, f"{call.name} timed out after {self._timeout}s")
        except ToolExecutionFailure as exc:
            return self._failed(call, args, exc.message)
        except Exception as exc:
            return self._failed(call, args, str(exc) or exc.__class__.__name__)
        return ToolInvocationRecord(name=call.name, call_id=call.id, arguments=args, output=output)

    @staticmethod
    def _failed(call: ToolCall, args: Dict[str, Any], message: str) -> ToolInvocationRecord:
        return ToolInvocationRecord(
            name=call.name,
            call_id=call.id,
            arguments=args,
            output={"error": message},
            status="error",
        )
