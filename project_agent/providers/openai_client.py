"""OpenAI Responses API 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 Responses API（POST {base_url}/responses）的请求格式。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 将响应 JSON 解析为统一的 ChatResult（文本、函数工具调用、托管工具调用）。

同一轮对话内的后续请求通过 previous_response_id 串联，
请求体里只需携带上一轮函数调用的 function_call_output。
"""

import json
from typing import Any, Dict, List

import httpx

from project_agent.config.settings import settings
from project_agent.domain.exceptions import ApiError, ConfigurationError, NetworkError, RateLimitError
from project_agent.domain.models import ChatRequest, ChatResult, ChatUsage
from project_agent.providers.registry import OPENAI_CONFIG, ModelConfig, ProviderConfig
from project_agent.tools.definitions import HostedToolCall, ToolCall, ToolDescriptor


class OpenAIResponsesClient:
    """OpenAI 提供方客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - chat: 对外统一调用入口，返回 ChatResult。
    """

    name = "openai"

    def __init__(self, cfg=settings, provider_config: ProviderConfig = OPENAI_CONFIG):
        # Settings 里包含 base_url、api_key、超时等配置
        self._settings = cfg
        self._provider_config = provider_config

    async def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式调用。

        步骤：
        1. 读取模型配置（logical model -> provider model）。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。
        """

        api_key = getattr(self._settings, "openai_api_key", None)
        if not api_key:
            raise ConfigurationError(code="MISSING_API_KEY", message="OPENAI_API_KEY not set")
        model_cfg = self._provider_config.resolve(req.model)
        payload = self._build_payload(req, model_cfg)
        base = getattr(self._settings, "openai_base_url", None) or self._provider_config.base_url
        try:
            async with httpx.AsyncClient(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = await client.post(
                    f"{base}/responses",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or e.__class__.__name__)
        if resp.status_code == 429:
            raise RateLimitError(code="RATE_LIMIT", message="OpenAI rate limit", http_status=429)
        if resp.status_code >= 400:
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code)
        data = resp.json()
        return self._parse_response(data, req)

    def _build_payload(self, req: ChatRequest, model_cfg: ModelConfig) -> Dict[str, Any]:
        """将 ChatRequest 转成 Responses API 所需的请求 JSON。"""

        payload: Dict[str, Any] = {
            "model": model_cfg.provider_model,
            "instructions": req.instructions,
            "temperature": req.temperature if req.temperature is not None else model_cfg.default_temperature,
            "max_output_tokens": req.max_output_tokens or model_cfg.max_output_tokens,
        }
        if req.previous_response_id:
            payload["previous_response_id"] = req.previous_response_id
        if req.tool_outputs:
            payload["input"] = [
                {
                    "type": "function_call_output",
                    "call_id": item["call_id"],
                    "output": json.dumps(item.get("output"), ensure_ascii=False, default=str),
                }
                for item in req.tool_outputs
            ]
        else:
            payload["input"] = req.message or ""
        if req.tools:
            payload["tools"] = [self._serialize_tool(tool) for tool in req.tools]
            payload["tool_choice"] = req.tool_choice
        metadata = {k: str(v) for k, v in req.context.items() if v is not None}
        if metadata:
            payload["metadata"] = metadata
        return payload

    @staticmethod
    def _serialize_tool(tool: ToolDescriptor) -> Dict[str, Any]:
        """把内部的 ToolDescriptor 转成 Responses API 的工具声明。"""

        if tool.hosted:
            return {"type": tool.name, **tool.options}
        properties: Dict[str, Any] = {}
        required: List[str] = []
        for name, param in tool.params.items():
            properties[name] = dict(param.schema or {"type": "string"})
            if param.description:
                properties[name]["description"] = param.description
            if param.required:
                required.append(name)
        return {
            "type": "function",
            "name": tool.name,
            "description": tool.description,
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required,
            },
            "strict": False,
        }

    def _parse_response(self, data: Dict[str, Any], req: ChatRequest) -> ChatResult:
        """将原始响应 JSON 解析为统一的 ChatResult。

        output 数组里的条目按类型分发：
        - message: 累积 output_text 作为回答文本。
        - function_call: 需要本地执行的工具调用。
        - *_call（如 web_search_call）: provider 已完成的托管工具调用。
        """

        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        hosted_calls: List[HostedToolCall] = []
        for idx, item in enumerate(data.get("output") or []):
            kind = item.get("type") or ""
            if kind == "message":
                for part in item.get("content") or []:
                    if part.get("type") in ("output_text", "text") and part.get("text"):
                        texts.append(part["text"])
            elif kind == "function_call":
                tool_calls.append(
                    ToolCall(
                        id=item.get("call_id") or item.get("id") or f"tool_call_{idx}",
                        name=item.get("name") or "",
                        arguments=self._parse_arguments(item.get("arguments")),
                    )
                )
            elif kind.endswith("_call"):
                hosted_calls.append(
                    HostedToolCall(
                        id=item.get("id") or f"hosted_call_{idx}",
                        name=kind[: -len("_call")],
                        status=item.get("status") or "completed",
                        output={k: v for k, v in item.items() if k not in ("id", "type")},
                    )
                )
        text = "\n".join(texts) or (data.get("output_text") or "")
        usage_raw = data.get("usage") or {}
        usage = None
        if usage_raw:
            usage = ChatUsage(
                input_tokens=usage_raw.get("input_tokens", 0),
                output_tokens=usage_raw.get("output_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatResult(
            provider=self.name,
            model=req.model,
            response_id=data.get("id"),
            text=text,
            tool_calls=tool_calls,
            hosted_calls=hosted_calls,
            usage=usage,
            raw=data,
        )

    @staticmethod
    def _parse_arguments(raw: Any) -> Dict[str, Any]:
        """解析工具调用的 arguments 字段。

        Responses API 会把 arguments 作为 JSON 字符串返回，这里做一层
        json.loads 尝试，失败时保留原始字符串到 `_raw`，避免信息丢失。
        """

        if isinstance(raw, dict):
            return raw
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw) if raw.strip() else {}
            except json.JSONDecodeError:
                return {"_raw": raw}
            return parsed if isinstance(parsed, dict) else {"_raw": raw}
        return {}
