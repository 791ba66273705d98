"""Agent 配置的一次性构建。

AgentConfigurationBuilder 在进程启动时运行一次：
1. 校验 provider 凭据，缺失时抛出 ConfigurationError。
2. 并发初始化可选协作者（向量检索、图片分析），失败者被记录并从工具目录中剔除。
3. 组装工具目录与系统提示词，产出不可变的 AgentConfiguration。
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from project_agent.collaborators import ImageAnalysis, VectorSearch
from project_agent.config.settings import settings
from project_agent.domain.exceptions import CollaboratorUnavailable, ConfigurationError
from project_agent.guardrails.topics import GuardrailPolicy
from project_agent.infrastructure.logging.logger import logger
from project_agent.prompts import load_system_prompt
from project_agent.tools.catalog import build_tool_catalog
from project_agent.tools.definitions import ToolDescriptor


AGENT_NAME = "Project Assistant"
AGENT_TYPE = "project-assistant"


@dataclass(frozen=True)
class AgentConfiguration:
    """构建完成后的 agent 配置，之后所有对话轮次只读共享。"""

    name: str
    instructions: str
    model: str
    tools: Tuple[ToolDescriptor, ...]
    guardrail: GuardrailPolicy
    max_tool_rounds: int = 8
    provider_timeout: float = 60.0
    tool_timeout: float = 15.0
    temperature: float = 0.7
    vector_store_ready: bool = False
    image_analysis_ready: bool = False

    @property
    def tool_names(self) -> List[str]:
        return [tool.name for tool in self.tools]


class AgentConfigurationBuilder:
    def __init__(
        self,
        cfg=None,
        vector_search: Optional[VectorSearch] = None,
        image_analysis: Optional[ImageAnalysis] = None,
        guardrail: Optional[GuardrailPolicy] = None,
    ):
        self._settings = cfg or settings
        self._vector_search = vector_search
        self._image_analysis = image_analysis
        self._guardrail = guardrail or GuardrailPolicy()
        self._configuration: Optional[AgentConfiguration] = None

    async def build(self) -> AgentConfiguration:
        """构建配置；重复调用直接返回第一次的结果。"""

        if self._configuration is not None:
            return self._configuration

        cfg = self._settings
        if not getattr(cfg, "openai_api_key", None):
            raise ConfigurationError(
                code="MISSING_API_KEY",
                message="OPENAI_API_KEY not set; project agent disabled",
            )

        vector_ok, image_ok = await asyncio.gather(
            self._initialize_collaborator("vector_search", self._vector_search),
            self._initialize_collaborator("image_analysis", self._image_analysis),
        )
        tools = build_tool_catalog(
            self._vector_search if vector_ok else None,
            self._image_analysis if image_ok else None,
            cfg,
        )
        instructions = load_system_prompt(AGENT_TYPE, app_name=cfg.app_name)

        self._configuration = AgentConfiguration(
            name=AGENT_NAME,
            instructions=instructions,
            model=cfg.default_model,
            tools=tuple(tools),
            guardrail=self._guardrail,
            max_tool_rounds=cfg.max_tool_rounds,
            provider_timeout=float(cfg.provider_timeout),
            tool_timeout=float(cfg.tool_timeout),
            vector_store_ready=vector_ok,
            image_analysis_ready=image_ok,
        )
        logger.info(
            "Agent configuration built",
            extra={
                "extra": {
                    "agent": AGENT_NAME,
                    "model": cfg.default_model,
                    "tools": self._configuration.tool_names,
                    "vector_store_ready": vector_ok,
                    "image_analysis_ready": image_ok,
                }
            },
        )
        return self._configuration

    async def _initialize_collaborator(self, name: str, collaborator: Any) -> bool:
        if collaborator is None:
            return False
        init = getattr(collaborator, "initialize", None)
        if init is None:
            return True
        timeout = float(getattr(self._settings, "tool_timeout", 15))
        try:
            result = init()
            if inspect.isawaitable(result):
                await asyncio.wait_for(result, timeout=timeout)
        except Exception as e:
            err = CollaboratorUnavailable(
                code="COLLABORATOR_UNAVAILABLE",
                message=str(e) or e.__class__.__name__,
                collaborator=name,
            )
            logger.warning(
                "Collaborator unavailable, its tools are disabled",
                extra={"extra": {"collaborator": name, "code": err.code, "error": err.message}},
            )
            return False
        return True
