"""对外 API 服务模块。

ProjectAgentService 是调用方唯一需要接触的入口：
- initialize(): 构建 agent 配置（只构建一次，并发调用共享同一个构建任务），从不抛出。
- chat() / chat_with_history(): 护栏 -> 未初始化时本地 fallback -> 编排引擎，
  引擎出错时同样降级为 fallback。
- get_health_status(): 进程级状态快照。
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, List, Optional

from project_agent.agents.config_builder import AgentConfiguration, AgentConfigurationBuilder
from project_agent.agents.engine import OrchestrationEngine
from project_agent.agents.fallback import DEFAULT_SUGGESTIONS, FallbackResponder
from project_agent.collaborators import ImageAnalysis, VectorSearch
from project_agent.config.settings import settings
from project_agent.domain.exceptions import BusinessError, ConfigurationError
from project_agent.domain.models import ConversationRequest, ConversationResult, HealthStatus
from project_agent.guardrails.topics import GuardrailFilter, GuardrailPolicy
from project_agent.infrastructure.logging.logger import logger
from project_agent.providers import create_provider
from project_agent.providers.base import ProviderClient


HISTORY_WINDOW = 10


@dataclass(frozen=True)
class AgentContext:
    """初始化成功后的只读上下文，按引用传给每一轮对话。"""

    configuration: AgentConfiguration
    engine: OrchestrationEngine


class ProjectAgentService:
    def __init__(
        self,
        cfg=None,
        *,
        vector_search: Optional[VectorSearch] = None,
        image_analysis: Optional[ImageAnalysis] = None,
        provider: Optional[ProviderClient] = None,
        guardrail: Optional[GuardrailPolicy] = None,
    ):
        self._settings = cfg or settings
        self._guardrail = GuardrailFilter(guardrail)
        self._fallback = FallbackResponder()
        self._builder = AgentConfigurationBuilder(
            self._settings,
            vector_search=vector_search,
            image_analysis=image_analysis,
            guardrail=self._guardrail.policy,
        )
        self._provider = provider
        self._context: Optional[AgentContext] = None
        self._build_task: Optional["asyncio.Future[None]"] = None

    @property
    def initialized(self) -> bool:
        return self._context is not None

    @property
    def context(self) -> Optional[AgentContext]:
        return self._context

    async def initialize(self) -> None:
        """构建 agent。缺少凭据时只记录日志，服务保持 fallback 模式。"""

        if self._build_task is None:
            self._build_task = asyncio.ensure_future(self._build())
        if self._build_task.done():
            return
        # 调用方被取消时不影响共享的构建任务
        await asyncio.shield(self._build_task)

    async def _build(self) -> None:
        try:
            configuration = await self._builder.build()
            provider = self._provider or create_provider(cfg=self._settings)
            engine = OrchestrationEngine(provider, configuration)
        except ConfigurationError as e:
            logger.warning(
                "Project agent not configured, using local fallback",
                extra={"extra": {"code": e.code, "error": e.message}},
            )
            return
        except Exception as e:
            logger.error(
                f"Project agent initialisation failed: {e}",
                exc_info=True,
                extra={"extra": {"error": str(e)}},
            )
            return
        self._context = AgentContext(configuration=configuration, engine=engine)
        logger.info(
            "Project agent initialised",
            extra={
                "extra": {
                    "agent": configuration.name,
                    "provider": getattr(provider, "name", "unknown"),
                    "model": configuration.model,
                    "tools": configuration.tool_names,
                }
            },
        )

    async def chat(self, text: str, *, user_id: Optional[str] = None) -> ConversationResult:
        return await self._run_turn(ConversationRequest(text=text or "", user_id=user_id))

    async def chat_with_history(
        self,
        text: str,
        history: Optional[List[Dict[str, str]]] = None,
        *,
        user_id: Optional[str] = None,
    ) -> ConversationResult:
        """带历史的对话。历史只折叠进本轮输入，不做任何保存。"""

        recent = [m for m in (history or []) if m.get("role") != "system"][-HISTORY_WINDOW:]
        return await self._run_turn(ConversationRequest(text=text or "", user_id=user_id, history=recent))

    async def _run_turn(self, request: ConversationRequest) -> ConversationResult:
        rejection = self._guardrail.check(request.text)
        if rejection is not None:
            logger.info(
                "Guardrail redirected request",
                extra={"extra": {"user_id": request.user_id, "term": rejection.term}},
            )
            return ConversationResult(
                assistant_text=rejection.message,
                suggestions=list(DEFAULT_SUGGESTIONS),
                action="none",
            )

        context = self._context
        if context is None:
            logger.info("Agent not initialised, answering locally", extra={"extra": {"user_id": request.user_id}})
            return self._fallback.respond(request.text)

        try:
            return await context.engine.run_turn(request)
        except BusinessError as e:
            logger.warning(
                "Turn failed, answering locally",
                extra={"extra": {"user_id": request.user_id, "code": e.code, "error": e.message}},
            )
        except Exception as e:
            logger.error(
                f"Unexpected turn failure: {e}",
                exc_info=True,
                extra={"extra": {"user_id": request.user_id, "error": str(e)}},
            )
        return self._fallback.respond(request.text)

    def get_health_status(self) -> HealthStatus:
        context = self._context
        if context is None:
            return HealthStatus(
                initialized=False,
                model=self._settings.default_model,
                app=self._settings.app_name,
            )
        return HealthStatus(
            initialized=True,
            model=context.configuration.model,
            app=self._settings.app_name,
            tools=context.configuration.tool_names,
            vector_store_ready=context.configuration.vector_store_ready,
            image_analysis_ready=context.configuration.image_analysis_ready,
        )


_service: Optional[ProjectAgentService] = None


def get_default_service() -> ProjectAgentService:
    """获取默认的服务实例（单例），协作者为空，只启用托管的 web_search。"""
    global _service
    if _service is None:
        _service = ProjectAgentService(settings)
    return _service
