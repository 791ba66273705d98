"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 与模型配置 (registry)。
- 提供具体实现 (openai_client)。
"""

from typing import Callable, Dict, Optional

from project_agent.config.settings import settings
from project_agent.providers.base import ProviderClient
from project_agent.providers.openai_client import OpenAIResponsesClient
from project_agent.providers.registry import ProviderConfig, get_provider_config


_CLIENT_FACTORIES: Dict[str, Callable[..., ProviderClient]] = {
    "openai": OpenAIResponsesClient,
}


def create_provider(name: Optional[str] = None, cfg=None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。

    名称先在 registry 中解析（未登记时抛出 KeyError），再交给对应的客户端实现。
    """

    cfg = cfg or settings
    provider_config: ProviderConfig = get_provider_config(name or getattr(cfg, "default_provider", "openai"))
    factory = _CLIENT_FACTORIES[provider_config.name]
    return factory(cfg, provider_config)
