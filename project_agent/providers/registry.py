"""Provider 与模型配置。

本模块将“逻辑模型名”与“具体厂商模型名”解耦：

- 逻辑名（logical_name）：在代码里使用的统一名称，例如 "project-assistant"。
- provider_model：厂商实际提供的模型 ID，例如 "gpt-4o-mini"。

上层只关心逻辑名；未登记的名字按厂商模型 ID 原样透传，
便于直接在配置里写 DEFAULT_MODEL=gpt-4o。"""

from dataclasses import dataclass
from typing import Dict, Mapping


@dataclass
class ModelConfig:
    """单个逻辑模型的配置。"""

    logical_name: str
    provider_model: str
    max_output_tokens: int
    default_temperature: float


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    models: Dict[str, ModelConfig]

    def resolve(self, model: str) -> ModelConfig:
        cfg = self.models.get(model)
        if cfg is not None:
            return cfg
        return ModelConfig(
            logical_name=model,
            provider_model=model,
            max_output_tokens=1024,
            default_temperature=0.7,
        )


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    models={
        "project-assistant": ModelConfig(
            logical_name="project-assistant",
            provider_model="gpt-4o-mini",
            max_output_tokens=1024,
            default_temperature=0.7,
        )
    },
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
