"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MIN_API_KEY_LENGTH = 10


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """Project Assistant 配置。"""

    # ---- Provider 相关配置 ----
    default_provider: str = Field(
        default="openai",
        description="默认使用的 Provider 名称",
    )
    default_model: str = Field(
        default="project-assistant",
        description="逻辑模型名，由 registry 映射为具体厂商模型",
    )
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API 基础URL",
    )
    app_name: str = Field(default="Canva Clone", description="展示给模型与健康检查的应用名")

    # ---- 超时与轮数 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    provider_timeout: float = Field(
        default=60.0,
        gt=0,
        description="单次 Provider 调用的整体超时（秒），超时后本轮走 fallback",
    )
    tool_timeout: float = Field(
        default=15.0,
        gt=0,
        description="单次协作方调用（向量检索、图片分析、初始化）的超时（秒）",
    )
    max_tool_rounds: int = Field(
        default=8,
        ge=1,
        le=20,
        description="单轮对话内工具调用最大轮数（硬上限 20）",
    )

    # ---- 工具相关 ----
    enable_web_search: bool = Field(default=True, description="是否向模型暴露托管的 web_search")
    web_search_city: Optional[str] = Field(default="Toronto", description="web_search 的大致位置（城市）")
    web_search_country: Optional[str] = Field(default="CA", description="web_search 的大致位置（国家代码）")
    asset_search_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    document_search_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    search_limit_default: int = Field(default=5, ge=1, le=20)

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        # 凭据有问题时不让导入失败，交给构建阶段报 ConfigurationError
        if v is not None and not v.strip():
            return None
        if v and len(v.strip()) < MIN_API_KEY_LENGTH:
            warnings.warn("OPENAI_API_KEY seems too short, ignored")
            return None
        return v.strip() if v else v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
