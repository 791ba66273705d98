"""Project Agent 顶层包。

该包为设计编辑器提供项目助手的编排层：话题护栏、工具目录与执行、
基于 LangGraph 的 provider/tools 循环、本地 fallback 回答以及健康状态。
"""

from project_agent.api.service import ProjectAgentService, get_default_service

__all__ = ["ProjectAgentService", "get_default_service"]
