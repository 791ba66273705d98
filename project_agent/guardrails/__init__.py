from project_agent.guardrails.topics import (
    FORBIDDEN_TOPICS,
    REDIRECT_MESSAGE,
    GuardrailFilter,
    GuardrailPolicy,
    GuardrailRejection,
)

__all__ = [
    "FORBIDDEN_TOPICS",
    "REDIRECT_MESSAGE",
    "GuardrailFilter",
    "GuardrailPolicy",
    "GuardrailRejection",
]
