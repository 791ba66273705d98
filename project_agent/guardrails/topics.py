"""话题护栏。

在任何模型或工具调用之前，对用户输入做大小写不敏感的子串匹配，
命中禁区词表即返回固定的引导语，本轮对话到此结束。
"""

from dataclasses import dataclass
from typing import Optional, Tuple


FORBIDDEN_TOPICS: Tuple[str, ...] = (
    "politics",
    "election",
    "covid",
    "virus",
    "medical",
    "doctor",
    "medicine",
    "legal advice",
    "lawyer",
    "financial advice",
    "investment",
    "crypto",
    "password",
    "personal information",
    "private data",
)

REDIRECT_MESSAGE = (
    "I'm a Project Assistant focused on helping you create amazing designs and manage "
    "your projects. Let's talk about your creative projects instead! "
    "What would you like to create today?"
)


@dataclass(frozen=True)
class GuardrailPolicy:
    """禁区词表 + 固定引导语，纯数据。"""

    terms: Tuple[str, ...] = FORBIDDEN_TOPICS
    redirect_message: str = REDIRECT_MESSAGE


@dataclass(frozen=True)
class GuardrailRejection:
    """护栏命中的结果。不是错误，只是提前结束本轮。"""

    term: str
    message: str


class GuardrailFilter:
    name = "project-focused-topics"

    def __init__(self, policy: Optional[GuardrailPolicy] = None):
        self.policy = policy or GuardrailPolicy()
        self._terms = tuple(t.lower() for t in self.policy.terms if t and t.strip())

    def check(self, text: str) -> Optional[GuardrailRejection]:
        """命中任一禁区词时返回 GuardrailRejection，否则返回 None。"""

        lower = (text or "").lower()
        if not lower.strip():
            return None
        for term in self._terms:
            if term in lower:
                return GuardrailRejection(term=term, message=self.policy.redirect_message)
        return None
