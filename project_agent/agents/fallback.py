"""本地 fallback 回答。

Provider 路径不可用（未初始化、超时、出错）时使用。纯函数、同步、不访问外部服务，
只根据关键词表给出建议列表和一个动作标签。
"""

from typing import List, Optional, Tuple

from project_agent.domain.models import Action, ConversationResult


DEFAULT_SUGGESTIONS: Tuple[str, ...] = (
    "Browse templates",
    "Choose a colour palette",
    "Upload assets",
    "Start from scratch",
)

SUGGESTION_SETS = {
    "logo": (
        "Browse logo templates",
        "Choose brand colours",
        "Upload brand assets",
        "Start with a text-only logo",
    ),
    "social": (
        "Browse social templates",
        "Select post size",
        "Add trending hashtags",
        "Use brand colours",
    ),
    "presentation": (
        "Browse presentation templates",
        "Pick slide layouts",
        "Add subtle animations",
        "Apply company branding",
    ),
}

# (关键词, 类别)，按顺序匹配，先命中者优先
SUGGESTION_TERMS: Tuple[Tuple[str, str], ...] = (
    ("logo", "logo"),
    ("branding", "logo"),
    ("social media", "social"),
    ("socialmedia", "social"),
    ("facebook", "social"),
    ("instagram", "social"),
    ("twitter", "social"),
    ("tiktok", "social"),
    ("presentation", "presentation"),
    ("slide", "presentation"),
)

ACTION_TERMS: Tuple[Tuple[str, Action], ...] = (
    ("template", "open_template"),
    ("browse", "open_template"),
    ("brand", "apply_brand"),
    ("upload", "upload_asset"),
    ("asset", "upload_asset"),
)

DESIGN_KEYWORDS: Tuple[str, ...] = (
    "logo",
    "poster",
    "flyer",
    "social media",
    "presentation",
    "banner",
    "branding",
    "colour",
    "color",
    "font",
    "layout",
    "template",
    "design",
    "create",
    "make",
    "build",
    "marketing",
    "business card",
    "invitation",
    "card",
)


class FallbackResponder:
    def suggestions_for(self, text: str) -> List[str]:
        lower = (text or "").lower()
        for term, category in SUGGESTION_TERMS:
            if term in lower:
                return list(SUGGESTION_SETS[category])
        return list(DEFAULT_SUGGESTIONS)

    def action_for(self, text: str) -> Action:
        lower = (text or "").lower()
        for term, action in ACTION_TERMS:
            if term in lower:
                return action
        return "none"

    @staticmethod
    def is_design_request(text: str) -> bool:
        lower = (text or "").lower()
        return any(keyword in lower for keyword in DESIGN_KEYWORDS)

    def respond(self, text: str, trace_id: Optional[str] = None) -> ConversationResult:
        """给出本地回答。设计类请求带上具体建议与动作，其余给出通用引导。"""

        text = (text or "").strip()
        if self.is_design_request(text):
            reply = (
                f'Great! Let me suggest some design approaches for "{text}". '
                "Would you like recommended templates or colour schemes to get started?"
            )
        else:
            reply = (
                "I can help you turn that idea into a beautiful design! Start by choosing a "
                "template: a social media post, presentation, flyer, or something else?"
            )
        return ConversationResult(
            assistant_text=reply,
            trace_id=trace_id,
            suggestions=self.suggestions_for(text),
            action=self.action_for(text),
        )
