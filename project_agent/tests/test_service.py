import asyncio

from project_agent.agents.fallback import DEFAULT_SUGGESTIONS
from project_agent.api.service import ProjectAgentService
from project_agent.domain.models import ChatResult
from project_agent.guardrails import REDIRECT_MESSAGE
from project_agent.tools.definitions import ToolCall


class SettingsStub:
    openai_api_key = "sk-test-123456"
    default_provider = "openai"
    default_model = "project-assistant"
    app_name = "Canva Clone"
    max_tool_rounds = 8
    provider_timeout = 5.0
    tool_timeout = 1.0
    enable_web_search = True
    web_search_city = "Toronto"
    web_search_country = "CA"
    asset_search_threshold = 0.6
    document_search_threshold = 0.7
    search_limit_default = 5


class NoKeySettings(SettingsStub):
    openai_api_key = None


class FakeProvider:
    name = "fake"

    def __init__(self, script=None, delay=0.0, error=None):
        self.script = list(script or [])
        self.requests = []
        self.delay = delay
        self.error = error

    async def chat(self, req):
        self.requests.append(req)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.script[len(self.requests) - 1]


class FakeVectorSearch:
    def __init__(self, assets=None, init_error=None):
        self.assets = assets or []
        self.init_error = init_error
        self.init_calls = 0

    async def initialize(self):
        self.init_calls += 1
        await asyncio.sleep(0.01)
        if self.init_error is not None:
            raise self.init_error

    async def search_assets(self, query, owner_id, *, limit, threshold):
        return self.assets

    async def search_document_chunks(self, query, owner_id, *, limit, threshold):
        return []


class FakeImageAnalysis:
    async def analyze_image(self, image_url):
        return {"colors": ["#ffffff"]}


ASSETS = [
    {"id": "a1", "filename": "forest.png", "score": 0.93},
    {"id": "a2", "filename": "lake.jpg", "score": 0.88},
    {"id": "a3", "filename": "meadow.png", "score": 0.71},
]


def _ready_service(provider, vector_search=None, image_analysis=None, cfg=None):
    svc = ProjectAgentService(
        cfg or SettingsStub(),
        vector_search=vector_search,
        image_analysis=image_analysis,
        provider=provider,
    )
    asyncio.run(svc.initialize())
    return svc


def test_nature_photos_scenario():
    provider = FakeProvider([
        ChatResult(
            provider="fake",
            model="m",
            response_id="r1",
            tool_calls=[ToolCall(id="call_1", name="search_assets", arguments={"query": "nature photos"})],
        ),
        ChatResult(provider="fake", model="m", response_id="r2", text="Here are 3 nature photos from your library."),
    ])
    svc = _ready_service(provider, vector_search=FakeVectorSearch(ASSETS), image_analysis=FakeImageAnalysis())
    res = asyncio.run(svc.chat("Find me some nature photos in my assets", user_id="u1"))
    assert res.assistant_text
    assert res.tool_outputs["search_assets"] == ASSETS
    assert len(res.tool_outputs["search_assets"]) == 3
    assert res.trace_id


def test_forbidden_topic_never_reaches_provider():
    provider = FakeProvider()
    svc = _ready_service(provider)
    res = asyncio.run(svc.chat("What's the best investment strategy?"))
    assert res.assistant_text == REDIRECT_MESSAGE
    assert res.tool_outputs == {}
    assert res.suggestions == list(DEFAULT_SUGGESTIONS)
    assert res.action == "none"
    assert provider.requests == []


def test_uninitialized_answers_locally():
    provider = FakeProvider()
    svc = ProjectAgentService(SettingsStub(), provider=provider)
    res = asyncio.run(svc.chat("Hi there!"))
    assert res.assistant_text
    assert res.action == "none"
    assert len(res.suggestions) == 4
    assert res.tool_outputs == {}
    assert provider.requests == []


def test_missing_key_keeps_fallback_mode():
    provider = FakeProvider()
    svc = ProjectAgentService(NoKeySettings(), provider=provider)
    asyncio.run(svc.initialize())
    assert not svc.initialized
    res = asyncio.run(svc.chat("Make me a logo"))
    assert res.suggestions
    assert provider.requests == []
    health = svc.get_health_status()
    assert health.to_dict() == {
        "initialized": False,
        "model": "project-assistant",
        "app": "Canva Clone",
        "tools": [],
        "vector_store_ready": False,
        "image_analysis_ready": False,
    }


def test_concurrent_initialize_builds_once():
    vs = FakeVectorSearch()
    svc = ProjectAgentService(SettingsStub(), vector_search=vs, image_analysis=FakeImageAnalysis(), provider=FakeProvider())

    async def _init_many():
        await asyncio.gather(svc.initialize(), svc.initialize(), svc.initialize())
        first = svc.context
        await svc.initialize()
        return first

    first = asyncio.run(_init_many())
    assert vs.init_calls == 1
    assert svc.context is first
    health = svc.get_health_status()
    assert health.initialized
    assert health.tools == ["search_assets", "search_documents", "analyze_image", "web_search"]
    assert health.vector_store_ready and health.image_analysis_ready


def test_failed_collaborator_is_omitted():
    vs = FakeVectorSearch(init_error=RuntimeError("index missing"))
    svc = _ready_service(FakeProvider(), vector_search=vs, image_analysis=FakeImageAnalysis())
    assert svc.initialized
    health = svc.get_health_status()
    assert health.tools == ["analyze_image", "web_search"]
    assert health.vector_store_ready is False
    assert health.image_analysis_ready is True


def test_provider_timeout_falls_back():
    class SlowSettings(SettingsStub):
        provider_timeout = 0.05

    provider = FakeProvider([ChatResult(provider="fake", model="m", text="late")], delay=1.0)
    svc = _ready_service(provider, cfg=SlowSettings())
    res = asyncio.run(svc.chat("Design a poster"))
    assert res.assistant_text
    assert res.suggestions
    assert res.tool_outputs == {}
    assert len(provider.requests) == 1


def test_provider_error_falls_back():
    provider = FakeProvider(error=RuntimeError("boom"))
    svc = _ready_service(provider)
    res = asyncio.run(svc.chat("browse templates"))
    assert res.action == "open_template"


def test_chat_with_history_folds_recent_messages():
    provider = FakeProvider([ChatResult(provider="fake", model="m", response_id="r1", text="Sure, a flyer too.")])
    svc = _ready_service(provider)
    history = [{"role": "system", "content": "ignored"}]
    history += [{"role": "user", "content": f"msg {i}"} for i in range(12)]
    res = asyncio.run(svc.chat_with_history("and a flyer?", history, user_id="u1"))
    assert res.assistant_text == "Sure, a flyer too."
    sent = provider.requests[0].message
    assert "ignored" not in sent
    assert "msg 1\n" not in sent
    assert "User: msg 2" in sent
    assert "User: msg 11" in sent
    assert sent.endswith("Current User: and a flyer?")


def test_chat_with_history_respects_guardrail():
    provider = FakeProvider()
    svc = _ready_service(provider)
    res = asyncio.run(svc.chat_with_history("Any crypto tips?", [{"role": "user", "content": "hi"}]))
    assert res.assistant_text == REDIRECT_MESSAGE
    assert provider.requests == []
