"""固定的工具目录。

每个工具只绑定一个协作方能力；协作方缺失时对应工具不会出现在注册表中。
web_search 由 provider 托管执行，本地只声明它和大致位置。
"""

from typing import Any, Dict, List, Optional

from project_agent.collaborators import ImageAnalysis, VectorSearch
from .definitions import ToolContext, ToolDescriptor, ToolFunc, ToolParam


MAX_SEARCH_LIMIT = 20
DEFAULT_SEARCH_LIMIT = 5
ASSET_SEARCH_THRESHOLD = 0.6
DOCUMENT_SEARCH_THRESHOLD = 0.7


def _search_params(default_limit: int, query_description: str) -> Dict[str, ToolParam]:
    return {
        "query": ToolParam(
            name="query",
            description=query_description,
            required=True,
            schema={"type": "string"},
        ),
        "limit": ToolParam(
            name="limit",
            description=f"Maximum number of results, default {default_limit}",
            required=False,
            schema={
                "type": "integer",
                "minimum": 1,
                "maximum": MAX_SEARCH_LIMIT,
                "default": default_limit,
            },
        ),
    }


def _make_search_assets_tool(vector_search: VectorSearch, threshold: float) -> ToolFunc:
    async def _run(args: Dict[str, Any], ctx: ToolContext) -> List[Any]:
        results = await vector_search.search_assets(
            args["query"],
            ctx.user_id,
            limit=args["limit"],
            threshold=threshold,
        )
        return list(results or [])

    return _run


def _make_search_documents_tool(vector_search: VectorSearch, threshold: float) -> ToolFunc:
    async def _run(args: Dict[str, Any], ctx: ToolContext) -> List[Any]:
        chunks = await vector_search.search_document_chunks(
            args["query"],
            ctx.user_id,
            limit=args["limit"],
            threshold=threshold,
        )
        return list(chunks or [])

    return _run


def _make_analyze_image_tool(image_analysis: ImageAnalysis) -> ToolFunc:
    async def _run(args: Dict[str, Any], ctx: ToolContext) -> Any:
        analysis = await image_analysis.analyze_image(args["imageUrl"])
        if analysis is None:
            return {}
        return analysis

    return _run


def search_assets_tool(
    vector_search: VectorSearch,
    threshold: float = ASSET_SEARCH_THRESHOLD,
    default_limit: int = DEFAULT_SEARCH_LIMIT,
) -> ToolDescriptor:
    return ToolDescriptor(
        name="search_assets",
        description="Find visually similar assets in the user's own library.",
        params=_search_params(default_limit, "Natural-language or file name query"),
        executor=_make_search_assets_tool(vector_search, threshold),
    )


def search_documents_tool(
    vector_search: VectorSearch,
    threshold: float = DOCUMENT_SEARCH_THRESHOLD,
    default_limit: int = DEFAULT_SEARCH_LIMIT,
) -> ToolDescriptor:
    return ToolDescriptor(
        name="search_documents",
        description="Search within the text of documents the user has uploaded.",
        params=_search_params(default_limit, "Text to look for in uploaded documents"),
        executor=_make_search_documents_tool(vector_search, threshold),
    )


def analyze_image_tool(image_analysis: ImageAnalysis) -> ToolDescriptor:
    return ToolDescriptor(
        name="analyze_image",
        description="Return dominant colours and objects detected in an image URL.",
        params={
            "imageUrl": ToolParam(
                name="imageUrl",
                description="The URL of the image to analyze",
                required=True,
                schema={"type": "string"},
            )
        },
        executor=_make_analyze_image_tool(image_analysis),
    )


def web_search_tool(city: Optional[str] = None, country: Optional[str] = None) -> ToolDescriptor:
    location: Dict[str, Any] = {"type": "approximate"}
    if city:
        location["city"] = city
    if country:
        location["country"] = country
    return ToolDescriptor(
        name="web_search",
        description="Search the web for current trends, events and design inspiration.",
        kind="hosted",
        options={"user_location": location},
    )


def build_tool_catalog(
    vector_search: Optional[VectorSearch],
    image_analysis: Optional[ImageAnalysis],
    settings,
) -> List[ToolDescriptor]:
    """根据可用的协作方与配置生成工具列表，顺序固定。"""

    default_limit = getattr(settings, "search_limit_default", DEFAULT_SEARCH_LIMIT)
    tools: List[ToolDescriptor] = []
    if vector_search is not None:
        tools.append(
            search_assets_tool(
                vector_search,
                threshold=getattr(settings, "asset_search_threshold", ASSET_SEARCH_THRESHOLD),
                default_limit=default_limit,
            )
        )
        tools.append(
            search_documents_tool(
                vector_search,
                threshold=getattr(settings, "document_search_threshold", DOCUMENT_SEARCH_THRESHOLD),
                default_limit=default_limit,
            )
        )
    if image_analysis is not None:
        tools.append(analyze_image_tool(image_analysis))
    if getattr(settings, "enable_web_search", False):
        tools.append(
            web_search_tool(
                city=getattr(settings, "web_search_city", None),
                country=getattr(settings, "web_search_country", None),
            )
        )
    return tools
