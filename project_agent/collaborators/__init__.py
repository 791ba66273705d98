"""外部协作方接口。

编排层不实现向量检索或图片分析，只依赖这里定义的协议：

- VectorSearch: 资产与文档片段的相似度检索（按调用者过滤）。
- ImageAnalysis: 图片颜色/特征分析，失败时返回 {"error": ...} 而不是抛异常。

两者都可以提供可选的 async initialize()，由配置构建器并发等待。
"""

from typing import Any, Mapping, Optional, Protocol, Sequence


class VectorSearch(Protocol):
    """向量检索协作方协议，结果按 score 从高到低排列。"""

    async def search_assets(
        self,
        query: str,
        owner_id: Optional[str],
        *,
        limit: int,
        threshold: float,
    ) -> Sequence[Mapping[str, Any]]:
        """返回 {id, filename, score} 序列。"""

        ...

    async def search_document_chunks(
        self,
        query: str,
        owner_id: Optional[str],
        *,
        limit: int,
        threshold: float,
    ) -> Sequence[Mapping[str, Any]]:
        """返回 {text, sourceId, score} 序列。"""

        ...


class ImageAnalysis(Protocol):
    """图片分析协作方协议。"""

    async def analyze_image(self, image_url: str) -> Optional[Mapping[str, Any]]:
        ...


__all__ = ["VectorSearch", "ImageAnalysis"]
