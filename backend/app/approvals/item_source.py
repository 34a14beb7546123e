# app/approvals/item_source.py
# 待审批条目数据源
#
# 每次定时触发时调用 get_batch() 获取整批条目。
# 获取失败统一抛出 ItemSourceError，由 Orchestrator 中止本次触发。
#
# 实现：
# - StaticItemSource：固定列表（内置示例数据 / 测试）
# - HttpItemSource：从 HTTP 接口拉取 JSON

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import httpx
from pydantic import ValidationError

from app.core.exceptions import ItemSourceError
from app.core.logging import get_logger
from app.schemas.item import ItemBatchPayload, ItemPayload
from app.workflows.types import Item

logger = get_logger(__name__)


# 未配置数据源时使用的示例批次
SAMPLE_ITEMS: tuple[Item, ...] = (
    Item(name="Meliha-01", category="SRP", description="Sandface recompletion"),
    Item(name="Meliha-02", category="ESP", description="Workover complete"),
)


class ItemSource(ABC):
    """待审批条目数据源接口"""

    @abstractmethod
    async def get_batch(self) -> list[Item]:
        """
        获取本次触发的条目批次（保持数据源给出的顺序）

        Raises:
            ItemSourceError: 获取失败
        """


class StaticItemSource(ItemSource):
    """固定列表数据源"""

    def __init__(self, items: Optional[Sequence[Item]] = None):
        self.items = tuple(SAMPLE_ITEMS if items is None else items)

    async def get_batch(self) -> list[Item]:
        return list(self.items)


class HttpItemSource(ItemSource):
    """
    HTTP 数据源

    GET url，接受两种返回格式：
    - [{"name": ..., "category": ..., "description": ...}, ...]
    - {"items": [...]}
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout = timeout
        # 测试时注入 httpx.MockTransport
        self._transport = transport

    async def get_batch(self) -> list[Item]:
        logger.info(f"[ItemSource] GET {self.url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ItemSourceError(f"item source timed out: {self.url}") from e
        except httpx.HTTPStatusError as e:
            raise ItemSourceError(
                f"item source returned {e.response.status_code}: {self.url}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ItemSourceError(f"item source request failed: {e}") from e

        try:
            if isinstance(data, list):
                payloads = [ItemPayload.model_validate(entry) for entry in data]
            else:
                payloads = ItemBatchPayload.model_validate(data).items
        except ValidationError as e:
            raise ItemSourceError(f"item source returned invalid payload: {e}") from e

        items = [p.to_item() for p in payloads]
        logger.info(f"[ItemSource] 获取到 {len(items)} 个条目")
        return items
