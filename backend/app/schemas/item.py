# app/schemas/item.py
# 待审批条目的接口数据模型
#
# HTTP 数据源返回的 JSON 经过这里校验后再转成 Item。

from pydantic import BaseModel, Field, ConfigDict

from app.workflows.types import Item


class ItemPayload(BaseModel):
    """数据源接口返回的单个条目"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(..., description="名称")
    # 兼容 {"type": "..."} 写法
    category: str = Field("", alias="type", description="类别")
    description: str = Field("", description="描述")

    def to_item(self) -> Item:
        return Item(name=self.name, category=self.category, description=self.description)


class ItemBatchPayload(BaseModel):
    """数据源接口返回体：{"items": [...]}"""
    items: list[ItemPayload] = Field(default_factory=list)
