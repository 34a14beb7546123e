# app/schemas/__init__.py
# Pydantic Schema 包

from app.schemas.item import ItemPayload, ItemBatchPayload

__all__ = [
    "ItemPayload",
    "ItemBatchPayload",
]
