# app/models/__init__.py
# 数据模型包
#
# 使用方式：from app.models import WorkflowProcess

from app.models.process import WorkflowProcess, WorkflowProcessTransition

__all__ = [
    "WorkflowProcess",
    "WorkflowProcessTransition",
]
