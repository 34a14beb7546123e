# app/api/approvals.py
# 审批决策 API
#
# 审批邮件中的链接直接指向这里：
# - GET /approvals/decide?pid=<流程ID>&decision=<approve|reject>
#
# 说明：
# 用 GET 修改状态是为了让邮件里的链接点一下就生效。
# 链接可能被邮件扫描器预取或被重复点击，重复请求由 DecisionGateway 的
# 流程锁和"命令不可用"检查兜底，只会生效一次。

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from app.approvals.gateway import DecisionGateway
from app.core.exceptions import LockTimeoutError
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/approvals",
    tags=["Approvals"],
)


def get_gateway(request: Request) -> DecisionGateway:
    """从 app.state 获取 DecisionGateway"""
    return request.app.state.services.gateway


@router.get(
    "/decide",
    response_class=PlainTextResponse,
    summary="记录审批决策",
    description="审批邮件中的通过/拒绝链接",
    responses={
        400: {"description": "命令不可用（已决策、流程不存在或状态不符）"},
        409: {"description": "同一流程的其他请求正在处理"},
    },
)
async def decide(
    pid: Optional[str] = Query(None, description="流程 ID"),
    decision: Optional[str] = Query(None, description="approve / reject，其他值按 reject 处理"),
    gateway: DecisionGateway = Depends(get_gateway),
) -> PlainTextResponse:
    try:
        outcome = await gateway.decide(pid, decision)
    except LockTimeoutError:
        return PlainTextResponse("Decision is being processed, please retry.", status_code=409)

    status_code = 200 if outcome.recorded else 400
    return PlainTextResponse(outcome.message, status_code=status_code)
