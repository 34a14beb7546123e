# app/approvals/rendering.py
# 审批邮件渲染
#
# 邮件内容：
# 1. 标题
# 2. 条目表格（Name / Category / Description），所有字段 HTML 转义
# 3. 通过 / 拒绝两个链接：<base_url>/decide?pid=<流程ID>&decision=approve|reject

import html
from datetime import date
from typing import Optional, Sequence
from urllib.parse import urlencode

from app.approvals.notifier import Notification
from app.workflows.types import Decision, Item

HEADING = "New Wells Pending Approval"
TABLE_COLUMNS = ("Name", "Category", "Description")


def build_decision_url(base_url: str, process_id: str, decision: Decision) -> str:
    """生成审批链接"""
    query = urlencode({"pid": process_id, "decision": decision.value})
    return f"{base_url.rstrip('/')}/decide?{query}"


def render_items_table(items: Sequence[Item]) -> str:
    """每个条目一行，字段全部转义"""
    header = "".join(f"<th>{col}</th>" for col in TABLE_COLUMNS)
    rows = "".join(
        "<tr>"
        f"<td>{html.escape(item.name)}</td>"
        f"<td>{html.escape(item.category)}</td>"
        f"<td>{html.escape(item.description)}</td>"
        "</tr>"
        for item in items
    )
    return (
        "<table border='1' cellpadding='6' cellspacing='0'>"
        f"<thead><tr>{header}</tr></thead>"
        f"<tbody>{rows}</tbody>"
        "</table>"
    )


def render_notification(
    items: Sequence[Item],
    process_id: str,
    base_url: str,
    subject_prefix: str,
    today: Optional[date] = None,
) -> Notification:
    """
    渲染审批通知

    Args:
        items: 本批次条目
        process_id: 流程 ID，写进审批链接
        base_url: 审批链接基础地址
        subject_prefix: 主题前缀
        today: 主题中的日期，默认今天

    Returns:
        Notification: 主题、HTML 正文、纯文本正文
    """
    today = today or date.today()
    approve_url = build_decision_url(base_url, process_id, Decision.APPROVE)
    reject_url = build_decision_url(base_url, process_id, Decision.REJECT)

    html_body = (
        f"<h2>{HEADING}</h2>"
        + render_items_table(items)
        + "<div style='margin-top:16px'>"
        f"<a href='{html.escape(approve_url)}'>Approve</a> | "
        f"<a href='{html.escape(reject_url)}'>Reject</a>"
        "</div>"
    )

    text_lines = [HEADING, ""]
    for item in items:
        text_lines.append(f"- {item.name} | {item.category} | {item.description}")
    text_lines += ["", f"Approve: {approve_url}", f"Reject: {reject_url}"]

    return Notification(
        subject=f"{subject_prefix} - {today:%Y-%m-%d}",
        html_body=html_body,
        text_body="\n".join(text_lines),
    )
