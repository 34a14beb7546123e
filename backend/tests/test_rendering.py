# tests/test_rendering.py
# 审批邮件渲染与收件人解析测试

from datetime import date
from urllib.parse import parse_qs, urlparse

from app.approvals.notifier import parse_recipients
from app.approvals.rendering import build_decision_url, render_notification
from app.core.config import DEFAULT_APPROVER_EMAILS
from app.workflows.types import Decision, Item


PID = "6f1c2b1e-8d7a-4c1e-9f55-0c4b3b1a2d10"


class TestParseRecipients:

    def test_trims_and_drops_blank_segments(self):
        assert parse_recipients("a@x.com; b@y.com ;;") == ["a@x.com", "b@y.com"]

    def test_empty_uses_default(self):
        expected = ["ops1@company.com", "ops2@company.com"]
        assert parse_recipients("") == expected
        assert parse_recipients(None) == expected
        assert parse_recipients("   ") == expected

    def test_only_delimiters_uses_default(self):
        assert parse_recipients(" ; ;; ") == parse_recipients(DEFAULT_APPROVER_EMAILS)

    def test_custom_default(self):
        assert parse_recipients("", default="boss@x.com") == ["boss@x.com"]

    def test_duplicates_removed_in_order(self):
        assert parse_recipients("b@y.com;a@x.com;b@y.com") == ["b@y.com", "a@x.com"]


class TestDecisionUrl:

    def test_url_format(self):
        url = build_decision_url("http://host/approvals", PID, Decision.APPROVE)
        assert url == f"http://host/approvals/decide?pid={PID}&decision=approve"

    def test_trailing_slash_on_base_url(self):
        url = build_decision_url("http://host/approvals/", PID, Decision.REJECT)
        parsed = urlparse(url)
        assert parsed.path == "/approvals/decide"
        assert parse_qs(parsed.query) == {"pid": [PID], "decision": ["reject"]}


class TestRenderNotification:

    def test_one_row_per_item(self, items):
        notification = render_notification(items, PID, "http://host/approvals", "New Wells Approval")

        # 表头一行 + 每个条目一行
        assert notification.html_body.count("<tr>") == len(items) + 1
        assert "<td>Meliha-01</td><td>SRP</td><td>Sandface recompletion</td>" in notification.html_body

    def test_fields_are_escaped(self):
        evil = Item(
            name="<script>alert(1)</script>",
            category="a&b",
            description="<a href='x'>click</a>",
        )
        body = render_notification([evil], PID, "http://host/approvals", "X").html_body

        assert "<script>" not in body
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in body
        assert "a&amp;b" in body
        assert "&lt;a href=&#x27;x&#x27;&gt;click&lt;/a&gt;" in body
        # 只有两个真正的链接
        assert body.count("<a href=") == 2

    def test_links_carry_process_id(self, items):
        notification = render_notification(items, PID, "http://host/approvals", "X")

        assert f"pid={PID}&amp;decision=approve" in notification.html_body
        assert f"pid={PID}&amp;decision=reject" in notification.html_body
        assert f"Approve: http://host/approvals/decide?pid={PID}&decision=approve" in notification.text_body

    def test_subject_contains_date(self, items):
        notification = render_notification(
            items, PID, "http://host/approvals", "New Wells Approval", today=date(2026, 1, 30)
        )
        assert notification.subject == "New Wells Approval - 2026-01-30"

    def test_empty_batch_renders_empty_table(self):
        notification = render_notification([], PID, "http://host/approvals", "X")
        assert "<tbody></tbody>" in notification.html_body
