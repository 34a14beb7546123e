# app/approvals/notifier.py
# 审批通知发送
#
# 功能说明：
# 1. 解析审批人收件列表
# 2. ConsoleNotifier：把邮件打印到控制台（本地测试）
# 3. SmtpNotifier：通过 aiosmtplib 发送 HTML 邮件
#
# 发送失败统一抛出 NotificationError。

import sys
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate
from typing import Optional, Sequence, TextIO

import aiosmtplib

from app.core.config import DEFAULT_APPROVER_EMAILS
from app.core.exceptions import NotificationError
from app.core.logging import get_logger

logger = get_logger(__name__)

RECIPIENT_DELIMITER = ";"


def parse_recipients(raw: Optional[str], default: str = DEFAULT_APPROVER_EMAILS) -> list[str]:
    """
    解析分号分隔的收件人列表

    - 去掉每段首尾空白，丢弃空段
    - 去重，保留首次出现的顺序
    - 配置为空（或解析后为空）时使用 default

    示例：
        parse_recipients("a@x.com; b@y.com ;;")  -> ["a@x.com", "b@y.com"]
    """
    recipients = _split(raw)
    if not recipients:
        recipients = _split(default)
    return recipients


def _split(raw: Optional[str]) -> list[str]:
    result: list[str] = []
    for part in (raw or "").split(RECIPIENT_DELIMITER):
        address = part.strip()
        if address and address not in result:
            result.append(address)
    return result


@dataclass
class Notification:
    """渲染好的通知"""
    subject: str
    html_body: str
    text_body: str


class Notifier(ABC):
    """通知发送接口"""

    @abstractmethod
    async def send(self, recipients: Sequence[str], notification: Notification) -> None:
        """
        发送通知

        Raises:
            NotificationError: 发送失败
        """


class ConsoleNotifier(Notifier):
    """打印到控制台，不真正发送"""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    async def send(self, recipients: Sequence[str], notification: Notification) -> None:
        lines = [
            "---- EMAIL ----",
            "To: " + ",".join(recipients),
            "Subject: " + notification.subject,
            notification.html_body,
            "---------------",
        ]
        try:
            self.stream.write("\n".join(lines) + "\n")
            self.stream.flush()
        except OSError as e:
            raise NotificationError(f"console write failed: {e}") from e


class SmtpNotifier(Notifier):
    """
    SMTP 发送

    同时附带纯文本和 HTML 两个部分（multipart/alternative）。
    """

    def __init__(
        self,
        host: str,
        port: int = 465,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        sender: str = "",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender or username

    def build_message(self, recipients: Sequence[str], notification: Notification) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = notification.subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = f"<{uuid.uuid4()}@{self.host}>"

        msg.attach(MIMEText(notification.text_body, "plain", "utf-8"))
        msg.attach(MIMEText(notification.html_body, "html", "utf-8"))
        return msg

    async def send(self, recipients: Sequence[str], notification: Notification) -> None:
        msg = self.build_message(recipients, notification)

        logger.info(f"[SMTP] 发送邮件: {notification.subject}")
        logger.info(f"[SMTP]   收件人: {list(recipients)}")

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.host,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=self.use_tls,
                start_tls=not self.use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[SMTP] 发送失败: {e}")
            raise NotificationError(f"smtp send failed: {e}") from e

        logger.info(f"[SMTP] 发送成功: {msg['Message-ID']}")
