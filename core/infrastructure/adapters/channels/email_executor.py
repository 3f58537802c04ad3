"""
SMTP Email Executor.

Builds the message with the standard library email package and sends it
with smtplib in a worker thread so the event loop is never blocked.
"""
import asyncio
import base64
import binascii
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict

from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.domain.enums import ChannelKind
from core.domain.exceptions import ValidationError
from core.settings.modules.channels_settings import SmtpSettings

from .payload import channel_block, recipients, text

logger = logging.getLogger(__name__)


class SmtpEmailExecutor(ChannelExecutor):
    """
    Email channel backed by an SMTP server.

    Metadata (``metadata["email"]``):
        recipients: list of addresses (required)
        subject / body / html: message content, falling back to top-level
            ``subject`` and ``body``
        attachments: list of ``{"filename", "content_type", "data"}`` with
            base64 ``data``
        smtp_host / smtp_port / smtp_user / smtp_pass: per-request overrides
    """

    kind = ChannelKind.EMAIL

    def __init__(self, settings: SmtpSettings):
        """
        Initialize SMTP email executor.

        Args:
            settings: SMTP transport settings
        """
        self.settings = settings
        logger.info(f"SmtpEmailExecutor initialized ({settings.host}:{settings.port})")

    def validate(self, metadata: Dict[str, Any]) -> None:
        recipients(metadata, "email")
        if not text(metadata, "email", "subject"):
            raise ValidationError("metadata.email.subject is required")
        for attachment in channel_block(metadata, "email").get("attachments") or []:
            self._decode_attachment(attachment)

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        message = self.build_message(ctx.metadata)
        block = channel_block(ctx.metadata, "email")
        try:
            await asyncio.to_thread(self._send, message, block)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"SMTP delivery failed for operation {ctx.operation_id}: {exc}")
            return ChannelResult.failure(f"SMTP error: {exc}")
        logger.info(
            f"Email for operation {ctx.operation_id} sent to {message['To']} "
            f"(attempt {ctx.attempt})"
        )
        return ChannelResult.success()

    def build_message(self, metadata: Dict[str, Any]) -> EmailMessage:
        """Assemble the MIME message from operation metadata."""
        block = channel_block(metadata, "email")
        message = EmailMessage()
        message["From"] = block.get("sender") or self.settings.sender
        message["To"] = ", ".join(recipients(metadata, "email"))
        message["Subject"] = text(metadata, "email", "subject")
        message.set_content(text(metadata, "email", "body"))

        html = block.get("html")
        if html:
            message.add_alternative(html, subtype="html")

        for attachment in block.get("attachments") or []:
            data, maintype, subtype = self._decode_attachment(attachment)
            message.add_attachment(
                data,
                maintype=maintype,
                subtype=subtype,
                filename=attachment["filename"],
            )
        return message

    @staticmethod
    def _decode_attachment(attachment: Any):
        if not isinstance(attachment, dict) or not attachment.get("filename"):
            raise ValidationError("email attachments need a filename")
        content_type = attachment.get("content_type") or "application/octet-stream"
        if "/" not in content_type:
            raise ValidationError(f"Invalid attachment content_type: {content_type}")
        try:
            data = base64.b64decode(attachment.get("data") or "", validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValidationError(
                f"Attachment {attachment['filename']} is not valid base64"
            ) from exc
        maintype, subtype = content_type.split("/", 1)
        return data, maintype, subtype

    def _send(self, message: EmailMessage, block: Dict[str, Any]) -> None:
        host = block.get("smtp_host") or self.settings.host
        port = int(block.get("smtp_port") or self.settings.port)
        username = block.get("smtp_user") or self.settings.username
        password = block.get("smtp_pass") or self.settings.password

        with smtplib.SMTP(host, port, timeout=self.settings.timeout_seconds) as smtp:
            if self.settings.use_tls:
                smtp.starttls()
            if username:
                smtp.login(username, password or "")
            refused = smtp.send_message(message)
        if refused:
            raise smtplib.SMTPRecipientsRefused(refused)
