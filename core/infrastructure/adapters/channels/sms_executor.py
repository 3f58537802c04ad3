"""
SMS Gateway Executor.

Posts messages to an HTTP SMS gateway.
"""
import asyncio
import logging
from typing import Any, Dict

import aiohttp

from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.domain.enums import ChannelKind
from core.domain.exceptions import ValidationError
from core.settings.modules.channels_settings import SmsSettings

from .payload import recipients, text

logger = logging.getLogger(__name__)

MAX_SMS_LENGTH = 1600


class SmsGatewayExecutor(ChannelExecutor):
    """
    SMS channel.

    Metadata (``metadata["sms"]``):
        recipients: list of phone numbers (required)
        body: message text, falling back to top-level ``body``
    """

    kind = ChannelKind.SMS

    def __init__(self, settings: SmsSettings):
        """
        Initialize SMS gateway executor.

        Args:
            settings: SMS gateway settings
        """
        self.settings = settings
        logger.info(f"SmsGatewayExecutor initialized ({settings.api_url})")

    def validate(self, metadata: Dict[str, Any]) -> None:
        recipients(metadata, "sms")
        body = text(metadata, "sms")
        if not body:
            raise ValidationError("metadata.sms.body is required")
        if len(body) > MAX_SMS_LENGTH:
            raise ValidationError(f"SMS body exceeds {MAX_SMS_LENGTH} characters")

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        payload = {
            "from": self.settings.sender_id,
            "to": recipients(ctx.metadata, "sms"),
            "text": text(ctx.metadata, "sms"),
            "reference": ctx.channel_id,
        }
        headers = {}
        if self.settings.api_key:
            headers["Authorization"] = f"Bearer {self.settings.api_key}"
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.settings.api_url, json=payload, headers=headers) as response:
                    if response.status >= 400:
                        error_text = await response.text()
                        logger.error(f"SMS gateway error: {response.status} - {error_text}")
                        return ChannelResult.failure(
                            f"SMS gateway returned {response.status}: {error_text}"
                        )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"SMS request failed for operation {ctx.operation_id}: {e}")
            return ChannelResult.failure(f"SMS gateway unreachable: {e}")

        logger.info(f"SMS for operation {ctx.operation_id} accepted by gateway")
        return ChannelResult.success()
