"""
WhatsApp Executor.

Sends text messages through a session based WhatsApp HTTP API.
"""
import asyncio
import logging
from typing import Any, Dict

import aiohttp

from core.application.interfaces import ChannelContext, ChannelExecutor, ChannelResult
from core.domain.enums import ChannelKind
from core.domain.exceptions import ValidationError
from core.settings.modules.channels_settings import WhatsAppSettings

from .payload import recipients, text

logger = logging.getLogger(__name__)

CONNECTED = "CONNECTED"


class WhatsAppExecutor(ChannelExecutor):
    """
    WhatsApp channel.

    Checks ``GET {api_url}/session/status/{session_id}`` reports a
    ``CONNECTED`` state, then posts one ``client/sendMessage`` per recipient.

    Metadata (``metadata["whatsapp"]``):
        recipients: list of chat ids (required)
        body: message text, falling back to top-level ``body``
    """

    kind = ChannelKind.WHATSAPP

    def __init__(self, settings: WhatsAppSettings):
        """
        Initialize WhatsApp executor.

        Args:
            settings: WhatsApp API settings
        """
        self.settings = settings
        self.base_url = settings.api_url.rstrip("/")
        self.session_id = settings.session_id
        logger.info(f"WhatsAppExecutor initialized ({self.base_url}, session={self.session_id})")

    def validate(self, metadata: Dict[str, Any]) -> None:
        recipients(metadata, "whatsapp")
        if not text(metadata, "whatsapp"):
            raise ValidationError("metadata.whatsapp.body is required")

    async def execute(self, ctx: ChannelContext) -> ChannelResult:
        chat_ids = recipients(ctx.metadata, "whatsapp")
        message = text(ctx.metadata, "whatsapp")
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                state = await self._session_state(session)
                if state != CONNECTED:
                    logger.error(f"WhatsApp session {self.session_id} is {state}")
                    return ChannelResult.failure(
                        f"WhatsApp session is not {CONNECTED} (state={state})"
                    )

                for chat_id in chat_ids:
                    payload = {"chatId": chat_id, "contentType": "string", "content": message}
                    url = f"{self.base_url}/client/sendMessage/{self.session_id}"
                    async with session.post(url, json=payload) as response:
                        if response.status >= 400:
                            error_text = await response.text()
                            logger.error(
                                f"WhatsApp API error for {chat_id}: {response.status} - {error_text}"
                            )
                            return ChannelResult.failure(
                                f"WhatsApp send to {chat_id} failed: {response.status} {error_text}"
                            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"WhatsApp request failed for operation {ctx.operation_id}: {e}")
            return ChannelResult.failure(f"WhatsApp API unreachable: {e}")

        logger.info(f"WhatsApp message for operation {ctx.operation_id} sent to {len(chat_ids)} chat(s)")
        return ChannelResult.success()

    async def _session_state(self, session: aiohttp.ClientSession) -> str:
        url = f"{self.base_url}/session/status/{self.session_id}"
        async with session.get(url) as response:
            if response.status >= 400:
                error_text = await response.text()
                raise aiohttp.ClientResponseError(
                    response.request_info,
                    response.history,
                    status=response.status,
                    message=error_text,
                )
            data = await response.json(content_type=None)
        return (data or {}).get("state") or "UNKNOWN"
