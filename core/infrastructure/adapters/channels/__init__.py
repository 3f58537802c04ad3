"""Channel executors and the registry built from settings.

Concrete executors are imported lazily so that aiohttp is only loaded when a
network-backed channel is enabled.
"""
import logging

from core.domain.enums import ChannelKind
from core.settings.modules.app_settings import ChannelsSettings
from orchestration.registry import ExecutorRegistry

from .mock_executor import MockChannelExecutor

logger = logging.getLogger(__name__)

__all__ = ["MockChannelExecutor", "build_registry"]


def build_registry(settings: ChannelsSettings) -> ExecutorRegistry:
    """
    Register one executor per channel kind.

    Enabled channels get their real executor; disabled ones fall back to
    MockChannelExecutor so operations still run end to end.
    """
    registry = ExecutorRegistry()

    if settings.smtp.enabled:
        from .email_executor import SmtpEmailExecutor

        registry.register(SmtpEmailExecutor(settings.smtp))
    if settings.whatsapp.enabled:
        from .whatsapp_executor import WhatsAppExecutor

        registry.register(WhatsAppExecutor(settings.whatsapp))
    if settings.sms.enabled:
        from .sms_executor import SmsGatewayExecutor

        registry.register(SmsGatewayExecutor(settings.sms))
    if settings.pdf.enabled:
        from .pdf_executor import PdfRenderExecutor

        registry.register(PdfRenderExecutor(settings.pdf))

    for kind in ChannelKind:
        if kind not in registry:
            registry.register(MockChannelExecutor(kind))
            logger.info(f"Channel '{kind.value}' disabled, using MockChannelExecutor")

    return registry
