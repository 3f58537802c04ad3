from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict

from core.settings.modules.channels_settings import (
    PdfSettings,
    SmsSettings,
    SmtpSettings,
    WhatsAppSettings,
)
from core.settings.modules.database_settings import DatabaseSettings
from core.settings.modules.engine_settings import EngineSettings


class ChannelsSettings(BaseModel):
    """Aggregates channel executor settings as nested objects."""

    model_config = ConfigDict(extra="ignore")

    smtp: SmtpSettings
    whatsapp: WhatsAppSettings
    sms: SmsSettings
    pdf: PdfSettings


class AppSettings(BaseModel):
    """
    Application settings aggregator.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="ignore")

    database: DatabaseSettings
    engine: EngineSettings
    channels: ChannelsSettings


@lru_cache()
def get_app_settings() -> AppSettings:
    return AppSettings(
        database=DatabaseSettings(),
        engine=EngineSettings(),
        channels=ChannelsSettings(
            smtp=SmtpSettings(),
            whatsapp=WhatsAppSettings(),
            sms=SmsSettings(),
            pdf=PdfSettings(),
        ),
    )
