# Settings modules
from .app_settings import AppSettings, ChannelsSettings, get_app_settings
from .channels_settings import PdfSettings, SmsSettings, SmtpSettings, WhatsAppSettings
from .database_settings import DatabaseSettings
from .engine_settings import EngineSettings

__all__ = [
    "AppSettings",
    "ChannelsSettings",
    "DatabaseSettings",
    "EngineSettings",
    "get_app_settings",
    "PdfSettings",
    "SmsSettings",
    "SmtpSettings",
    "WhatsAppSettings",
]
