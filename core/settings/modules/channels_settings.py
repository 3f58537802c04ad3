from __future__ import annotations

from typing import Optional

from pydantic import Field

from core.settings.base_settings import OpflowBaseSettings


class SmtpSettings(OpflowBaseSettings):
    """
    SMTP transport for the email channel.
    Per-request overrides may be supplied in the operation metadata.
    """

    enabled: bool = Field(False, alias="OPFLOW_SMTP_ENABLED")
    host: str = Field("localhost", alias="OPFLOW_SMTP_HOST")
    port: int = Field(587, alias="OPFLOW_SMTP_PORT")
    username: Optional[str] = Field(None, alias="OPFLOW_SMTP_USERNAME")
    password: Optional[str] = Field(None, alias="OPFLOW_SMTP_PASSWORD")
    sender: str = Field("no-reply@localhost", alias="OPFLOW_SMTP_SENDER")
    use_tls: bool = Field(True, alias="OPFLOW_SMTP_STARTTLS")
    timeout_seconds: float = Field(30.0, gt=0, alias="OPFLOW_SMTP_TIMEOUT")


class WhatsAppSettings(OpflowBaseSettings):
    """
    WhatsApp HTTP gateway (session based API).
    """

    enabled: bool = Field(False, alias="OPFLOW_WHATSAPP_ENABLED")
    api_url: str = Field("http://localhost:3000", alias="OPFLOW_WHATSAPP_API_URL")
    session_id: str = Field("default", alias="OPFLOW_WHATSAPP_SESSION_ID")
    timeout_seconds: float = Field(30.0, gt=0, alias="OPFLOW_WHATSAPP_TIMEOUT")


class SmsSettings(OpflowBaseSettings):
    """
    SMS HTTP gateway.
    """

    enabled: bool = Field(False, alias="OPFLOW_SMS_ENABLED")
    api_url: str = Field("http://localhost:8080/messages", alias="OPFLOW_SMS_API_URL")
    api_key: Optional[str] = Field(None, alias="OPFLOW_SMS_API_KEY")
    sender_id: str = Field("OPFLOW", alias="OPFLOW_SMS_SENDER_ID")
    timeout_seconds: float = Field(15.0, gt=0, alias="OPFLOW_SMS_TIMEOUT")


class PdfSettings(OpflowBaseSettings):
    """
    Headless browser used to render HTML into PDF.
    Paper size and margins are in inches.
    """

    enabled: bool = Field(False, alias="OPFLOW_PDF_ENABLED")
    browser_path: str = Field("chromium", alias="OPFLOW_PDF_BROWSER_PATH")
    output_dir: str = Field("./pdf-output", alias="OPFLOW_PDF_OUTPUT_DIR")
    timeout_seconds: float = Field(60.0, gt=0, alias="OPFLOW_PDF_TIMEOUT")
    default_width: float = Field(8.27, gt=0, alias="OPFLOW_PDF_DEFAULT_WIDTH")
    default_height: float = Field(11.69, gt=0, alias="OPFLOW_PDF_DEFAULT_HEIGHT")
