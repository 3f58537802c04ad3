from pydantic_settings import BaseSettings, SettingsConfigDict


class OpflowBaseSettings(BaseSettings):
    """Common loader configuration: .env file, exact alias matching."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )
