# painmap/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    database_url: str = Field("sqlite:///./painmap.db", validation_alias="DATABASE_URL")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    openai_api_key: str | None = Field(None, validation_alias="OPENAI_API_KEY")
    openai_base_url: str | None = Field(None, validation_alias="OPENAI_BASE_URL")
    llm_model: str = Field("llama-3.3-70b-versatile", validation_alias="LLM_MODEL")
    llm_max_tokens: int = Field(2000, validation_alias="LLM_MAX_TOKENS")

    # Client-side draft handling
    draft_key: str = Field("assessment:draft:v1", validation_alias="DRAFT_KEY")
    draft_dir: str = Field(".drafts", validation_alias="DRAFT_DIR")
    autosave_delay_seconds: float = Field(0.75, validation_alias="AUTOSAVE_DELAY_SECONDS")
    saving_indicator_floor_seconds: float = Field(
        0.3, validation_alias="SAVING_INDICATOR_FLOOR_SECONDS"
    )

    # Submission stream
    submit_url: str = Field(
        "http://localhost:8000/api/assessment/submit-stream",
        validation_alias="SUBMIT_URL",
    )
    stream_timeout_seconds: float = Field(90.0, validation_alias="STREAM_TIMEOUT_SECONDS")

    # Outbound notification email (disabled when smtp_host is unset)
    smtp_host: str | None = Field(None, validation_alias="SMTP_HOST")
    smtp_port: int = Field(587, validation_alias="SMTP_PORT")
    smtp_username: str | None = Field(None, validation_alias="SMTP_USERNAME")
    smtp_password: str | None = Field(None, validation_alias="SMTP_PASSWORD")
    email_sender_address: str | None = Field(None, validation_alias="EMAIL_SENDER_ADDRESS")
    email_recipient_address: str | None = Field(None, validation_alias="EMAIL_RECIPIENT_ADDRESS")
    email_bcc_address: str | None = Field(None, validation_alias="EMAIL_BCC_ADDRESS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
