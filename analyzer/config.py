from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class OpenAIConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_OPENAI__",
        env_file=".env",
        extra="ignore",
    )

    # Leave endpoint empty to talk to api.openai.com instead of Azure.
    endpoint: str = ""
    deployment: str = "gpt-4o-mini"
    api_version: str = "2024-12-01-preview"


class NotebookConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_NOTEBOOK__",
        env_file=".env",
        extra="ignore",
    )

    provider: Literal["local", "llm", "mock"] = "local"
    analysis_timeout_s: float = 30.0
    mock_delay_s: float = 1.5
    max_upload_bytes: int = 50 * 1024 * 1024
    max_chart_points: int = 200
    preview_rows: int = 20


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    openai: OpenAIConfig = OpenAIConfig()
    notebook: NotebookConfig = NotebookConfig()


settings = Settings()
