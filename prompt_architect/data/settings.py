# prompt_architect/data/settings.py
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebConfig(BaseModel):
    listening_host: str = "0.0.0.0"
    listening_port: int = 8080
    client_max_size_mb: int = 20
    session_cookie: str = "pa_session"
    session_ttl_seconds: float = 3600.0
    session_sweep_interval_seconds: float = 60.0


class ApiUrls(BaseModel):
    google_api_key: SecretStr | None = None


class GenerationConfig(BaseModel):
    """Which client serves both calls and which models it targets."""
    client: str = "google"
    optimizer_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-2.5-flash-image"
    temperature: float | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    web: WebConfig = Field(default_factory=WebConfig)
    api_urls: ApiUrls = Field(default_factory=ApiUrls)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)

    logging_level: int = 20


settings = Settings()
