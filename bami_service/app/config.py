# Application Configuration using Pydantic BaseSettings
from pydantic_settings import BaseSettings
from typing import List, Optional

class AppSettings(BaseSettings):
    # Observability
    LOG_LEVEL: str = "INFO"
    OTEL_EXPORTER_OTLP_TRACES_ENDPOINT: Optional[str] = None
    OTEL_EXPORTER_OTLP_METRICS_ENDPOINT: Optional[str] = None
    OTEL_CONSOLE_EXPORTERS_ENABLED: bool = True
    SERVICE_NAME_API: str = "bami-tracker-api"

    # Shared outbound HTTP client
    DEFAULT_HTTP_TIMEOUT: float = 60.0

    # AI collaborator (OpenAI chat completions)
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    AI_VALIDATION_TIMEOUT_SECONDS: float = 45.0
    AI_ANALYSIS_TIMEOUT_SECONDS: float = 60.0

    # Event channel / reading pipeline
    SSE_KEEPALIVE_SECONDS: float = 15.0
    PIPELINE_SERIALIZE_PER_CASE: bool = True

    # Access control
    BAMI_API_KEY: Optional[str] = None # When unset, the API key guard lets every request through
    ADMIN_EMAIL: str = "prueba@correo.com"
    ADMIN_PASSWORD: str = "12345"
    ADMIN_TOKEN: str = "bami-demo-token"
    CORS_ORIGINS: str = "http://localhost:5173,http://127.0.0.1:5173"

    # Cases and uploads
    DEFAULT_CASE_OWNER: str = "María"
    MAX_UPLOAD_FILES: int = 12
    MAX_UPLOAD_FILE_BYTES: int = 10 * 1024 * 1024

    # Chat-suggested narration caps
    CHAT_MAX_PUBLISH_ACTIONS: int = 6
    CHAT_MAX_PUBLISH_CHARS: int = 500

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

# Instantiate settings to be imported by other modules
settings = AppSettings()

import logging
logger = logging.getLogger(__name__)
# Avoid logging secrets (OPENAI_API_KEY, BAMI_API_KEY, ADMIN_TOKEN) here.
logger.info("Application settings module initialized.")
