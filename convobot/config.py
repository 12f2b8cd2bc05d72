from functools import lru_cache
from typing import List, Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Storage ---
    gcp_project_id: Optional[str] = None
    firestore_database: str = "(default)"
    storage_backend: Literal["firestore", "memory"] = "firestore"
    seed_demo_data: bool = False  # only honoured by the memory backend

    # --- Gemini ---
    gemini_api_key: Optional[str] = None
    genai_use_vertex: bool = False  # Vertex AI instead of an API key
    gcp_location: str = "global"
    model_generation: str = "gemini-2.0-flash"
    max_output_tokens: int = 512

    # --- Chat Settings ---
    max_user_message_chars: int = 1000
    max_response_chars: int = 500
    max_history_messages: int = 10

    # --- Persistence retry ---
    store_retry_attempts: int = 3
    store_retry_base_delay: float = 1.0

    # --- HTTP ---
    cors_origins: str = "*"

    # --- Auth Audience ---
    auth_google_client_id: str = ""  # The Client ID used by the dashboard frontend

    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> List[str]:
        """Convert comma-separated CORS origins to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
