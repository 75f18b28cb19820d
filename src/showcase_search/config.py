"""Runtime configuration loaded from environment variables (or ``.env``)."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Search engine
    typesense_host: str = "localhost"
    typesense_port: int = 8108
    typesense_protocol: str = "http"
    typesense_api_key: str = ""

    # Sync jobs tolerate a slow engine; user-facing search should fail fast
    sync_timeout_seconds: float = 10.0
    search_timeout_seconds: float = 2.0

    # Content repository
    directus_url: str = "http://localhost:8055"
    directus_server_token: str = ""

    # Forum webhook
    discourse_api_url: str = ""
    discourse_api_key: str = ""
    discourse_api_username: str = "system"

    # HTTP service
    host: str = "0.0.0.0"
    port: int = 8000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def typesense_url(self) -> str:
        return f"{self.typesense_protocol}://{self.typesense_host}:{self.typesense_port}"
