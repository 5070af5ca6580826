from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database (the user should only have read-only permissions)
    DB_HOST: str = "localhost"
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = ""
    DB_PORT: int = 3306
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10

    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 1413

    # Shared secret expected in "Authorization: Bearer <token>"
    AUTH_TOKEN: str = ""

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"

    CACHE_MAX_ENTRIES: int = 500
    CACHE_TTL_SECONDS: float = 300

    MAX_QUERY_LENGTH: int = 1000

    DIAGRAMS_DIR: str = "diagrams"
    MERMAID_COMMAND: str = "npx -p @mermaid-js/mermaid-cli mmdc"
    PUBLIC_BASE_URL: str = "http://localhost:1413"

    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
