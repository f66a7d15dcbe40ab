from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = ""  # Overrides the POSTGRES_* values when set (e.g. sqlite:///reposcan.db)
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"
    POSTGRES_USER: str = "reposcan"
    POSTGRES_PASSWORD: str = "reposcan_secret"
    POSTGRES_DB: str = "reposcan"
    JOB_RETENTION_DAYS: int = 7

    # GitHub - only needed for private repositories
    GITHUB_TOKEN: str = ""

    # Cloning
    CLONE_TEMP_DIR: str = ""  # Empty means the system temp directory
    MAX_REPO_SIZE_MB: int = 500
    CLONE_TIMEOUT_SECONDS: int = 300

    # Tools
    SCANNER_CONTAINER: str = ""  # Empty runs tools on the host instead of via docker exec
    TOOL_TIMEOUT_SECONDS: int = 300
    TOOL_MAX_PARALLEL: int = 1

    # AI review - values come from .env file
    AI_PROVIDER: str = "openai"  # openai, ollama, none
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o"
    OLLAMA_BASE_URL: str = "http://ollama:11434"
    OLLAMA_MODEL: str = "llama3"
    AI_REVIEW_MAX_FILES: int = 10
    AI_REVIEW_MAX_FINDINGS: int = 10
    AI_REQUEST_TIMEOUT_SECONDS: int = 180

    # Concurrency
    MAX_CONCURRENT_REQUESTS: int = 5
    SCAN_WORKERS: int = 4

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def clone_temp_dir(self) -> Optional[str]:
        return self.CLONE_TEMP_DIR or None


settings = Settings()
