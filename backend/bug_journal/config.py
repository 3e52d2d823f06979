from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str

    secret_key: str
    access_token_expire_minutes: int = 10080
    allow_registration: bool = True
    session_cookie_name: str = "bug_journal_token"

    run_migrations: bool = True
    upload_max_bytes: int = 10 * 1024 * 1024

    # "static" (keyword table) or "llm" (chat-completions service)
    suggestion_backend: str = "static"
    suggestion_timeout_seconds: float = 20.0

    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o"
    llm_api_key: str = ""
    llm_temperature: float = 0.7
    llm_max_tokens: int = 600

    cors_origins: str = "http://localhost,http://localhost:3000"
    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
