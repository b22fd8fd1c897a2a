from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql://postgres:postgres@db:5432/formtrack"

    # Public base URL used when building confirmation and invite links
    site_url: str = "http://localhost:3000"

    # Outbound email webhooks (empty means not configured)
    signup_confirmation_webhook_url: str = ""
    notification_webhook_url: str = ""
    invite_webhook_url: str = ""  # Optional: links are returned for manual sending when unset
    webhook_timeout: float = 15.0  # seconds

    # Token settings
    token_length: int = 32
    confirmation_token_ttl_hours: int = 24
    invite_token_ttl_hours: int = 24

    # Notification dispatch
    notification_batch_size: int = 10

    # Auth settings
    session_max_age: int = 86400 * 7  # 7 days
    min_password_length: int = 6

    class Config:
        env_file = ".env"


settings = Settings()
