from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # Server
    app_name: str = Field(default="Ekhaya Admin")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    trust_proxy_headers: bool = Field(default=False)
    trusted_proxies: str = Field(default="127.0.0.1,::1")  # only these peers may set X-Forwarded-For
    cors_origins: str = Field(default="http://localhost:3000")

    # Bootstrap admin
    admin_username: str = Field(default="admin")
    admin_email: str = Field(default="admin@example.com")
    admin_password: Optional[str] = Field(default=None)  # Required by scripts/init_db.py only
    secret_key: str = Field(...)  # Required, no default

    # JWT
    jwt_algorithm: str = Field(default="HS256")
    admin_session_expire_minutes: int = Field(default=120)  # 2 hours

    # Passwords
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    # Account lockout
    lockout_threshold: int = Field(default=5, ge=1)
    lockout_duration_minutes: int = Field(default=15, ge=1)

    # Per-address brute force protection
    ip_max_failed_attempts: int = Field(default=10, ge=1)
    ip_block_minutes: int = Field(default=30, ge=1)
    ip_attempt_window_minutes: int = Field(default=15, ge=1)

    # Two-factor authentication
    totp_issuer: str = Field(default="Ekhaya Car Wash")
    totp_interval: int = Field(default=30)
    totp_valid_window: int = Field(default=2, ge=0)  # steps either side of now
    totp_secret_length: int = Field(default=52, ge=52)  # base32 chars, 5 bits each
    recovery_code_count: int = Field(default=10, ge=1)

    # Database
    database_url: str = Field(default="sqlite+aiosqlite:///./data/ekhaya.db")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def trusted_proxies_list(self) -> list[str]:
        return [proxy.strip() for proxy in self.trusted_proxies.split(",") if proxy.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
