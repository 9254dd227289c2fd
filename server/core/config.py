"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=3010, env="PORT", ge=1024, le=65535)
    debug: bool = Field(default=False, env="DEBUG")
    workers: int = Field(default=1, env="WORKERS", ge=1, le=8)

    # Subscription credentials (embedded into generated outbounds)
    uuid: str = Field(env="UUID")
    tr_pass: str = Field(env="TR_PASS", min_length=1)

    # Settings API protection; unset disables the check
    admin_token: Optional[str] = Field(default=None, env="ADMIN_TOKEN")
    admin_cookie_name: str = Field(default="xraygen_token", env="ADMIN_COOKIE_NAME")

    cors_origins: List[str] = Field(default_factory=list, env="CORS_ORIGINS")

    # Database Configuration
    database_url: str = Field(default="sqlite+aiosqlite:///./data/xraygen.db", env="DATABASE_URL")
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")

    # DNS-over-HTTPS resolver
    doh_url: str = Field(default="https://cloudflare-dns.com/dns-query", env="DOH_URL")
    doh_timeout: float = Field(default=10.0, env="DOH_TIMEOUT", ge=1.0, le=60.0)

    # WARP registration API
    warp_api_url: str = Field(default="https://api.cloudflareclient.com/v0a4005", env="WARP_API_URL")
    warp_timeout: float = Field(default=20.0, env="WARP_TIMEOUT", ge=1.0, le=120.0)

    # Remark label prefix for generated documents
    remark_prefix: str = Field(default="💦", env="REMARK_PREFIX")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        """Ensure database directory exists for SQLite."""
        if v and v.startswith("sqlite"):
            if ":///" in v:
                db_path = v.split("///")[1]
                if db_path and db_path != ":memory:":
                    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> Literal["json", "console"]:
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
        "env_nested_delimiter": "__",
    }
