"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database (MySQL-protocol; SQLite for local runs) ───────────────────
    database_url: Optional[str] = None
    mysql_host: str = "mysql"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = ""
    mysql_database: str = "watchhive"

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_database}"
        )

    # ── Redis (catalog response cache) ─────────────────────────────────────
    redis_host: str = "redis"
    redis_port: int = 6379
    catalog_cache_enabled: bool = True
    catalog_trending_ttl: int = 900      # trending lists change slowly

    # ── TMDB catalog ───────────────────────────────────────────────────────
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_api_key: str = ""
    tmdb_timeout_s: float = 10.0
    tmdb_max_attempts: int = 3
    tmdb_backoff_base_s: float = 1.0
    tmdb_backoff_max_s: float = 4.0

    # ── Auth ───────────────────────────────────────────────────────────────
    jwt_secret: str = "dev_secret_key_change_me"
    jwt_algorithm: str = "HS256"

    # ── Feed composition ───────────────────────────────────────────────────
    feed_page_size: int = 20
    feed_max_page_size: int = 100
    suggestion_interval: int = 3         # one suggestion after every N entries
    empty_feed_suggestions: int = 15
    suggestion_source_cap: int = 10      # per source, before shuffling

    # ── Engagement score ───────────────────────────────────────────────────
    score_gravity: float = 1.5
    score_age_offset_hours: float = 2.0
    score_comment_weight: float = 2.0
    score_min_age_hours: float = 0.5

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    otel_sample_ratio: float = 1.0
    service_name: str = "watchhive-api"
    service_version: str = "1.0.0"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
