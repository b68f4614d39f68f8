"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Database (MySQL-protocol compatible) ───────────────────────────────
    db_host: str = "mysql"
    db_port: int = 3306
    db_user: str = "root"
    db_password: str = ""
    db_name: str = "the_connection"

    @property
    def database_url(self) -> str:
        return (
            f"mysql+aiomysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # 'database' for production, 'memory' for tests / local development
    storage_backend: str = "database"

    # ── Sessions ───────────────────────────────────────────────────────────
    session_secret: str = "change-me"
    session_cookie: str = "connection_session"
    session_max_age: int = 14 * 24 * 3600   # two weeks

    # ── Notifications ──────────────────────────────────────────────────────
    notification_backend: str = "log"       # 'log' | 'kafka'
    kafka_bootstrap_servers: str = "kafka:9092"
    kafka_topic_notifications: str = "notifications"

    # ── Recommendations ────────────────────────────────────────────────────
    feed_default_limit: int = 20
    feed_max_limit: int = 100
    interaction_history_limit: int = 100   # recent interactions read per request
    candidate_window_days: int = 30
    candidate_microblog_limit: int = 200
    candidate_community_limit: int = 50

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "connection-api"
    environment: str = "development"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
