from __future__ import annotations

from uuid import uuid4

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PRESSGATE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "pressgate"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 8080

    # Instance ID for log correlation across replicas
    instance_id: str = Field(default_factory=lambda: str(uuid4())[:8])

    # Upstream CMS
    wordpress_rest_url: str = Field(
        default="https://api.example.com",
        validation_alias="WORDPRESS_REST_URL",
    )
    wordpress_graphql_url: str = Field(
        default="https://api.example.com/graphql",
        validation_alias="WORDPRESS_GRAPHQL_URL",
    )
    recommendations_url: str | None = Field(default=None, validation_alias="RECOMMENDATIONS_URL")
    user_agent: str = "pressgate/0.1.0"

    # Outbound fetch policy
    fetch_timeout: float = Field(default=10.0, validation_alias="FETCH_TIMEOUT")
    fetch_max_retries: int = Field(default=2, validation_alias="FETCH_MAX_RETRIES")
    fetch_backoff_base: float = Field(default=2.0, validation_alias="FETCH_BACKOFF_BASE")
    recommendations_timeout: float = Field(
        default=10.0, validation_alias="RECOMMENDATIONS_TIMEOUT"
    )

    # Enrichment path
    seo_timeout: float = Field(default=8.0, validation_alias="SEO_TIMEOUT")
    merge_deadline: float = Field(default=8.0, validation_alias="MERGE_DEADLINE")

    # In-process cache
    cache_sweep_interval: float = Field(default=300.0, validation_alias="CACHE_SWEEP_INTERVAL")
    cache_monitoring: bool = Field(default=True, validation_alias="CACHE_MONITORING")
    cache_monitor_queue_size: int = Field(default=1000, validation_alias="CACHE_MONITOR_QUEUE")

    # Shared secrets for management surfaces
    revalidation_secret: str | None = Field(default=None, validation_alias="REVALIDATION_SECRET")
    webhook_secret: str | None = Field(default=None, validation_alias="WORDPRESS_WEBHOOK_SECRET")
    admin_token: str | None = Field(default=None, validation_alias="PRESSGATE_ADMIN_TOKEN")

    # Observability
    enable_tracing: bool = Field(default=False, validation_alias="ENABLE_TRACING")
    otlp_endpoint: str | None = Field(default=None, validation_alias="OTLP_ENDPOINT")
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"


settings = Settings()
