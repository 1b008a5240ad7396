"""Runtime configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "loadbench"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    log_json: bool = False

    # Target service
    base_url: str = "http://localhost:8080"
    health_path: str = "/actuator/health"
    request_timeout_seconds: float = 30.0
    max_connections: int = 1000

    # Engine
    latency_ceiling_ms: float = 500.0
    max_entity_id: int = 1000
    seed: int | None = None
    tick_seconds: float = 1.0
    max_duration_seconds: float | None = None

    # Fallback phase label when a sample cannot be placed by elapsed time
    phase: str | None = None

    results_dir: str = "./results"

    # Reference target service
    target_host: str = "0.0.0.0"
    target_port: int = 8080
    target_seed_customers: int = 1000

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
