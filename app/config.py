from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/awty"
    tracker_api_key: str | None = None

    log_format: str = "text"  # "json" | "text"
    log_level: str = "INFO"

    # Test mode: goal completes after this many seconds, ticking every tick_interval
    simulation_duration_seconds: float = 30.0
    tick_interval_seconds: float = 1.0

    # Used when POST /tracker/goal omits goal_steps
    default_goal_steps: int = 1000

    # Where status records go: "file" | "memory" | "database"
    status_sink: str = "file"
    status_file_path: str = "awty_status.json"

    goal_reached_webhook_url: str | None = None
    webhook_timeout_seconds: float = 5.0

    # Upper bound on any single status write or goal-reached callback
    sink_timeout_seconds: float = 10.0

    # False rejects startGoal while a goal is active (409) instead of replacing it
    replace_active_goal: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
