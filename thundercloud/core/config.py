"""
Configuration management for Thunder Cloud Service
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Service configuration
    app_name: str = "Thunder Cloud Service"
    debug: bool = False
    environment: str = "development"
    sentry_dsn: Optional[str] = None

    # Open-Meteo forecast API configuration
    open_meteo_base_url: str = "https://api.open-meteo.com/v1/forecast"
    open_meteo_timeout: float = 60.0
    open_meteo_user_agent: str = "ThunderCloudApp/1.0"

    # Open-Meteo rate limiting (free tier)
    open_meteo_requests_per_second: int = 10
    open_meteo_requests_per_day: int = 10000
    open_meteo_rate_limit_buffer: float = 0.8  # Use 80% of limits for safety

    # Batch processing
    batch_size: int = 100  # Coordinates per provider call
    batch_delay_seconds: float = 2.0  # Pause between chunks
    fallback_delay_seconds: float = 0.1  # Pause between single-point calls

    # Weather cache
    cache_backend: str = "memory"  # Options: "memory", "file"
    cache_dir: str = "/tmp/thundercloud/weather_cache"
    cache_ttl_seconds: int = 300  # 5 minutes
    cache_retention_hours: float = 2.0
    cache_cleanup_batch_size: int = 100

    # Observer registry
    observer_store_backend: str = "memory"  # Options: "memory", "file"
    observer_store_path: str = "/tmp/thundercloud/observers.json"
    observer_active_hours: float = 24.0  # Observers older than this are skipped

    # Quiet hours (night mode)
    quiet_hours_enabled: bool = True
    quiet_hours_start: int = 20
    quiet_hours_end: int = 8
    quiet_hours_timezone: str = "Asia/Tokyo"

    # Firebase Cloud Messaging (HTTP v1)
    fcm_base_url: str = "https://fcm.googleapis.com/v1"
    fcm_project_id: Optional[str] = None
    fcm_access_token: Optional[str] = None
    fcm_timeout: float = 10.0

    # Scheduler
    scheduler_enabled: bool = True
    refresh_interval_minutes: int = 5
    detect_interval_minutes: int = 5
    cleanup_hour: int = 3
    cleanup_minute: int = 0
    misfire_grace_time_seconds: int = 60

    # Job wall-clock budgets (seconds)
    refresh_job_budget_seconds: float = 540.0
    detect_job_budget_seconds: float = 300.0

    @property
    def fcm_configured(self) -> bool:
        """Whether push delivery credentials are present."""
        return bool(self.fcm_project_id and self.fcm_access_token)

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
