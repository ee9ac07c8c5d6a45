from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """
    
    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # Application
    app_name: str = "Tracking Links"
    app_version: str = "1.0.0"
    
    # Public base URL used to build tracking links
    base_url: str = "http://127.0.0.1:8000"
    
    # Database
    database_url: str = "sqlite:///./tracking.db"
    
    # Cache settings (used for geolocation lookups)
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    
    # Geolocation
    geolocation_api_url: str = "https://ipapi.co/{ip}/json/"
    geolocation_timeout: float = 3.0  # Seconds before the lookup degrades
    geolocation_user_agent: str = "TrackingLinkApp/1.0"
    geolocation_cache_ttl: int = 86400  # One day per IP
    geolocation_cache_max_entries: int = 10000
    
    # Links
    alias_max_length: int = 50
    
    # Analytics
    analytics_default_days: int = 30
    recent_activity_limit: int = 20
    
    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
