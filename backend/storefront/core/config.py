from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10

    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    admin_roles: str = "admin"

    redis_url: str = "redis://redis:6379/0"
    cache_enabled: bool = True
    cache_ttl_seconds: int = 300

    # Umbrales de stock bajo: los productos simples y las variantes se vigilan distinto.
    low_stock_threshold_simple: int = 10
    low_stock_threshold_variant: int = 5

    log_level: str = "INFO"
    cors_origins: str = ""

    @property
    def admin_role_set(self) -> set[str]:
        return {r.strip().lower() for r in self.admin_roles.split(",") if r.strip()}

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
