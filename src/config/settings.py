"""Global backend settings"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Centralized configuration.
    Reads configs from env variables.
    """

    app_name: str = "Room Presence Backend"
    server_port: int = 8000

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_auth: bool = False
    redis_password: str | None = None

    # Flushed on startup, never share it with anything else.
    room_registry_db: int = 1

    log_level: str = "INFO"
    log_pretty_meta: bool = False
    log_max_meta_length: int = 2000

    model_config = {"env_file": ".env"}

    @property
    def redis_url(self) -> str:
        """Connection URL for clients that don't need a dedicated keyspace."""
        if self.redis_auth and self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}"
        return f"redis://{self.redis_host}:{self.redis_port}"


settings = Settings()
