from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    api_base_url: str = "http://localhost:3001"
    request_timeout: float = 30.0
    page_size: int = 10
    session_file: str = ".reimburse_session.json"
    login_path: str = "/login"
    log_level: str = "INFO"
    backend_cors_origins: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        extra = "allow"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.backend_cors_origins.split(",") if origin.strip()]

    @property
    def api_root(self) -> str:
        return self.api_base_url.rstrip("/")
