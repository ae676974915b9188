from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "sqlite+aiosqlite:///./kanban.db"
  db_echo: bool = False

  jwt_secret: str = "dev-secret-change-me"
  jwt_algorithm: str = "HS256"
  jwt_expires_minutes: int = 60
  bcrypt_rounds: int = 12

  app_version: str = "0.1.0"
  build_sha: str = "dev"
  api_docs_enabled: bool = True
  log_level: str = "INFO"

  rate_limit_login_ip_per_minute: int = 60
  rate_limit_login_email_per_minute: int = 20
  rate_limit_register_ip_per_minute: int = 30
  redis_url: str | None = None

  cors_origins: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,testserver,api"

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]

  def is_test_db(self) -> bool:
    db_name = self.database_url.rsplit("/", 1)[-1]
    return "test" in db_name


settings = Settings()
