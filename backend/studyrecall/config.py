from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".studyrecall" / "data"
    sqlite_filename: str = "studyrecall.db"
    default_due_limit: int = 20
    max_due_limit: int = 200
    cors_origins: list[str] = ["*"]
    host: str = "127.0.0.1"
    port: int = 0  # 0 = pick a free port
    log_level: str = "warning"

    model_config = {"env_prefix": "STUDYRECALL_"}


settings = Settings()
