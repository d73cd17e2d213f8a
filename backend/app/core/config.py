from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    project_name: str = "DataLens Analytics"
    env: str = "dev"

    cors_origins: str = "http://localhost:5173"  # comma-separated
    log_level: str = "INFO"

    # Analytics defaults
    histogram_bins: int = 12
    category_top_n: int = 15
    max_aggregated_points: int = 1000
    numeric_sample_rows: int = 20
    categorical_sample_rows: int = 50
    correlation_sample_rows: int = 50

    # Aggregation worker
    worker_start_method: str = "spawn"
    worker_timeout_s: float = 30.0

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    def cors_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

settings = Settings()
