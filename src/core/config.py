from datetime import timedelta

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # 앱 설정
    APP_NAME: str = "imgshift"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # 서버 설정
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # DB 설정 (메타데이터 레지스트리)
    DATABASE_URL: str = "sqlite:///./imgshift.db"

    # 아티팩트 저장 경로 (업로드 원본 + 처리 결과가 같은 디렉토리에 평평하게 저장됨)
    STORAGE_DIR: str = "/app/storage"

    # Janitor 설정
    RETENTION_MINUTES: int = 60
    SWEEP_INTERVAL_MINUTES: int = 15
    JANITOR_ENABLED: bool = True

    # 변환 설정
    TRANSFORM_WORKERS: int = 4
    TRANSFORM_TIMEOUT_SECONDS: float = 30.0
    DEFAULT_QUALITY: int = 90
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024
    MAX_OUTPUT_PIXELS: int = 50_000_000

    @property
    def retention(self) -> timedelta:
        return timedelta(minutes=self.RETENTION_MINUTES)

    @property
    def sweep_interval(self) -> float:
        return self.SWEEP_INTERVAL_MINUTES * 60.0

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
