from dataclasses import dataclass
from pydantic_settings import BaseSettings
import os

class Settings(BaseSettings):
    # API Server Configuration
    api_host: str = "0.0.0.0"
    api_port: int = int(os.getenv("PORT", "8000"))
    api_reload: bool = False

    # Collaborator endpoints
    storage_endpoint: str = "./data/uploads"  # Directory uploads are written to
    database_endpoint: str = "sqlite:///./data/summary_assistant.db"  # Any SQLAlchemy URL

    # Generative-text service (Gemini REST API)
    generative_service_endpoint: str = "https://generativelanguage.googleapis.com/v1"
    generative_service_key: str | None = None
    model: str = "gemini-2.5-flash-lite"
    generative_timeout_seconds: float = 120.0
    summary_concurrency: int = 1  # 1 = one request at a time

    # What happens to the document row when a run fails: "leave" or "mark_failed"
    failure_policy: str = "leave"

    # OCR Configuration
    ocr_provider: str = "easyocr"  # Options: "easyocr", "paddleocr"
    ocr_languages: list[str] = ["en"]
    ocr_gpu: bool = False
    ocr_max_image_dimension: int = 2000
    ocr_band_height: int = 600  # Target height (px) of each recognition band
    ocr_min_confidence: float = 0.3  # Detections below this are dropped
    pdf_ocr_fallback: bool = False  # OCR rasterised pages when a PDF has no text layer
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@dataclass(frozen=True)
class PipelineConfig:
    """Everything the pipeline needs, handed over explicitly at construction."""
    storage_endpoint: str
    database_endpoint: str
    generative_service_endpoint: str
    generative_service_key: str | None
    model: str
    generative_timeout_seconds: float | None = 120.0
    summary_concurrency: int = 1
    failure_policy: str = "leave"
    ocr_provider: str = "easyocr"
    ocr_languages: tuple[str, ...] = ("en",)
    ocr_gpu: bool = False
    ocr_max_image_dimension: int = 2000
    ocr_band_height: int = 600
    ocr_min_confidence: float = 0.3
    pdf_ocr_fallback: bool = False

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "PipelineConfig":
        values = dict(
            storage_endpoint=settings.storage_endpoint,
            database_endpoint=settings.database_endpoint,
            generative_service_endpoint=settings.generative_service_endpoint,
            generative_service_key=settings.generative_service_key,
            model=settings.model,
            generative_timeout_seconds=settings.generative_timeout_seconds,
            summary_concurrency=settings.summary_concurrency,
            failure_policy=settings.failure_policy,
            ocr_provider=settings.ocr_provider,
            ocr_languages=tuple(settings.ocr_languages),
            ocr_gpu=settings.ocr_gpu,
            ocr_max_image_dimension=settings.ocr_max_image_dimension,
            ocr_band_height=settings.ocr_band_height,
            ocr_min_confidence=settings.ocr_min_confidence,
            pdf_ocr_fallback=settings.pdf_ocr_fallback,
        )
        values.update(overrides)
        return cls(**values)


settings = Settings()
