from .settings import Settings, PipelineConfig, settings
from .logger_config import logger

__all__ = ["Settings", "PipelineConfig", "settings", "logger"]
