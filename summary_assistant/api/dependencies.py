from functools import lru_cache, partial
from typing import Callable

from summary_assistant.config import PipelineConfig, settings
from summary_assistant.services.processors import SummaryGenerator, TextExtractor
from summary_assistant.services.workflow import DocumentPipeline
from summary_assistant.storage import SQLDocumentStore
from summary_assistant.utils.llm_config import get_generative_client


@lru_cache
def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_settings(settings)


@lru_cache
def get_document_store() -> SQLDocumentStore:
    return SQLDocumentStore(get_pipeline_config().database_endpoint)


@lru_cache
def get_text_extractor() -> TextExtractor:
    # Shared so OCR models are loaded once per process
    return TextExtractor.from_config(get_pipeline_config())


@lru_cache
def get_summary_generator() -> SummaryGenerator:
    # Shared so every request reuses one HTTP session
    config = get_pipeline_config()
    return SummaryGenerator(get_generative_client(config), concurrency=config.summary_concurrency)


def get_pipeline_factory() -> Callable[..., DocumentPipeline]:
    """Builds pipelines over the shared collaborators; extra kwargs (listeners) pass through."""
    return partial(
        DocumentPipeline.from_config,
        get_pipeline_config(),
        store=get_document_store(),
        extractor=get_text_extractor(),
        generator=get_summary_generator(),
    )


def get_pipeline() -> DocumentPipeline:
    """A fresh pipeline per request, since each run has its own stage machine."""
    return get_pipeline_factory()()
