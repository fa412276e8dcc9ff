"""
Pipeline orchestration tests
"""
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from summary_assistant.services.errors import (
    EmptyExtractionError,
    PersistenceError,
    PipelineError,
    SummaryServiceError,
    UnsupportedTypeError,
    UploadError,
)
from summary_assistant.services.processors import SummaryGenerator
from summary_assistant.services.states import Stage
from summary_assistant.services.workflow import DocumentPipeline, record_failure
from summary_assistant.storage import DocumentStatus, generate_storage_path
from summary_assistant.utils.llm_config import GenerativeTextClient
from tests.conftest import FakeSession, all_documents, all_summaries, fail_on_call, make_image, make_pdf


def generator_for(session):
    return SummaryGenerator(GenerativeTextClient("https://generative.test/v1", "test-key", "test-model", session=session))


class TestHappyPath:

    def test_image_document_completes(self, make_pipeline, store, storage, config):
        stages, progress = [], []
        pipeline = make_pipeline(on_stage=stages.append, on_progress=progress.append)

        result = pipeline.process("scan.png", "image/png", make_image(height=450))

        assert pipeline.stage == Stage.COMPLETE
        assert result.stage == Stage.COMPLETE
        assert stages == [Stage.UPLOADING, Stage.EXTRACTING, Stage.SUMMARIZING, Stage.COMPLETE]

        assert result.document.status == DocumentStatus.COMPLETED.value
        assert result.document.filename == "scan.png"
        assert result.document.file_type == "image/png"
        assert result.document.storage_path.endswith(".png")
        assert (Path(config.storage_endpoint) / result.document.storage_path).exists()

        summary = result.summary
        assert summary.document_id == result.document.id
        assert summary.summary_short and summary.summary_medium and summary.summary_long
        assert summary.key_points == ["Point A", "Point B", "Point C"]
        assert "Hello world" in summary.extracted_text
        assert summary.error_message is None

        assert all(isinstance(value, int) and 0 <= value <= 100 for value in progress)
        assert 100 in progress

    def test_pdf_document_text(self, make_pipeline):
        result = make_pipeline().process("report.pdf", "application/pdf", make_pdf("Hello", "World"))
        assert result.summary.extracted_text == "Hello\nWorld"

    def test_rerun_creates_new_document(self, make_pipeline, store, monkeypatch):
        timestamps = iter([1000.0, 1001.0])
        monkeypatch.setattr(
            "summary_assistant.services.nodes.upload_node.generate_storage_path",
            lambda filename: generate_storage_path(filename, now=next(timestamps)),
        )
        pipeline = make_pipeline()
        data = make_pdf("Hello")

        first = pipeline.process("a.pdf", "application/pdf", data)
        second = pipeline.process("a.pdf", "application/pdf", data)

        assert first.document.id != second.document.id
        assert first.document.storage_path == "1000000.pdf"
        assert second.document.storage_path == "1001000.pdf"
        assert len(all_documents(store)) == 2


class TestFailures:

    def test_unsupported_type(self, make_pipeline, store, session):
        stages = []
        pipeline = make_pipeline(on_stage=stages.append)

        with pytest.raises(UnsupportedTypeError) as excinfo:
            pipeline.process("notes.txt", "text/plain", b"plain text")

        assert excinfo.value.message == "Unsupported file type: text/plain"
        assert stages == [Stage.UPLOADING, Stage.EXTRACTING, Stage.FAILED]
        assert pipeline.stage == Stage.FAILED
        assert pipeline.progress == 0
        [document] = all_documents(store)
        assert document.status == DocumentStatus.PROCESSING.value
        assert all_summaries(store) == []
        assert session.calls == []

    def test_empty_extraction_skips_summaries(self, make_pipeline, store, session, ocr_reader):
        ocr_reader.readtext.return_value = [(None, "   ", 0.99)]

        with pytest.raises(EmptyExtractionError):
            make_pipeline().process("blank.png", "image/png", make_image())

        assert session.calls == []
        assert all_summaries(store) == []

    def test_blank_pdf_is_empty(self, make_pipeline, session):
        with pytest.raises(EmptyExtractionError):
            make_pipeline().process("scan.pdf", "application/pdf", make_pdf(""))
        assert session.calls == []

    def test_summary_service_rate_limited(self, make_pipeline, store):
        session = FakeSession(fail_on_call(2, status_code=429))
        pipeline = make_pipeline(generator=generator_for(session))

        with pytest.raises(SummaryServiceError) as excinfo:
            pipeline.process("report.pdf", "application/pdf", make_pdf("Hello"))

        assert excinfo.value.status_code == 429
        assert len(session.calls) == 2
        assert pipeline.stage == Stage.FAILED
        assert all_summaries(store) == []
        [document] = all_documents(store)
        assert document.status == DocumentStatus.PROCESSING.value

    def test_upload_failure_creates_no_document(self, make_pipeline, store):
        storage = MagicMock()
        storage.put.side_effect = UploadError("Failed to upload file: disk full")
        pipeline = make_pipeline(storage=storage)

        with pytest.raises(UploadError):
            pipeline.process("report.pdf", "application/pdf", make_pdf("Hello"))

        assert all_documents(store) == []
        assert pipeline.stage == Stage.FAILED

    def test_mark_failed_policy_records_error(self, make_pipeline, store):
        session = FakeSession(fail_on_call(1, status_code=500))
        pipeline = make_pipeline(generator=generator_for(session), failure_policy="mark_failed")

        with pytest.raises(SummaryServiceError):
            pipeline.process("report.pdf", "application/pdf", make_pdf("Hello"))

        [document] = all_documents(store)
        assert document.status == DocumentStatus.FAILED.value
        [summary] = all_summaries(store)
        assert summary.error_message == "Generative service failed with status 500"
        assert summary.summary_short is None

    def test_mark_failed_after_summary_written_keeps_one_row(self, make_pipeline, store, monkeypatch):
        update_status = store.update_document_status

        def fail_on_complete(document_id, status):
            if status == DocumentStatus.COMPLETED.value:
                raise PersistenceError("database went away")
            return update_status(document_id, status)
        monkeypatch.setattr(store, "update_document_status", fail_on_complete)
        pipeline = make_pipeline(failure_policy="mark_failed")

        with pytest.raises(PersistenceError):
            pipeline.process("report.pdf", "application/pdf", make_pdf("Hello"))

        [document] = all_documents(store)
        assert document.status == DocumentStatus.FAILED.value
        [summary] = all_summaries(store)
        assert summary.summary_short == "Short summary."
        assert summary.error_message is None

    def test_unexpected_errors_wrapped(self, make_pipeline):
        extractor = MagicMock()
        extractor.extract.side_effect = MemoryError("out of memory")
        pipeline = make_pipeline(extractor=extractor)

        with pytest.raises(PipelineError) as excinfo:
            pipeline.process("big.png", "image/png", make_image())
        assert "out of memory" in excinfo.value.message
        assert pipeline.stage == Stage.FAILED

    def test_pipeline_usable_after_failure(self, make_pipeline):
        pipeline = make_pipeline()
        with pytest.raises(UnsupportedTypeError):
            pipeline.process("notes.txt", "text/plain", b"x")

        result = pipeline.process("report.pdf", "application/pdf", make_pdf("Hello"))
        assert result.stage == Stage.COMPLETE

    def test_unknown_failure_policy_rejected(self, make_pipeline):
        with pytest.raises(ValueError):
            make_pipeline(failure_policy="rollback")


class TestRecordFailure:

    def test_unknown_document_is_logged_not_raised(self, store):
        record_failure(store, "missing-id", "boom")
        assert all_summaries(store) == []

    def test_existing_summary_not_duplicated(self, store):
        document = store.insert_document("a.pdf", "application/pdf", 1, "a.pdf")
        store.insert_summary(document_id=document.id, extracted_text="Hello", summary_short="Short.")

        record_failure(store, document.id, "boom")

        assert store.get_document(document.id).status == DocumentStatus.FAILED.value
        [summary] = all_summaries(store)
        assert summary.summary_short == "Short."

    def test_store_errors_swallowed_after_logging(self):
        store = MagicMock()
        store.update_document_status.side_effect = PersistenceError("database down")
        record_failure(store, "doc-1", "boom")
        store.insert_summary.assert_not_called()


class TestFromConfig:

    def test_wires_default_collaborators(self, config):
        pipeline = DocumentPipeline.from_config(config)
        assert pipeline.generator.client.model == "test-model"
        assert pipeline.generator.client.api_key == "test-key"
        assert pipeline.failure_policy == "leave"
        assert pipeline.stage == Stage.IDLE

    def test_shared_generator_is_used(self, config, generator):
        first = DocumentPipeline.from_config(config, generator=generator)
        second = DocumentPipeline.from_config(config, generator=generator)
        assert first.generator is second.generator is generator


class TestStoragePath:

    def test_timestamp_and_extension(self):
        assert generate_storage_path("My Report.final.PDF", now=1718000000.5) == "1718000000500.PDF"

    def test_no_extension(self):
        assert generate_storage_path("README", now=1.0) == "1000"
