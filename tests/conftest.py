"""
Test Configuration and Fixtures
"""
import io
import json
import threading
from unittest.mock import MagicMock

import fitz
import pytest
from PIL import Image, ImageDraw
from sqlalchemy import select
from sqlalchemy.orm import Session

from summary_assistant.config import PipelineConfig
from summary_assistant.services.processors import OCRService, SummaryGenerator, TextExtractor
from summary_assistant.services.workflow import DocumentPipeline
from summary_assistant.storage import Document, LocalObjectStorage, SQLDocumentStore, Summary
from summary_assistant.utils.llm_config import GenerativeTextClient

KEY_POINTS_REPLY = "1. Point A\n2. Point B\n\n- Point C"


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload
        self.text = json.dumps(payload)

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


def gemini_reply(text):
    return FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}}]})


def default_responder(prompt, index):
    if "key points" in prompt:
        return gemini_reply(KEY_POINTS_REPLY)
    if "2-3 sentences" in prompt:
        return gemini_reply("Short summary.")
    if "4-6 sentences" in prompt:
        return gemini_reply("Medium summary.")
    return gemini_reply("Long summary.")


class FakeSession:
    """Stands in for requests.Session; ``responder(prompt, index)`` builds each reply."""

    def __init__(self, responder=default_responder):
        self.responder = responder
        self.calls = []
        self.closed = False
        self._lock = threading.Lock()

    def post(self, url, params=None, json=None, timeout=None):
        prompt = json["contents"][0]["parts"][0]["text"]
        with self._lock:
            index = len(self.calls)
            self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        return self.responder(prompt, index)

    def close(self):
        self.closed = True


def fail_on_call(number, status_code=429, body=None):
    """Responder that fails the ``number``-th call (1-based) with ``status_code``."""
    def responder(prompt, index):
        if index == number - 1:
            return FakeResponse(status_code, body or {"error": {"code": status_code, "message": "Resource exhausted"}})
        return default_responder(prompt, index)
    return responder


def make_pdf(*page_texts):
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_image(width=400, height=300, lines=True, fmt="PNG"):
    """White image, optionally with dark bars standing in for lines of text."""
    img = Image.new("RGB", (width, height), "white")
    if lines:
        draw = ImageDraw.Draw(img)
        for top in range(20, height - 20, 50):
            draw.rectangle((20, top, width - 20, top + 12), fill="black")
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def all_documents(store):
    with Session(store.engine) as session:
        return list(session.scalars(select(Document)).all())


def all_summaries(store):
    with Session(store.engine) as session:
        return list(session.scalars(select(Summary)).all())


@pytest.fixture
def config(tmp_path):
    return PipelineConfig(
        storage_endpoint=str(tmp_path / "uploads"),
        database_endpoint=f"sqlite:///{tmp_path / 'test.db'}",
        generative_service_endpoint="https://generative.test/v1",
        generative_service_key="test-key",
        model="test-model",
    )


@pytest.fixture
def store(config):
    return SQLDocumentStore(config.database_endpoint)


@pytest.fixture
def storage(config):
    return LocalObjectStorage(config.storage_endpoint)


@pytest.fixture
def ocr_reader():
    """Mock EasyOCR reader that finds one line of text per band."""
    reader = MagicMock()
    reader.readtext.return_value = [([[0, 0], [10, 0], [10, 10], [0, 10]], "Hello world", 0.95)]
    return reader


@pytest.fixture
def ocr_service(ocr_reader):
    service = OCRService(provider="easyocr", band_height=100)
    service._easyocr = ocr_reader
    return service


@pytest.fixture
def extractor(ocr_service):
    return TextExtractor(ocr_service)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def generator(session):
    client = GenerativeTextClient("https://generative.test/v1", "test-key", "test-model", session=session)
    return SummaryGenerator(client)


@pytest.fixture
def make_pipeline(storage, store, extractor, generator):
    def _make(**kwargs):
        params = dict(storage=storage, store=store, extractor=extractor, generator=generator)
        params.update(kwargs)
        return DocumentPipeline(**params)
    return _make
