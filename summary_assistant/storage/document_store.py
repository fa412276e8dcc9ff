import logging
from pathlib import Path

from sqlalchemy import create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload, sessionmaker
from sqlalchemy.pool import StaticPool

from summary_assistant.services.errors import PersistenceError
from summary_assistant.storage.models import Document, DocumentStatus, Summary, init_db

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str):
    """Build an engine for ``database_url``; SQLite files get their directory created."""
    url = make_url(database_url)
    kwargs = {"future": True}
    if url.drivername.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool  # One shared connection keeps the in-memory DB alive
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(database_url, **kwargs)


class SQLDocumentStore:
    """Documents and their summaries in a relational database."""

    def __init__(self, database_url: str):
        self.engine = create_db_engine(database_url)
        self._session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False, future=True
        )
        init_db(self.engine)
        logger.info(f"Document store ready ({self.engine.url.drivername})")

    def insert_document(self, filename: str, file_type: str, file_size: int,
                        storage_path: str, status: str = DocumentStatus.PROCESSING.value) -> Document:
        document = Document(
            filename=filename,
            file_type=file_type,
            file_size=file_size,
            storage_path=storage_path,
            status=status,
        )
        try:
            with self._session_factory() as session:
                session.add(document)
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create document record: {e}") from e
        logger.info(f"Created document {document.id} ({filename}, status={status})")
        return document

    def update_document_status(self, document_id: str, status: str) -> None:
        try:
            with self._session_factory() as session:
                document = session.get(Document, document_id)
                if document is None:
                    raise PersistenceError(f"Document not found: {document_id}")
                document.status = status
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update document status: {e}") from e
        logger.info(f"Document {document_id} status -> {status}")

    def insert_summary(self, document_id: str, extracted_text: str | None = None,
                       summary_short: str | None = None, summary_medium: str | None = None,
                       summary_long: str | None = None, key_points: list[str] | None = None,
                       error_message: str | None = None) -> Summary:
        summary = Summary(
            document_id=document_id,
            extracted_text=extracted_text,
            summary_short=summary_short,
            summary_medium=summary_medium,
            summary_long=summary_long,
            key_points=list(key_points) if key_points is not None else None,
            error_message=error_message,
        )
        try:
            with self._session_factory() as session:
                session.add(summary)
                session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save summary: {e}") from e
        return summary

    def get_document(self, document_id: str) -> Document | None:
        try:
            with self._session_factory() as session:
                return session.get(Document, document_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load document: {e}") from e

    def get_summary_by_document_id(self, document_id: str) -> Summary | None:
        stmt = (
            select(Summary)
            .where(Summary.document_id == document_id)
            .order_by(Summary.created_at.desc())
            .limit(1)
        )
        try:
            with self._session_factory() as session:
                return session.scalars(stmt).first()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load summary: {e}") from e

    def list_completed_documents_with_summaries(self, limit: int = 10) -> list[Document]:
        stmt = (
            select(Document)
            .options(selectinload(Document.summaries))
            .where(Document.status == DocumentStatus.COMPLETED.value)
            .order_by(Document.created_at.desc())
            .limit(limit)
        )
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list documents: {e}") from e
