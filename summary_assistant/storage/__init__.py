from .document_store import SQLDocumentStore, create_db_engine
from .models import Document, DocumentStatus, Summary
from .object_storage import LocalObjectStorage, generate_storage_path

__all__ = [
    "SQLDocumentStore", "create_db_engine",
    "Document", "DocumentStatus", "Summary",
    "LocalObjectStorage", "generate_storage_path",
]
