from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    extracted_text: Optional[str] = None
    summary_short: Optional[str] = None
    summary_medium: Optional[str] = None
    summary_long: Optional[str] = None
    key_points: Optional[List[str]] = None
    error_message: Optional[str] = None
    created_at: datetime


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    file_type: str
    file_size: int
    storage_path: str
    status: str
    created_at: datetime


class DocumentWithSummaries(DocumentResponse):
    summaries: List[SummaryResponse] = []


class ProcessedDocumentResponse(BaseModel):
    document: DocumentResponse
    summary: SummaryResponse
    stage: str


class ProcessDocumentRequest(BaseModel):
    document_id: Optional[str] = Field(default=None, alias="documentId")
    file_url: Optional[str] = Field(default=None, alias="fileUrl")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    api_key: Optional[str] = Field(default=None, alias="apiKey")


class GeneratedSummaries(BaseModel):
    short: str
    medium: str
    long: str
    keyPoints: List[str]


class ProcessDocumentResponse(BaseModel):
    success: bool
    summaries: GeneratedSummaries
