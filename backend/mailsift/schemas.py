# backend/mailsift/schemas.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from .models import UploadStatus, ValidationStatus


class UploadCsvRequest(BaseModel):
    filename: str
    content: str  # base64 encoded CSV
    email_column: Optional[str] = None


class UploadResponse(BaseModel):
    upload_id: int
    filename: str
    total_rows: int
    email_column: Optional[str] = None
    detected_columns: List[str]


class UploadOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    filename: str
    original_filename: str
    file_size: int
    total_rows: int
    email_column: Optional[str] = None
    status: UploadStatus
    created_at: datetime
    completed_at: Optional[datetime] = None


class EmailRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    upload_id: int
    row_number: int
    email: str
    validation_status: Optional[ValidationStatus] = None
    validation_result: Optional[str] = None
    additional_data: Optional[str] = None
    validated_at: Optional[datetime] = None
    created_at: datetime


class ResultsSummary(BaseModel):
    total: int
    validated: int
    ok: int
    invalid: int
    disposable: int
    catch_all: int
    unknown: int
    error: int
    duplicate: int


class ValidationResultsResponse(BaseModel):
    upload: UploadOut
    records: List[EmailRecordOut]
    summary: ResultsSummary


class MessageResponse(BaseModel):
    message: str


class DownloadCsvResponse(BaseModel):
    filename: str
    content: str  # base64 encoded CSV
    mime_type: str
