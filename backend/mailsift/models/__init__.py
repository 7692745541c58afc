from .upload import Upload, UploadStatus
from .email_record import EmailRecord, ValidationStatus

__all__ = ["Upload", "UploadStatus", "EmailRecord", "ValidationStatus"]
