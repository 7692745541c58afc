import enum
from sqlalchemy import Column, Integer, String, DateTime, Enum, func
from sqlalchemy.orm import relationship
from mailsift.db import Base


class UploadStatus(str, enum.Enum):
    uploaded = "uploaded"
    processing = "processing"
    completed = "completed"
    failed = "failed"


# Stored as VARCHAR so SQLite and PostgreSQL agree (see migration 0001)
upload_status_enum = Enum(
    UploadStatus,
    name="upload_status",
    native_enum=False,
    length=20,
    validate_strings=True,
)


class Upload(Base):
    __tablename__ = "csv_uploads"

    id = Column(Integer, primary_key=True, index=True)
    filename = Column(String, nullable=False)
    original_filename = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    total_rows = Column(Integer, nullable=False)
    email_column = Column(String, nullable=True)

    status = Column(upload_status_enum, nullable=False, default=UploadStatus.uploaded)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    records = relationship(
        "EmailRecord",
        back_populates="upload",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="EmailRecord.row_number",
    )
