import enum
from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from mailsift.db import Base


class ValidationStatus(str, enum.Enum):
    ok = "ok"
    catch_all = "catch_all"
    unknown = "unknown"
    error = "error"
    disposable = "disposable"
    invalid = "invalid"
    duplicate = "duplicate"


validation_status_enum = Enum(
    ValidationStatus,
    name="validation_status",
    native_enum=False,
    length=20,
    validate_strings=True,
)


class EmailRecord(Base):
    __tablename__ = "email_records"
    __table_args__ = (
        UniqueConstraint("upload_id", "row_number", name="uq_email_records_upload_row"),
    )

    id = Column(Integer, primary_key=True, index=True)
    upload_id = Column(Integer, ForeignKey("csv_uploads.id", ondelete="CASCADE"), index=True, nullable=False)
    row_number = Column(Integer, nullable=False)
    email = Column(String, nullable=False)
    validation_status = Column(validation_status_enum, nullable=True)
    # JSON text of the verifier's raw response
    validation_result = Column(Text, nullable=True)
    # JSON text of the row's other columns, in header order
    additional_data = Column(Text, nullable=True)
    validated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    upload = relationship("Upload", back_populates="records")
