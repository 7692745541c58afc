"""csv uploads and email records

Revision ID: 0001_init
Revises:
Create Date: 2026-10-17 00:00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

UPLOAD_STATUSES = ("uploaded", "processing", "completed", "failed")
VALIDATION_STATUSES = ("ok", "catch_all", "unknown", "error", "disposable", "invalid", "duplicate")


def upgrade():
    # Statuses are plain VARCHAR (native_enum=False on the models)
    op.create_table(
        "csv_uploads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("filename", sa.String(), nullable=False),
        sa.Column("original_filename", sa.String(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("total_rows", sa.Integer(), nullable=False),
        sa.Column("email_column", sa.String(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(*UPLOAD_STATUSES, name="upload_status", native_enum=False, length=20),
            nullable=False,
            server_default="uploaded",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_csv_uploads_id", "csv_uploads", ["id"])

    op.create_table(
        "email_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("upload_id", sa.Integer(),
                  sa.ForeignKey("csv_uploads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("row_number", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column(
            "validation_status",
            sa.Enum(*VALIDATION_STATUSES, name="validation_status", native_enum=False, length=20),
            nullable=True,
        ),
        sa.Column("validation_result", sa.Text(), nullable=True),
        sa.Column("additional_data", sa.Text(), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("upload_id", "row_number", name="uq_email_records_upload_row"),
    )
    op.create_index("ix_email_records_id", "email_records", ["id"])
    op.create_index("ix_email_records_upload_id", "email_records", ["upload_id"])


def downgrade():
    op.drop_index("ix_email_records_upload_id", table_name="email_records")
    op.drop_index("ix_email_records_id", table_name="email_records")
    op.drop_table("email_records")
    op.drop_index("ix_csv_uploads_id", table_name="csv_uploads")
    op.drop_table("csv_uploads")
