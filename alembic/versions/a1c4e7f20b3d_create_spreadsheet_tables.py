"""create uploaded_files, data_rows and file_shares tables

Revision ID: a1c4e7f20b3d
Revises:
Create Date: 2026-03-02 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e7f20b3d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

file_status = sa.Enum("uploading", "processing", "completed", "error", name="filestatus")
access_level = sa.Enum("private", "shared", "public", name="accesslevel")
validation_status = sa.Enum("valid", "warning", "error", name="validationstatus")
share_permission = sa.Enum("read", "write", "admin", name="sharepermission")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "uploaded_files",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("file_id", sa.String(20), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("mime_type", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("status", file_status, nullable=False, server_default="uploading"),
        sa.Column("processing_error", sa.Text(), nullable=True),
        sa.Column("total_rows", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_columns", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sheets", sa.JSON(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_public", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("access_level", access_level, nullable=False, server_default="private"),
        sa.Column("processing_time_ms", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "uploaded_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("last_accessed_at", sa.DateTime(), nullable=True),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_uploaded_files_file_id", "uploaded_files", ["file_id"], unique=True)
    op.create_index("ix_uploaded_files_owner_id", "uploaded_files", ["owner_id"])
    op.create_index(
        "idx_uploaded_files_owner_uploaded_at", "uploaded_files", ["owner_id", "uploaded_at"]
    )
    op.create_index("idx_uploaded_files_status", "uploaded_files", ["status"])
    op.create_index("idx_uploaded_files_is_public", "uploaded_files", ["is_public"])

    op.create_table(
        "data_rows",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("file_id", sa.Integer(), nullable=False),
        sa.Column("sheet_name", sa.String(255), nullable=False),
        sa.Column("row_index", sa.Integer(), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("headers", sa.JSON(), nullable=False),
        sa.Column("data_types", sa.JSON(), nullable=False),
        sa.Column("searchable_text", sa.Text(), nullable=False, server_default=""),
        sa.Column("validation_status", validation_status, nullable=False, server_default="valid"),
        sa.Column("validation_errors", sa.JSON(), nullable=False),
        sa.Column(
            "processed_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["file_id"], ["uploaded_files.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "file_id", "sheet_name", "row_index", name="uq_data_rows_file_sheet_row"
        ),
    )
    op.create_index(
        "idx_data_rows_file_validation", "data_rows", ["file_id", "validation_status"]
    )

    op.create_table(
        "file_shares",
        sa.Column("file_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("permission", share_permission, nullable=False, server_default="read"),
        sa.ForeignKeyConstraint(["file_id"], ["uploaded_files.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("file_id", "user_id"),
    )
    op.create_index("ix_file_shares_user_id", "file_shares", ["user_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_file_shares_user_id", table_name="file_shares")
    op.drop_table("file_shares")

    op.drop_index("idx_data_rows_file_validation", table_name="data_rows")
    op.drop_table("data_rows")

    op.drop_index("idx_uploaded_files_is_public", table_name="uploaded_files")
    op.drop_index("idx_uploaded_files_status", table_name="uploaded_files")
    op.drop_index("idx_uploaded_files_owner_uploaded_at", table_name="uploaded_files")
    op.drop_index("ix_uploaded_files_owner_id", table_name="uploaded_files")
    op.drop_index("ix_uploaded_files_file_id", table_name="uploaded_files")
    op.drop_table("uploaded_files")

    share_permission.drop(op.get_bind(), checkfirst=True)
    validation_status.drop(op.get_bind(), checkfirst=True)
    access_level.drop(op.get_bind(), checkfirst=True)
    file_status.drop(op.get_bind(), checkfirst=True)
