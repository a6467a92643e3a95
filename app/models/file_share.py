import enum

from sqlalchemy import Enum, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base


class SharePermission(str, enum.Enum):
    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


class FileShare(Base):
    """Junction table granting another user access to an uploaded file."""
    __tablename__ = "file_shares"

    file_id: Mapped[int] = mapped_column(
        ForeignKey("uploaded_files.id", ondelete="CASCADE"),
        primary_key=True
    )
    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    permission: Mapped[SharePermission] = mapped_column(
        Enum(
            SharePermission,
            name="sharepermission",
            values_callable=lambda e: [member.value for member in e],
        ),
        default=SharePermission.READ,
    )

    file = relationship("UploadedFile", back_populates="shares")
