import uuid

from sqlalchemy import BigInteger, Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from paperdesk.common.base_models import GUID, EpochCreatedMixin, UUIDBase


class FileMetadata(UUIDBase, EpochCreatedMixin):
    __tablename__ = "file_metadata"

    storage_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    original_name: Mapped[str] = mapped_column(String(500), nullable=False)
    file_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    uploaded_by: Mapped[uuid.UUID] = mapped_column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    is_processed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
