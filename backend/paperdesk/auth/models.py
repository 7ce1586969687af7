import enum
from typing import Optional

from sqlalchemy import Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from paperdesk.common.base_models import TimestampMixin, UUIDBase


class UserRole(str, enum.Enum):
    customer = "customer"
    shop_owner = "shop_owner"
    authorized_signatory = "authorized_signatory"


# Roles allowed to accept, reject and apply endorsements.
AUTHORITY_ROLES = (UserRole.authorized_signatory, UserRole.shop_owner)


class User(UUIDBase, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    mobile: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False, default=UserRole.customer, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def is_authority(self) -> bool:
        return self.role in AUTHORITY_ROLES
