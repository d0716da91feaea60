"""ORM model for accounts (students and staff users) used for auth and lockout."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from bookloan.models.base import Base, SoftDeleteMixin

KIND_STUDENT = "student"
KIND_STAFF = "staff"

STATUS_INACTIVE = "INACTIVE"
STATUS_ACTIVE = "ACTIVE"

LEVEL_NORMAL = 0
LEVEL_STAFF_ADMIN = 2
LEVEL_SUPERADMIN = 3


class Account(SoftDeleteMixin, Base):
    """
    A student or staff record capable of authenticating.

    Created INACTIVE; becomes ACTIVE through the emailed activation code.
    activation_code is overwritten by password-recovery codes.
    """

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(16), nullable=False, default=KIND_STUDENT)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    registration_number = Column(String(64), nullable=True, unique=True)
    password_hash = Column(String(255), nullable=False)
    access_level = Column(Integer, nullable=False, default=LEVEL_NORMAL)
    status = Column(String(16), nullable=False, default=STATUS_INACTIVE)
    locked = Column(Boolean, nullable=False, default=False)
    failed_attempts = Column(Integer, nullable=False, default=0)
    activation_code = Column(String(16), nullable=True)
    security_question = Column(String(255), nullable=True)
    security_answer_hash = Column(String(255), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE and not self.locked and not self.deleted
