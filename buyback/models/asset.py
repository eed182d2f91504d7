from __future__ import annotations

from sqlalchemy import Column, Date, String, Text

from ..db.session import Base

STATUS_LOG_ACTIVE = "Active"
STATUS_LOG_DELETED = "Deleted"


class Asset(Base):
    """One hardware unit going through buyback.

    Rows are never physically removed: deleting flips ``status_log`` to
    ``Deleted`` so the audit export still lists them and their ids stay taken.
    """

    __tablename__ = "assets"

    id = Column(String(36), primary_key=True)
    pc_name = Column(Text, nullable=False, index=True)
    employee_number = Column(Text, nullable=False, index=True)
    username = Column(Text, nullable=False, index=True)
    serial_number = Column(Text, nullable=False, index=True)
    mac_address = Column(Text, nullable=False, index=True)
    buyback_status = Column(Text, nullable=False)
    date = Column(Date, nullable=False)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)
    status_log = Column(Text, nullable=False, default=STATUS_LOG_ACTIVE, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.status_log == STATUS_LOG_DELETED
