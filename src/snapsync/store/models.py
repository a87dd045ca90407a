"""Database models for the persistent entry store."""

from datetime import datetime

from sqlalchemy import BigInteger, Column, DateTime, Integer, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base


Base = declarative_base()


class EntryModel(Base):
    """Database model for one file entry of one mountpoint."""

    __tablename__ = "file_entries"
    __table_args__ = (
        UniqueConstraint("mountpoint", "path", name="uq_file_entries_mountpoint_path"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mountpoint = Column(String(255), nullable=False, index=True)
    path = Column(Text, nullable=False)

    timestamp_ms = Column(BigInteger, nullable=False)  # mtime, millis since epoch
    mode = Column(BigInteger, nullable=False)  # u32 does not fit a signed INTEGER everywhere
    contents = Column(LargeBinary, nullable=True)  # NULL for directories

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<EntryModel(id={self.id}, mountpoint='{self.mountpoint}', path='{self.path}')>"
