"""SQLAlchemy ORM models for the Operation aggregate."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from opflow_sdk.utils.datetime import utc_now

from .base import Base


class OperationModel(Base):
    """SQLAlchemy ORM model for operations table."""

    __tablename__ = "operations"

    id = Column(String(36), primary_key=True)
    operation_type = Column(String(50), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    error_message = Column(Text, nullable=True)
    is_async = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    # Opaque payload, round-tripped verbatim
    operation_metadata = Column("metadata", JSON, nullable=True)

    channels = relationship(
        "ChannelModel",
        back_populates="operation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [ChannelModel.created_at, ChannelModel.id],
    )

    __table_args__ = (
        Index("ix_operations_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<OperationModel(id={self.id}, type={self.operation_type}, status={self.status})>"


class ChannelModel(Base):
    """SQLAlchemy ORM model for channels table."""

    __tablename__ = "channels"

    id = Column(String(36), primary_key=True)
    operation_id = Column(
        String(36),
        ForeignKey("operations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    channel = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    error_message = Column(Text, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now)

    operation = relationship("OperationModel", back_populates="channels")

    __table_args__ = (
        Index("ix_channels_status_updated_at", "status", "updated_at"),
    )

    def __repr__(self):
        return (
            f"<ChannelModel(id={self.id}, channel={self.channel}, "
            f"status={self.status}, attempts={self.attempts})>"
        )
