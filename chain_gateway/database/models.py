"""
SQLAlchemy models for chain definitions and execution history
"""

from sqlalchemy import (
    Column,
    String,
    Integer,
    Boolean,
    DateTime,
    Text,
    Index,
    JSON,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ChainDefinitionRecord(Base):
    """A saved chain configuration"""

    __tablename__ = "chain_configurations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text)

    # Definition
    steps = Column(JSON, nullable=False)
    output_template = Column(JSON)
    meta_data = Column(JSON)

    # Metadata
    created_at = Column(DateTime, default=func.now())
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_chain_configurations_user", "user_id"),
        Index("idx_chain_configurations_name", "name"),
        Index("idx_chain_configurations_created", "created_at"),
    )

    def __repr__(self):
        return f"<ChainDefinitionRecord(id={self.id}, name={self.name}, user_id={self.user_id})>"


class ExecutionRecord(Base):
    """A finished top-level chain execution"""

    __tablename__ = "execution_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    execution_id = Column(String, nullable=False, unique=True)  # UUID from the executor
    user_id = Column(String(255))

    # Chain IDs may be numeric or names (ad-hoc chains have none)
    chain_id = Column(String(255))
    chain_name = Column(String(255))

    # Trace
    input = Column(JSON, nullable=False)
    steps = Column(JSON, nullable=False)
    output = Column(JSON)

    # Outcome
    success = Column(Boolean, nullable=False)
    status = Column(String, nullable=False)  # 'completed', 'stopped', 'failed'
    error = Column(Text)
    error_code = Column(String)
    jumped_to_chain_id = Column(String(255))

    # Timing
    total_duration_ms = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_execution_history_user", "user_id"),
        Index("idx_execution_history_chain", "chain_id"),
        Index("idx_execution_history_started", "started_at"),
        Index("idx_execution_history_success", "success"),
    )

    def __repr__(self):
        return f"<ExecutionRecord(id={self.id}, chain={self.chain_name}, status={self.status})>"
