"""ErrorLog ORM model — diagnostic records written by the error sink."""

from sqlalchemy import Column, Integer, Text, TIMESTAMP, func

from mimi.database import Base


class ErrorLog(Base):
    __tablename__ = "error_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    stack = Column(Text, nullable=True)
    payload = Column(Text, nullable=True)  # JSON-serialised context
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
