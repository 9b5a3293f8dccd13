"""User ORM model — maps a LINE identity to an internal numeric id."""

from sqlalchemy import Column, Integer, Text, TIMESTAMP, func

from mimi.database import Base


class User(Base):
    """
    One row per distinct LINE user id.
    The unique constraint turns a concurrent first-contact race into an
    IntegrityError that the user directory resolves by re-reading.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    line_user_id = Column(Text, nullable=False, unique=True)

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
