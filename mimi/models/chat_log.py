"""ChatLog ORM model — append-only log of conversation turns."""

from sqlalchemy import Column, Integer, Text, String, TIMESTAMP, ForeignKey, Index, func

from mimi.database import Base


class ChatLog(Base):
    """
    One user-authored or bot-authored turn.
    Turns are ordered by id, not created_at, so clock skew cannot reorder them.
    intent_category is only set on direction='user' rows.
    """

    __tablename__ = "chat_logs"
    __table_args__ = (Index("ix_chat_logs_user_created", "user_id", "created_at"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    session_id = Column(Text, nullable=True)

    direction = Column(String(10), nullable=False)       # 'user' | 'bot'
    message_type = Column(String(20), nullable=False, server_default="text")
    text_content = Column(Text, nullable=False)
    intent_category = Column(String(20), nullable=True)  # diet | emotion | health | general

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
