"""EULA version and consent ORM models."""

from sqlalchemy import Column, Integer, Text, TIMESTAMP, ForeignKey, Index, func

from mimi.database import Base


class EulaVersion(Base):
    """
    A published version of the user agreement.
    Created by an administrator; the latest one is the row with the greatest
    (COALESCE(effective_from, created_at), id).
    """

    __tablename__ = "eula_versions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    version = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    effective_from = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )


class EulaConsent(Base):
    """Audit record of a user agreeing to one EULA version. Never updated."""

    __tablename__ = "eula_consents"
    __table_args__ = (
        Index("ix_eula_consents_user_version", "user_id", "eula_version_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    eula_version_id = Column(
        Integer, ForeignKey("eula_versions.id"), nullable=False
    )

    accepted_at = Column(TIMESTAMP(timezone=True), nullable=False)
    channel = Column(Text, nullable=False, server_default="liff")
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)
