"""Doctor model definition using SQLAlchemy Core."""

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Table, func, text

from app.models.base import metadata

doctors = Table(
    "doctors",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("specialization", String(200), index=True),
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)
