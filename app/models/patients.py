"""Patient model definition using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, Integer, String, Table, Text, func

from app.models.base import metadata

# Read-only reference data for scheduling; maintained by patient administration
patients = Table(
    "patients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("phone", String(20), nullable=False),
    Column("date_of_birth", String(10)),
    Column("address", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)
