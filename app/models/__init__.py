"""Database models."""

from app.models.appointments import appointments
from app.models.base import metadata
from app.models.doctors import doctors
from app.models.patients import patients
from app.models.queue import queue_entries, queue_sequence

__all__ = [
    "appointments",
    "doctors",
    "metadata",
    "patients",
    "queue_entries",
    "queue_sequence",
]
