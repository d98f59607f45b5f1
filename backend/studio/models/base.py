"""
Declarative base for all ORM models.
"""
from sqlalchemy.orm import DeclarativeBase
import secrets


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def generate_token(nbytes: int = 32) -> str:
    """Generate a random hex token (email verification, etc.)."""
    return secrets.token_hex(nbytes)
