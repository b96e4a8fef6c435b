"""
SQLAlchemy ORM models for database tables.

This module contains database table definitions using SQLAlchemy.
For Pydantic input/record schemas, see schemas.py.
"""

from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

# Base class for SQLAlchemy models
Base = declarative_base()


class Wall(Base):
    """
    SQLAlchemy model for a wall.

    Table: walls
    Primary Key: id (serial, never reused)
    """
    __tablename__ = "walls"
    # SQLite would otherwise hand out the id of a deleted last row again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_by = Column(String(255), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    likes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False)  # Server time, UTC
