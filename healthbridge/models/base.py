"""Declarative base shared by all feature models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
