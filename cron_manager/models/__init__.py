"""SQLAlchemy models. Import all models here so Alembic can discover them."""

from .store import StoreCounter, StoreItem

__all__ = ["StoreItem", "StoreCounter"]
