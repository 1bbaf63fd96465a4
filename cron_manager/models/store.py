"""Key-value store SQLAlchemy models."""

from sqlalchemy import BigInteger, Column, DateTime, Index, JSON, String, func

from ..database import Base


class StoreItem(Base):
    """One item of a logical table, addressed by a composite (pk, sk) key."""

    __tablename__ = "store_items"

    table_name = Column(String, primary_key=True)
    pk = Column(String, primary_key=True)
    sk = Column(String, primary_key=True)
    gsi1pk = Column(String, nullable=True)
    gsi1sk = Column(String, nullable=True)
    expire_at = Column(BigInteger, nullable=True, index=True)  # epoch seconds
    attributes = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=func.now())

    __table_args__ = (
        Index("ix_store_items_gsi1", "table_name", "gsi1pk", "gsi1sk"),
    )


class StoreCounter(Base):
    """Numeric attribute of an item, kept in its own row so adds stay server-side."""

    __tablename__ = "store_counters"

    table_name = Column(String, primary_key=True)
    pk = Column(String, primary_key=True)
    sk = Column(String, primary_key=True)
    name = Column(String, primary_key=True)
    value = Column(BigInteger, nullable=False, default=0)
