"""SQLAlchemy-backed implementation of the key-value :class:`Store`."""

import base64
import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..errors import ConflictError, InfrastructureError, NotFoundError, ValidationError
from ..models.store import StoreCounter, StoreItem
from .storage import GSI1, GSI1PK, GSI1SK, PK, SK, TTL, Item, Key, QueryPage, Store

logger = logging.getLogger("cron_manager.repositories.sql_storage")

_RESERVED = (PK, SK, GSI1PK, GSI1SK, TTL)


def _is_counter(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _split(values: Dict[str, Any]) -> Tuple[Dict[str, int], Dict[str, Any]]:
    counters = {k: v for k, v in values.items() if _is_counter(v)}
    plain = {k: v for k, v in values.items() if not _is_counter(v)}
    return counters, plain


def _encode_cursor(sort_value: str) -> str:
    raw = json.dumps({"k": sort_value}).encode()
    return base64.urlsafe_b64encode(raw).decode()


def _decode_cursor(cursor: str) -> str:
    try:
        return json.loads(base64.urlsafe_b64decode(cursor.encode()))["k"]
    except (ValueError, KeyError, TypeError) as exc:
        raise ValidationError("Invalid cursor") from exc


class SqlStore(Store):
    """Every logical table shares the ``store_items`` / ``store_counters`` tables.

    Integer attributes live in ``store_counters`` so that adds are executed
    as ``value = value + :n`` by the database, never read-modify-write.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Store operation failed: %s", exc)
            raise InfrastructureError("Store operation failed") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ── Helpers ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _visible(now: Optional[int] = None):
        now = int(time.time()) if now is None else now
        return or_(StoreItem.expire_at.is_(None), StoreItem.expire_at > now)

    @staticmethod
    def _build_row(table: str, item: Item) -> Tuple[StoreItem, Dict[str, int]]:
        payload = {k: v for k, v in item.items() if k not in _RESERVED}
        counters, plain = _split(payload)
        row = StoreItem(
            table_name=table,
            pk=item[PK],
            sk=item[SK],
            gsi1pk=item.get(GSI1PK),
            gsi1sk=item.get(GSI1SK),
            expire_at=item.get(TTL),
            attributes=plain,
        )
        return row, counters

    @staticmethod
    def _to_item(row: StoreItem, counters: Dict[str, int]) -> Item:
        item: Item = dict(row.attributes or {})
        item.update(counters)
        item[PK] = row.pk
        item[SK] = row.sk
        if row.gsi1pk is not None:
            item[GSI1PK] = row.gsi1pk
            item[GSI1SK] = row.gsi1sk
        if row.expire_at is not None:
            item[TTL] = row.expire_at
        return item

    @staticmethod
    def _load_counters(db: Session, table: str, keys: Sequence[Key]) -> Dict[Key, Dict[str, int]]:
        if not keys:
            return {}
        stmt = select(StoreCounter).where(
            StoreCounter.table_name == table,
            or_(*[and_(StoreCounter.pk == k.pk, StoreCounter.sk == k.sk) for k in keys]),
        )
        result: Dict[Key, Dict[str, int]] = {}
        for counter in db.execute(stmt).scalars():
            result.setdefault(Key(counter.pk, counter.sk), {})[counter.name] = counter.value
        return result

    def _rows_to_items(self, db: Session, table: str, rows: List[StoreItem]) -> List[Item]:
        counters = self._load_counters(db, table, [Key(r.pk, r.sk) for r in rows])
        return [self._to_item(r, counters.get(Key(r.pk, r.sk), {})) for r in rows]

    @staticmethod
    def _counter_filter(table: str, key: Key, name: str):
        return and_(
            StoreCounter.table_name == table,
            StoreCounter.pk == key.pk,
            StoreCounter.sk == key.sk,
            StoreCounter.name == name,
        )

    def _set_counter(self, db: Session, table: str, key: Key, name: str, value: int) -> None:
        result = db.execute(
            update(StoreCounter).where(self._counter_filter(table, key, name)).values(value=value)
        )
        if result.rowcount == 0:
            db.add(StoreCounter(table_name=table, pk=key.pk, sk=key.sk, name=name, value=value))
            db.flush()

    def _add_counter(self, db: Session, table: str, key: Key, name: str, amount: int) -> None:
        result = db.execute(
            update(StoreCounter)
            .where(self._counter_filter(table, key, name))
            .values(value=StoreCounter.value + amount)
        )
        if result.rowcount == 0:
            db.add(StoreCounter(table_name=table, pk=key.pk, sk=key.sk, name=name, value=amount))
            db.flush()

    @staticmethod
    def _delete(db: Session, table: str, key: Key) -> None:
        db.execute(
            delete(StoreItem).where(
                StoreItem.table_name == table, StoreItem.pk == key.pk, StoreItem.sk == key.sk
            )
        )
        db.execute(
            delete(StoreCounter).where(
                StoreCounter.table_name == table, StoreCounter.pk == key.pk, StoreCounter.sk == key.sk
            )
        )

    # ── Store API ───────────────────────────────────────────────────────────────

    def get_item(self, table: str, key: Key) -> Optional[Item]:
        with self._transaction() as db:
            row = db.execute(
                select(StoreItem).where(
                    StoreItem.table_name == table,
                    StoreItem.pk == key.pk,
                    StoreItem.sk == key.sk,
                    self._visible(),
                )
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._rows_to_items(db, table, [row])[0]

    def put_item(self, table: str, item: Item, if_not_exists: bool = False) -> None:
        row, counters = self._build_row(table, item)
        key = Key(row.pk, row.sk)
        try:
            with self._transaction() as db:
                if not if_not_exists:
                    self._delete(db, table, key)
                db.add(row)
                db.flush()
                for name, value in counters.items():
                    db.add(StoreCounter(table_name=table, pk=key.pk, sk=key.sk, name=name, value=value))
        except IntegrityError as exc:
            raise ConflictError("Item already exists") from exc

    def update_item(
        self,
        table: str,
        key: Key,
        set_values: Optional[Dict[str, Any]] = None,
        add_values: Optional[Dict[str, int]] = None,
        must_exist: bool = False,
    ) -> None:
        add_values = add_values or {}
        for attempt in range(2):
            values = dict(set_values or {})
            try:
                with self._transaction() as db:
                    row = db.get(StoreItem, (table, key.pk, key.sk))
                    if row is None:
                        if must_exist:
                            raise NotFoundError("Item not found")
                        row = StoreItem(table_name=table, pk=key.pk, sk=key.sk, attributes={})
                        db.add(row)
                        db.flush()

                    if GSI1PK in values:
                        row.gsi1pk = values.pop(GSI1PK)
                    if GSI1SK in values:
                        row.gsi1sk = values.pop(GSI1SK)
                    if TTL in values:
                        row.expire_at = values.pop(TTL)

                    counters, plain = _split(values)
                    if plain:
                        row.attributes = {**(row.attributes or {}), **plain}
                    for name, value in counters.items():
                        self._set_counter(db, table, key, name, value)
                    for name, amount in add_values.items():
                        self._add_counter(db, table, key, name, amount)
                return
            except IntegrityError as exc:
                # A concurrent writer inserted the item or counter first; retry as an update.
                if attempt:
                    logger.error("Store update of %s/%s kept conflicting: %s", key.pk, key.sk, exc)
                    raise InfrastructureError("Store operation failed") from exc

    def delete_item(self, table: str, key: Key) -> None:
        with self._transaction() as db:
            self._delete(db, table, key)

    def query(
        self,
        table: str,
        partition: str,
        sort_prefix: Optional[str] = None,
        sort_between: Optional[Tuple[str, str]] = None,
        index: Optional[str] = None,
        limit: Optional[int] = None,
        descending: bool = False,
        cursor: Optional[str] = None,
    ) -> QueryPage:
        if index is None:
            partition_col, sort_col = StoreItem.pk, StoreItem.sk
        elif index == GSI1:
            partition_col, sort_col = StoreItem.gsi1pk, StoreItem.gsi1sk
        else:
            raise ValueError(f"Unknown index: {index}")

        stmt = select(StoreItem).where(
            StoreItem.table_name == table,
            partition_col == partition,
            self._visible(),
        )
        if sort_prefix:
            stmt = stmt.where(sort_col.startswith(sort_prefix, autoescape=True))
        if sort_between:
            stmt = stmt.where(sort_col.between(*sort_between))
        if cursor:
            start_after = _decode_cursor(cursor)
            stmt = stmt.where(sort_col < start_after if descending else sort_col > start_after)
        stmt = stmt.order_by(sort_col.desc() if descending else sort_col.asc())
        if limit is not None:
            stmt = stmt.limit(limit + 1)

        with self._transaction() as db:
            rows = list(db.execute(stmt).scalars())
            next_cursor = None
            if limit is not None and len(rows) > limit:
                rows = rows[:limit]
                last = rows[-1]
                next_cursor = _encode_cursor(last.gsi1sk if index == GSI1 else last.sk)
            return QueryPage(items=self._rows_to_items(db, table, rows), cursor=next_cursor)

    def batch_get(self, table: str, keys: Sequence[Key]) -> List[Item]:
        if not keys:
            return []
        stmt = select(StoreItem).where(
            StoreItem.table_name == table,
            or_(*[and_(StoreItem.pk == k.pk, StoreItem.sk == k.sk) for k in keys]),
            self._visible(),
        )
        with self._transaction() as db:
            rows = list(db.execute(stmt).scalars())
            return self._rows_to_items(db, table, rows)

    def transact_put(self, table: str, items: Sequence[Item]) -> None:
        try:
            with self._transaction() as db:
                for item in items:
                    row, counters = self._build_row(table, item)
                    db.add(row)
                    db.flush()
                    for name, value in counters.items():
                        db.add(StoreCounter(table_name=table, pk=row.pk, sk=row.sk, name=name, value=value))
        except IntegrityError as exc:
            raise ConflictError("Item already exists") from exc
