from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

# Reserved attribute names of an item dict; everything else is payload.
PK = "PK"
SK = "SK"
GSI1PK = "GSI1PK"
GSI1SK = "GSI1SK"
TTL = "TTL"

GSI1 = "GSI1"

Item = Dict[str, Any]


class Key(NamedTuple):
    pk: str
    sk: str


@dataclass
class QueryPage:
    items: List[Item] = field(default_factory=list)
    cursor: Optional[str] = None  # opaque, pass back as-is for the next page


class Store(ABC):
    """Durable table with conditional writes, server-side adds and one secondary index.

    Items whose ``TTL`` (epoch seconds) has passed are invisible to reads.
    Failed conditions raise ``ConflictError``; any other backend failure
    raises ``InfrastructureError``.
    """

    @abstractmethod
    def get_item(self, table: str, key: Key) -> Optional[Item]:
        pass

    @abstractmethod
    def put_item(self, table: str, item: Item, if_not_exists: bool = False) -> None:
        pass

    @abstractmethod
    def update_item(
        self,
        table: str,
        key: Key,
        set_values: Optional[Dict[str, Any]] = None,
        add_values: Optional[Dict[str, int]] = None,
        must_exist: bool = False,
    ) -> None:
        """Set attributes and atomically add to numeric ones.

        A missing item is created unless ``must_exist`` is set, in which
        case ``NotFoundError`` is raised.
        """

    @abstractmethod
    def delete_item(self, table: str, key: Key) -> None:
        pass

    @abstractmethod
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
        pass

    @abstractmethod
    def batch_get(self, table: str, keys: Sequence[Key]) -> List[Item]:
        pass

    @abstractmethod
    def transact_put(self, table: str, items: Sequence[Item]) -> None:
        """Insert every item or none of them; each must not already exist."""
