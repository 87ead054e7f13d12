"""Search, category filter and column sort for the entity tables.

A ViewSpec describes one table: which text fields the search box looks at,
which category tabs exist and how each column sorts. A ViewConfig is the
operator's current choice for that table and is persisted between sessions.

apply_view never mutates its input and sorts stably, so rows that compare
equal keep the order the API returned them in (in both directions).
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar

from ...constants import UNSCHEDULED_SORT_KEY
from ...cron import compute_sort_key
from ...db import load_pref, save_pref
from ...models import EtlHealth, HermesConfig, NodeConfig, NodeHealth, RelayerHealth
from ...status import (
    ETL_STATUS_PRIORITY,
    NODE_STATUS_PRIORITY,
    RELAYER_STATUS_PRIORITY,
    NodeStatus,
)
from .health import scheduled_operations

logger = logging.getLogger(__name__)

T = TypeVar("T")

SORT_ASC = "asc"
SORT_DESC = "desc"
CATEGORY_ALL = "all"

SERVICE_KIND_HERMES = "hermes"
SERVICE_KIND_ETL = "etl"


@dataclass(frozen=True)
class ViewConfig:
    """Operator-selected search, category and sort for one table."""

    search: str = ""
    category: str = CATEGORY_ALL
    sort_column: str = "name"
    sort_direction: str = SORT_ASC

    def to_dict(self) -> dict[str, str]:
        return {
            "search": self.search,
            "category": self.category,
            "sort_column": self.sort_column,
            "sort_direction": self.sort_direction,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], default: ViewConfig | None = None) -> ViewConfig:
        """Build a config from stored values, keeping defaults for missing or odd fields."""
        base = default or cls()

        def _text(key: str, fallback: str) -> str:
            value = data.get(key)
            return value if isinstance(value, str) else fallback

        direction = _text("sort_direction", base.sort_direction)
        if direction not in (SORT_ASC, SORT_DESC):
            direction = base.sort_direction
        return cls(
            search=_text("search", base.search),
            category=_text("category", base.category),
            sort_column=_text("sort_column", base.sort_column),
            sort_direction=direction,
        )


@dataclass(frozen=True)
class ViewSpec(Generic[T]):
    """Static description of a filterable, sortable table.

    Attributes:
        key: Name used to persist the view's configuration
        search_fields: Returns the strings the search text is matched against
        categories: Category name -> predicate; "all" is implied
        sort_keys: Column name -> sort key function
        default_config: Configuration used when nothing valid is stored
    """

    key: str
    search_fields: Callable[[T], Iterable[str | None]]
    sort_keys: Mapping[str, Callable[[T], Any]]
    categories: Mapping[str, Callable[[T], bool]] = field(default_factory=dict)
    default_config: ViewConfig = field(default_factory=ViewConfig)

    @property
    def columns(self) -> list[str]:
        return list(self.sort_keys)

    @property
    def category_names(self) -> list[str]:
        return [CATEGORY_ALL, *self.categories]

    def sanitize(self, config: ViewConfig) -> ViewConfig:
        """Replace a category or column this view does not have with the default."""
        if config.category not in self.category_names:
            config = replace(config, category=self.default_config.category)
        if config.sort_column not in self.sort_keys:
            config = replace(config, sort_column=self.default_config.sort_column)
        return config


# Table rows


@dataclass(frozen=True)
class NodeRow:
    """Node health joined with its config (None when the node has no config)."""

    health: NodeHealth
    config: NodeConfig | None = None

    @property
    def name(self) -> str:
        return self.health.name

    @property
    def host(self) -> str:
        return self.health.host

    @property
    def state(self) -> NodeStatus:
        return self.health.state


@dataclass(frozen=True)
class ServiceItem:
    """A relayer or ETL service shown in the unified services table."""

    kind: str
    name: str
    host: str
    status: str
    status_priority: int
    description: str | None = None
    record: RelayerHealth | EtlHealth | None = None
    config: HermesConfig | None = None

    @classmethod
    def from_relayer(
        cls, relayer: RelayerHealth, config: HermesConfig | None = None
    ) -> ServiceItem:
        return cls(
            kind=SERVICE_KIND_HERMES,
            name=relayer.name,
            host=relayer.host,
            status=relayer.status,
            status_priority=RELAYER_STATUS_PRIORITY[relayer.state],
            record=relayer,
            config=config,
        )

    @classmethod
    def from_etl(cls, service: EtlHealth) -> ServiceItem:
        return cls(
            kind=SERVICE_KIND_ETL,
            name=service.name,
            host=service.host,
            status=service.status,
            status_priority=ETL_STATUS_PRIORITY[service.state],
            description=service.description,
            record=service,
        )


def build_node_rows(
    nodes: Iterable[NodeHealth], node_configs: Mapping[str, NodeConfig]
) -> list[NodeRow]:
    return [NodeRow(health=n, config=node_configs.get(n.name)) for n in nodes]


def build_service_items(
    relayers: Iterable[RelayerHealth],
    etl_services: Iterable[EtlHealth],
    hermes_configs: Mapping[str, HermesConfig] | None = None,
) -> list[ServiceItem]:
    """Relayers first (joined with their config by name), then ETL services."""
    configs = hermes_configs or {}
    items = [ServiceItem.from_relayer(r, configs.get(r.name)) for r in relayers]
    items.extend(ServiceItem.from_etl(e) for e in etl_services)
    return items


# Sort keys


def _text_key(value: str | None) -> str:
    return (value or "").casefold()


def node_next_sort_key(config: NodeConfig | None) -> int:
    """Smallest schedule sort key over the node's enabled operations."""
    if config is None:
        return UNSCHEDULED_SORT_KEY
    keys = [compute_sort_key(schedule) for _, schedule in scheduled_operations(config)]
    return min(keys, default=UNSCHEDULED_SORT_KEY)


def relayer_next_sort_key(config: HermesConfig | None) -> int:
    if config is None or not config.restart_schedule:
        return UNSCHEDULED_SORT_KEY
    return compute_sort_key(config.restart_schedule)


def service_next_sort_key(item: ServiceItem) -> int:
    """Relayers sort by their restart schedule; ETL services have none."""
    if item.kind != SERVICE_KIND_HERMES:
        return UNSCHEDULED_SORT_KEY
    return relayer_next_sort_key(item.config)


# Views


NODES_VIEW: ViewSpec[NodeRow] = ViewSpec(
    key="nodes",
    search_fields=lambda r: (r.name, r.host, r.health.network),
    categories={
        status.value: (lambda r, s=status: r.state is s)
        for status in (
            NodeStatus.SYNCED,
            NodeStatus.CATCHING_UP,
            NodeStatus.UNHEALTHY,
            NodeStatus.MAINTENANCE,
        )
    },
    sort_keys={
        "name": lambda r: _text_key(r.name),
        "status": lambda r: NODE_STATUS_PRIORITY[r.state],
        "server": lambda r: _text_key(r.host),
        "next": lambda r: node_next_sort_key(r.config),
    },
)

SERVICES_VIEW: ViewSpec[ServiceItem] = ViewSpec(
    key="services",
    search_fields=lambda s: (s.name, s.host, s.description),
    categories={
        SERVICE_KIND_HERMES: lambda s: s.kind == SERVICE_KIND_HERMES,
        SERVICE_KIND_ETL: lambda s: s.kind == SERVICE_KIND_ETL,
    },
    sort_keys={
        "name": lambda s: _text_key(s.name),
        "status": lambda s: s.status_priority,
        "server": lambda s: _text_key(s.host),
        "next": service_next_sort_key,
    },
)


# Engine


def matches_search(record: T, search: str, view: ViewSpec[T]) -> bool:
    """Case-insensitive substring match against the view's search fields."""
    if not search:
        return True
    needle = search.casefold()
    return any(needle in value.casefold() for value in view.search_fields(record) if value)


def matches_category(record: T, category: str, view: ViewSpec[T]) -> bool:
    if category == CATEGORY_ALL:
        return True
    predicate = view.categories.get(category)
    if predicate is None:
        return True
    return predicate(record)


def apply_view(records: Sequence[T], config: ViewConfig, view: ViewSpec[T]) -> list[T]:
    """Return the filtered and sorted rows as a new list.

    Args:
        records: Rows in API order (not modified)
        config: Search text, category and sort selection
        view: Table description

    Returns:
        Matching rows; an unknown sort column leaves them in API order
    """
    result = [
        r
        for r in records
        if matches_search(r, config.search, view) and matches_category(r, config.category, view)
    ]
    sort_key = view.sort_keys.get(config.sort_column)
    if sort_key is not None:
        result.sort(key=sort_key, reverse=config.sort_direction == SORT_DESC)
    return result


def toggle_sort(config: ViewConfig, column: str) -> ViewConfig:
    """Clicking the active column flips direction; a new column starts ascending."""
    if config.sort_column == column:
        direction = SORT_DESC if config.sort_direction == SORT_ASC else SORT_ASC
        return replace(config, sort_direction=direction)
    return replace(config, sort_column=column, sort_direction=SORT_ASC)


def cycle_sort_column(config: ViewConfig, view: ViewSpec[Any]) -> ViewConfig:
    """Move to the next column (ascending), wrapping at the end."""
    columns = view.columns
    try:
        idx = columns.index(config.sort_column)
    except ValueError:
        idx = -1
    return toggle_sort(config, columns[(idx + 1) % len(columns)])


def cycle_category(config: ViewConfig, view: ViewSpec[Any]) -> ViewConfig:
    names = view.category_names
    try:
        idx = names.index(config.category)
    except ValueError:
        idx = -1
    return replace(config, category=names[(idx + 1) % len(names)])


def category_counts(records: Iterable[T], view: ViewSpec[T]) -> dict[str, int]:
    """Count rows per category tab, including 'all'."""
    records = list(records)
    counts = {CATEGORY_ALL: len(records)}
    for name, predicate in view.categories.items():
        counts[name] = sum(1 for r in records if predicate(r))
    return counts


# Persistence


def _pref_key(view: ViewSpec[Any]) -> str:
    return f"view:{view.key}"


def load_view_config(conn: sqlite3.Connection | None, view: ViewSpec[Any]) -> ViewConfig:
    """Return the stored config for view, or its default when none is usable."""
    if conn is None:
        return view.default_config
    try:
        data = load_pref(conn, _pref_key(view))
    except sqlite3.Error as e:
        logger.warning("Could not read %s view preferences: %s", view.key, e)
        return view.default_config
    if data is None:
        return view.default_config
    return view.sanitize(ViewConfig.from_dict(data, view.default_config))


def save_view_config(
    conn: sqlite3.Connection | None, view: ViewSpec[Any], config: ViewConfig
) -> None:
    if conn is None:
        return
    try:
        save_pref(conn, _pref_key(view), config.to_dict())
    except sqlite3.Error as e:
        logger.warning("Could not save %s view preferences: %s", view.key, e)
