"""Search, sort, type browsing and detail navigation over the live catalog.

Everything here is UI-free: resolvers take a :class:`pokeapi_live.PokeAPIClient`
and a :class:`pokeapi_live.NameIndexCache` and hand back outcome objects that
the Streamlit views render.  Catalog failures never escape a resolver; they
come back as ``error`` / ``error_kind`` on the outcome.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from pokeapi_live import (
    GENERIC_ERROR_MESSAGE,
    CategoryGroup,
    EntityRecord,
    NameIndexCache,
    NameIndexEntry,
    PokeAPIClient,
    PokeAPIError,
    PokemonNotFound,
    UnexpectedStatus,
)

logger = logging.getLogger(__name__)

MAX_SEARCH_RESULTS = 10
MAX_SUGGESTIONS = 5
NOT_FOUND_MESSAGE = "No Pokémon found matching your search"
EXCLUDED_TYPES = frozenset({"shadow", "unknown"})

ERROR_NOT_FOUND = "not_found"
ERROR_TRANSPORT = "transport"


# --- sorting -----------------------------------------------------------------

def _stat_getter(stat: str) -> Callable[[EntityRecord], int]:
    def _get(record: EntityRecord) -> int:
        return int(record.base_stats.get(stat, 0) or 0)

    return _get


SORT_KEYS: Dict[str, Tuple[str, Callable[[EntityRecord], object]]] = {
    "name": ("Name", lambda record: (record.name or "").lower()),
    "hp": ("HP", _stat_getter("hp")),
    "attack": ("Attack", _stat_getter("attack")),
    "defense": ("Defense", _stat_getter("defense")),
}
DEFAULT_SORT_KEY = "name"


def sort_records(
    records: Sequence[EntityRecord], key: str = DEFAULT_SORT_KEY, descending: bool = False
) -> List[EntityRecord]:
    """Stable sort; equal keys keep their incoming order in either direction."""
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    _label, getter = SORT_KEYS[key]
    return sorted(records, key=getter, reverse=descending)


# --- search ------------------------------------------------------------------

@dataclass(frozen=True)
class SearchOutcome:
    record: EntityRecord | None = None
    results: Tuple[EntityRecord, ...] = ()
    error: str | None = None
    error_kind: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.record is None and not self.results and self.error is None


def _failed(kind: str, message: str) -> SearchOutcome:
    return SearchOutcome(error=message, error_kind=kind)


def find_matches(entries: Sequence[NameIndexEntry], query: str) -> List[NameIndexEntry]:
    needle = query.strip().lower()
    if not needle:
        return []
    return [entry for entry in entries if needle in entry.name.lower()]


def suggest_names(entries: Sequence[NameIndexEntry], text: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    return [entry.name for entry in find_matches(entries, text)[:limit]]


def _reference(entry: NameIndexEntry) -> str:
    return entry.reference or f"pokemon/{entry.name}"


def resolve_search(
    query: str,
    client: PokeAPIClient,
    index: NameIndexCache,
    sort_key: str = DEFAULT_SORT_KEY,
    descending: bool = False,
) -> SearchOutcome:
    needle = (query or "").strip().lower()
    if not needle:
        return SearchOutcome()

    try:
        record = client.fetch_pokemon(needle)
    except (PokemonNotFound, UnexpectedStatus):
        record = None
    except PokeAPIError:
        return _failed(ERROR_TRANSPORT, GENERIC_ERROR_MESSAGE)
    if record is not None:
        return SearchOutcome(record=record)

    try:
        matches = find_matches(index.get(), needle)
        if not matches:
            logger.info("No matches for %r", needle)
            return _failed(ERROR_NOT_FOUND, NOT_FOUND_MESSAGE)
        if len(matches) == 1:
            return SearchOutcome(record=client.fetch_reference(_reference(matches[0])))
        fetched = client.fetch_many([_reference(entry) for entry in matches[:MAX_SEARCH_RESULTS]])
    except PokeAPIError:
        return _failed(ERROR_TRANSPORT, GENERIC_ERROR_MESSAGE)
    return SearchOutcome(results=tuple(sort_records(fetched, sort_key, descending)))


# --- type browsing -------------------------------------------------------------

@dataclass(frozen=True)
class TypeBrowseOutcome:
    group: CategoryGroup | None = None
    error: str | None = None
    error_kind: str | None = None


def selectable_types(client: PokeAPIClient, verify: bool = False) -> List[str]:
    """Type names a user may pick; raises :class:`PokeAPIError` when the list cannot load."""
    names = [name for name in client.fetch_type_names() if name not in EXCLUDED_TYPES]
    if not verify:
        return names
    return [name for name in names if client.fetch_type_member_refs(name)]


def browse_type(type_name: str, client: PokeAPIClient) -> TypeBrowseOutcome:
    name = (type_name or "").strip().lower()
    if not name:
        return TypeBrowseOutcome()
    try:
        members = client.fetch_many(client.fetch_type_member_refs(name))
    except PokemonNotFound:
        return TypeBrowseOutcome(error=f"Unknown type: {name}", error_kind=ERROR_NOT_FOUND)
    except PokeAPIError:
        return TypeBrowseOutcome(error=GENERIC_ERROR_MESSAGE, error_kind=ERROR_TRANSPORT)
    logger.debug("Type %s has %d members", name, len(members))
    return TypeBrowseOutcome(group=CategoryGroup(name, tuple(members)))


# --- detail --------------------------------------------------------------------

@dataclass(frozen=True)
class DetailOutcome:
    record: EntityRecord | None = None
    names: Tuple[str, ...] = ()
    ordinal: int | None = None
    error: str | None = None
    error_kind: str | None = None

    @property
    def total(self) -> int:
        return len(self.names)

    @property
    def navigation_enabled(self) -> bool:
        return self.record is not None and bool(self.names)

    def counter_label(self) -> str:
        if self.ordinal is None:
            return ""
        return f"{self.ordinal} of {self.total}"

    def neighbour(self, step: int) -> str | None:
        if not self.navigation_enabled:
            return None
        return neighbour_name(self.names, self.record.name, step)


def ordinal_position(names: Sequence[str], name: str) -> int | None:
    for position, candidate in enumerate(names, start=1):
        if candidate == name:
            return position
    return None


def neighbour_name(names: Sequence[str], current: str, step: int) -> str:
    """Circular prev (``step=-1``) / next (``step=1``) lookup.

    A name missing from the index sits just before the first entry, so
    "next" yields the first name and "previous" the last.
    """
    if not names:
        raise ValueError("Name index is empty")
    position = ordinal_position(names, current)
    if position is None:
        return names[0] if step > 0 else names[-1]
    return names[(position - 1 + step) % len(names)]


def resolve_detail(identifier: str | int, client: PokeAPIClient, index: NameIndexCache) -> DetailOutcome:
    key = str(identifier or "").strip().lower()
    if not key:
        return DetailOutcome(error="Pokémon ID is missing.", error_kind=ERROR_NOT_FOUND)
    try:
        names = tuple(index.names())
        record = client.fetch_pokemon(key)
    except PokemonNotFound:
        return DetailOutcome(error=NOT_FOUND_MESSAGE, error_kind=ERROR_NOT_FOUND)
    except PokeAPIError:
        return DetailOutcome(error=GENERIC_ERROR_MESSAGE, error_kind=ERROR_TRANSPORT)
    return DetailOutcome(record=record, names=names, ordinal=ordinal_position(names, record.name))


# --- stale response guard --------------------------------------------------------

class RequestSequencer:
    """Hands out increasing tokens; only the latest token's result may be applied."""

    def __init__(self) -> None:
        self._latest = 0
        self._lock = threading.Lock()

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, token: int) -> bool:
        return token == self._latest


# --- display helpers -------------------------------------------------------------

def display_name(name: str) -> str:
    return name[:1].upper() + name[1:] if name else ""


def format_height(decimetres: int) -> str:
    return f"{decimetres / 10:g} m"


def format_weight(hectograms: int) -> str:
    return f"{hectograms / 10:g} kg"


def format_stat_name(stat: str) -> str:
    return display_name(stat).replace("-", " ", 1)


def stat_bar_width(value: int) -> int:
    """Bar width percentage: 10 for 0-25, 20 for 26-50, ... capped at 100."""
    if value <= 0:
        return 10
    return min(100, ((value - 1) // 25 + 1) * 10)
