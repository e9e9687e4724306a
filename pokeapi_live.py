"""Live PokéAPI access: transport, record normalisation and the shared name index."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence, Tuple

import requests

from settings import Settings, load_settings

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Could not reach the Pokédex. Please try again."


class PokeAPIError(Exception):
    """The catalog could not be reached or answered with an unexpected status."""

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE) -> None:
        super().__init__(message)


class UnexpectedStatus(PokeAPIError):
    """A keyed lookup answered with a non-OK status other than 404."""

    def __init__(self, status_code: int) -> None:
        super().__init__()
        self.status_code = status_code


class PokemonNotFound(PokeAPIError):
    def __init__(self, key: str) -> None:
        super().__init__(f"No Pokémon named {key!r}")
        self.key = key


@dataclass(frozen=True)
class NameIndexEntry:
    name: str
    reference: str


@dataclass(frozen=True)
class ImageRefs:
    primary: str | None = None
    shiny: str | None = None
    home: str | None = None
    official_artwork: str | None = None


@dataclass(frozen=True)
class EntityRecord:
    id: int
    name: str
    height: int = 0
    weight: int = 0
    type_tags: Tuple[str, ...] = ()
    base_stats: Mapping[str, int] = field(default_factory=dict)
    image_refs: ImageRefs = field(default_factory=ImageRefs)


@dataclass(frozen=True)
class CategoryGroup:
    category_name: str
    members: Tuple[EntityRecord, ...] = ()


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _front_default(block: object) -> str | None:
    if not isinstance(block, dict):
        return None
    url = block.get("front_default")
    return str(url) if url else None


def parse_image_refs(sprites: object) -> ImageRefs:
    if not isinstance(sprites, dict):
        return ImageRefs()
    other = sprites.get("other") or {}
    if not isinstance(other, dict):
        other = {}
    artwork = other.get("official-artwork") or other.get("official_artwork")
    shiny = sprites.get("front_shiny")
    return ImageRefs(
        primary=_front_default(sprites),
        shiny=str(shiny) if shiny else None,
        home=_front_default(other.get("home")),
        official_artwork=_front_default(artwork),
    )


def is_pokemon_payload(payload: Mapping[str, object]) -> bool:
    """True when the payload carries an integer ``id`` and a non-empty ``name``."""
    pid = payload.get("id")
    name = payload.get("name")
    return isinstance(pid, int) and not isinstance(pid, bool) and isinstance(name, str) and bool(name)


def parse_pokemon(payload: Mapping[str, object]) -> EntityRecord:
    """Normalise a raw ``/pokemon/{key}`` payload into an :class:`EntityRecord`.

    Missing or malformed fields collapse to empty values instead of raising.
    """
    types: List[Tuple[int, str]] = []
    for position, slot in enumerate(payload.get("types") or []):
        if not isinstance(slot, dict):
            continue
        name = (slot.get("type") or {}).get("name")
        if name:
            types.append((_as_int(slot.get("slot"), position + 1), str(name)))
    types.sort(key=lambda item: item[0])

    stats: Dict[str, int] = {}
    for entry in payload.get("stats") or []:
        if not isinstance(entry, dict):
            continue
        stat_name = (entry.get("stat") or {}).get("name")
        if stat_name:
            stats[str(stat_name)] = _as_int(entry.get("base_stat"))

    return EntityRecord(
        id=_as_int(payload.get("id")),
        name=str(payload.get("name") or "").lower(),
        height=_as_int(payload.get("height")),
        weight=_as_int(payload.get("weight")),
        type_tags=tuple(name for _slot, name in types),
        base_stats=stats,
        image_refs=parse_image_refs(payload.get("sprites")),
    )


class PokeAPIClient:
    """Thin blocking client over the read-only PokéAPI catalog."""

    def __init__(self, settings: Settings | None = None, session: requests.Session | None = None) -> None:
        self.settings = settings or load_settings()
        self.session = session or requests.Session()

    def _url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        return f"{self.settings.api_base}/{path_or_url.lstrip('/')}"

    def get_json(self, path_or_url: str, *, not_found_key: str | None = None) -> dict:
        """GET and decode a JSON object.

        With ``not_found_key`` set, a 404 raises :class:`PokemonNotFound` and any
        other non-OK status raises :class:`UnexpectedStatus`; otherwise every
        failure is a plain :class:`PokeAPIError`.
        """
        url = self._url(path_or_url)
        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, timeout=self.settings.timeout)
        except requests.RequestException as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            raise PokeAPIError() from exc
        if resp.status_code == 404 and not_found_key is not None:
            raise PokemonNotFound(not_found_key)
        try:
            resp.raise_for_status()
        except requests.HTTPError as exc:
            logger.warning("Unexpected status %s from %s", resp.status_code, url)
            if not_found_key is not None:
                raise UnexpectedStatus(resp.status_code) from exc
            raise PokeAPIError() from exc
        try:
            data = resp.json()
        except ValueError as exc:
            logger.warning("Malformed JSON from %s", url)
            raise PokeAPIError() from exc
        if not isinstance(data, dict):
            raise PokeAPIError()
        return data

    def fetch_pokemon(self, key: str | int) -> EntityRecord:
        """Fetch one record by name or numeric id.

        Raises :class:`PokemonNotFound` on 404, or when the answer is not a
        creature record (e.g. a key that resolves to the list endpoint).
        """
        slug = str(key).strip().lower()
        if not slug:
            raise PokemonNotFound(slug)
        quoted = requests.utils.quote(slug, safe="")
        payload = self.get_json(f"pokemon/{quoted}", not_found_key=slug)
        if not is_pokemon_payload(payload):
            logger.info("Lookup %r answered with a non-Pokémon payload", slug)
            raise PokemonNotFound(slug)
        return parse_pokemon(payload)

    def fetch_reference(self, reference: str) -> EntityRecord:
        return parse_pokemon(self.get_json(reference))

    def fetch_many(self, references: Sequence[str]) -> List[EntityRecord]:
        """Fetch every reference concurrently; the first failure fails the whole batch."""
        if not references:
            return []
        workers = max(1, min(self.settings.max_workers, len(references)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pokeapi") as executor:
            return list(executor.map(self.fetch_reference, references))

    def image_available(self, url: str) -> bool:
        """HEAD the image URL; any error or non-OK status counts as a load failure."""
        try:
            resp = self.session.head(url, timeout=self.settings.timeout, allow_redirects=True)
        except requests.RequestException as exc:
            logger.debug("Image check for %s failed: %s", url, exc)
            return False
        return resp.status_code < 400

    def images_available(self, urls: Sequence[str]) -> List[bool]:
        if not urls:
            return []
        workers = max(1, min(self.settings.max_workers, len(urls)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="pokeapi-img") as executor:
            return list(executor.map(self.image_available, urls))

    def fetch_name_index(self, limit: int | None = None) -> List[NameIndexEntry]:
        limit = limit or self.settings.index_limit
        data = self.get_json(f"pokemon?limit={limit}")
        entries: List[NameIndexEntry] = []
        for item in data.get("results") or []:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            entries.append(NameIndexEntry(str(item["name"]).lower(), str(item.get("url") or "")))
        logger.info("Loaded name index with %d entries", len(entries))
        return entries

    def fetch_type_names(self) -> List[str]:
        data = self.get_json("type?limit=100")
        return [str(item["name"]) for item in data.get("results") or [] if isinstance(item, dict) and item.get("name")]

    def fetch_type_member_refs(self, type_name: str) -> List[str]:
        data = self.get_json(f"type/{type_name.strip().lower()}", not_found_key=type_name)
        refs: List[str] = []
        for slot in data.get("pokemon") or []:
            url = ((slot or {}).get("pokemon") or {}).get("url")
            if url:
                refs.append(str(url))
        return refs


class NameIndexCache:
    """Process-wide name index, loaded lazily once and never expired."""

    def __init__(self, client: PokeAPIClient) -> None:
        self._client = client
        self._entries: Tuple[NameIndexEntry, ...] | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._entries is not None

    def get(self) -> Tuple[NameIndexEntry, ...]:
        if self._entries is None:
            with self._lock:
                if self._entries is None:
                    self._entries = tuple(self._client.fetch_name_index())
        return self._entries

    def names(self) -> List[str]:
        return [entry.name for entry in self.get()]
