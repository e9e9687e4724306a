from __future__ import annotations

import html
from typing import Callable, List, Sequence, Tuple

from pokeapi_live import EntityRecord

SPRITE_BASE = "https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon"

# (family substring, canonical national dex id), checked top to bottom.
VARIANT_SPRITE_TABLE: Sequence[Tuple[str, int]] = (
    ("koraidon", 1007),
    ("miraidon", 1008),
    ("pikachu", 25),
    ("toxtricity", 849),
    ("morpeko", 877),
    ("voltorb-hisui", 100),
    ("electrode-hisui", 101),
    ("togedemaru", 777),
)


def _pokemon_icon_url(pid: int) -> str:
    return f"{SPRITE_BASE}/{pid}.png"


def _variant_sprite(name: str) -> str | None:
    for family, canonical_id in VARIANT_SPRITE_TABLE:
        if family in name and name != family:
            return _pokemon_icon_url(canonical_id)
    return None


def fallback_sprite_url(record: EntityRecord) -> str:
    """Sprite used when the record carries no image, or its image fails to load."""
    name = (record.name or "").lower()
    return _variant_sprite(name) or _pokemon_icon_url(max(record.id, 0))


def sprite_url(record: EntityRecord) -> str:
    refs = record.image_refs
    for candidate in (refs.primary, refs.home, refs.official_artwork, refs.shiny):
        if candidate:
            return candidate
    return fallback_sprite_url(record)


def displayable_sprite_urls(
    records: Sequence[EntityRecord], check: Callable[[Sequence[str]], Sequence[bool]]
) -> List[str]:
    """Best sprite per record, swapped once for the fallback when ``check`` says it fails to load.

    The fallback itself is not checked again.
    """
    primaries = [sprite_url(record) for record in records]
    loads = list(check(primaries)) if primaries else []
    return [
        url if ok else fallback_sprite_url(record)
        for record, url, ok in zip(records, primaries, loads)
    ]


def sprite_img_html(record: EntityRecord, src: str | None = None, css_class: str = "sprite") -> str:
    src = html.escape(src or sprite_url(record), quote=True)
    alt = html.escape(record.name or "", quote=True)
    return f'<img class="{css_class}" src="{src}" alt="{alt}" />'
