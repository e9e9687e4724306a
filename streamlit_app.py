from __future__ import annotations

import html
import logging
from typing import Dict, List, Sequence, Tuple

import streamlit as st
from PIL import Image, ImageDraw

from lookup import (
    DEFAULT_SORT_KEY,
    ERROR_NOT_FOUND,
    SORT_KEYS,
    DetailOutcome,
    RequestSequencer,
    SearchOutcome,
    TypeBrowseOutcome,
    browse_type,
    display_name,
    format_height,
    format_stat_name,
    format_weight,
    resolve_detail,
    resolve_search,
    selectable_types,
    sort_records,
    stat_bar_width,
    suggest_names,
)
from pokeapi_live import (
    GENERIC_ERROR_MESSAGE,
    EntityRecord,
    NameIndexCache,
    PokeAPIClient,
    PokeAPIError,
)
from settings import Settings, configure_logging, load_settings
from sprites import displayable_sprite_urls, sprite_img_html

logger = logging.getLogger(__name__)

CARDS_PER_ROW = 3
GALLERY_PER_ROW = 4

COLOR_PALETTE: Dict[str, str] = {
    "red": "#ff0000",
    "dark_red": "#cc0000",
    "blue": "#3b4cca",
    "yellow": "#ffde00",
    "gold": "#b3a125",
}

TYPE_COLORS: Dict[str, str] = {
    "normal": "#A8A77A",
    "fire": "#EE8130",
    "water": "#6390F0",
    "electric": "#F7D02C",
    "grass": "#7AC74C",
    "ice": "#96D9D6",
    "fighting": "#C22E28",
    "poison": "#A33EA1",
    "ground": "#E2BF65",
    "flying": "#A98FF3",
    "psychic": "#F95587",
    "bug": "#A6B91A",
    "rock": "#B6A136",
    "ghost": "#735797",
    "dragon": "#6F35FC",
    "dark": "#705746",
    "steel": "#B7B7CE",
    "fairy": "#D685AD",
    "stellar": "#40B5A5",
}


@st.cache_resource
def get_settings() -> Settings:
    settings = load_settings()
    configure_logging(settings)
    return settings


@st.cache_resource
def get_client() -> PokeAPIClient:
    return PokeAPIClient(get_settings())


@st.cache_resource
def get_name_index() -> NameIndexCache:
    return NameIndexCache(get_client())


@st.cache_data(ttl=24 * 60 * 60, show_spinner=False)
def check_images(urls: Tuple[str, ...]) -> List[bool]:
    return get_client().images_available(list(urls))


def sprite_sources(records: Sequence[EntityRecord]) -> List[str]:
    return displayable_sprite_urls(records, lambda urls: check_images(tuple(urls)))


@st.cache_data(show_spinner=False)
def load_type_options(verify: bool) -> List[str]:
    return selectable_types(get_client(), verify=verify)


def build_type_chips_html(types: Sequence[str] | None) -> str:
    spans: List[str] = []
    for t in types or []:
        label = str(t)
        color = TYPE_COLORS.get(label.lower(), "#777777")
        spans.append(
            f'<span class="pod-chip" style="background-color:{color};">{html.escape(label.title())}</span>'
        )
    return "".join(spans)


def build_page_icon(px: int = 64) -> Image.Image:
    """Draw a small Poké Ball used as the browser tab icon."""
    img = Image.new("RGBA", (px, px), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    edge = max(2, px // 16)
    box = (edge, edge, px - edge - 1, px - edge - 1)
    draw.pieslice(box, 180, 360, fill=COLOR_PALETTE["red"])
    draw.pieslice(box, 0, 180, fill="#ffffff")
    draw.ellipse(box, outline="#000000", width=edge)
    mid = px // 2
    draw.line((edge, mid, px - edge, mid), fill="#000000", width=edge)
    r = px // 7
    draw.ellipse((mid - r, mid - r, mid + r, mid + r), fill="#ffffff", outline="#000000", width=edge)
    return img


def set_page_metadata() -> None:
    st.set_page_config(
        page_title="PokéSearch",
        page_icon=build_page_icon(),
        layout="wide",
        initial_sidebar_state="collapsed",
    )
    colors = COLOR_PALETTE
    st.markdown(
        f"""
    <style>
      :root {{
        --poke-red: {colors["red"]};
        --poke-dark-red: {colors["dark_red"]};
        --poke-blue: {colors["blue"]};
        --poke-yellow: {colors["yellow"]};
        --poke-gold: {colors["gold"]};
      }}
      .nav-bar {{
        display: flex;
        gap: 0.6rem;
        margin-bottom: 1.25rem;
      }}
      .nav-button {{
        padding: 0.45rem 1.1rem;
        border-radius: 999px;
        border: 2px solid rgba(0,0,0,0.18);
        background: #ffffff;
        color: var(--poke-blue) !important;
        font-weight: 700;
        text-decoration: none !important;
      }}
      .nav-button.active {{
        background: var(--poke-yellow);
        color: #000000 !important;
      }}
      .poke-card {{
        background: rgba(255, 255, 255, 0.96);
        border-radius: 20px;
        border: 1px solid rgba(59, 76, 202, 0.15);
        box-shadow: 0 12px 26px rgba(0, 0, 0, 0.08);
        padding: 1.2rem;
        margin-bottom: 1.25rem;
        display: block;
        text-decoration: none !important;
        color: inherit !important;
      }}
      .card-header {{
        display: flex;
        justify-content: flex-start;
        align-items: center;
        gap: 1.2rem;
      }}
      .card-header .name {{
        font-size: 1.2rem;
        font-weight: 700;
        color: var(--poke-blue);
      }}
      .card-header .meta {{
        font-size: 0.9rem;
        color: rgba(0, 0, 0, 0.65);
      }}
      .pixel-icon {{
        height: 96px;
        width: 96px;
        object-fit: contain;
        border-radius: 18px;
        background: rgba(255,255,255,0.9);
        border: 1px solid rgba(0,0,0,0.07);
        padding: 0.5rem;
      }}
      .pod-chips {{
        display: flex;
        flex-wrap: wrap;
        gap: 8px;
        margin: 6px 0 0 0;
      }}
      .pod-chip {{
        padding: 4px 10px;
        border-radius: 999px;
        font-size: 0.82rem;
        font-weight: 700;
        color: #FFFFFF;
        text-shadow: 0 1px 2px rgba(0,0,0,0.35);
        white-space: nowrap;
      }}
      .sprite-card {{
        display: flex;
        flex-direction: column;
        align-items: center;
        gap: 0.35rem;
        padding: 0.55rem 0.4rem 0.9rem;
        margin-bottom: 0.9rem;
        border-radius: 0.85rem;
        background: rgba(255,255,255,0.88);
        box-shadow: 0 8px 16px rgba(0,0,0,0.14);
        text-decoration: none !important;
      }}
      .sprite-card img {{
        width: 72px;
        height: 72px;
        display: block;
      }}
      .sprite-card div {{
        font-weight: 700;
        color: #3b4cca;
      }}
      .detail-sprite {{
        width: 220px;
        max-width: 100%;
        image-rendering: pixelated;
        filter: drop-shadow(0 3px 6px rgba(0,0,0,0.25));
      }}
      .stat-row {{
        display: grid;
        grid-template-columns: 9rem 1fr 3rem;
        align-items: center;
        gap: 0.6rem;
        margin-bottom: 0.35rem;
      }}
      .stat-bar-container {{
        background: rgba(0,0,0,0.08);
        border-radius: 999px;
        height: 0.7rem;
      }}
      .stat-bar {{
        background: var(--poke-blue);
        border-radius: 999px;
        height: 100%;
      }}
      .pokemon-counter {{
        text-align: center;
        font-weight: 700;
        padding-top: 0.6rem;
      }}
      .footer-bar {{
        margin-top: 3rem;
        text-align: center;
        font-size: 0.85rem;
        color: rgba(0,0,0,0.65);
        padding-bottom: 4rem;
      }}
    </style>
    """,
        unsafe_allow_html=True,
    )


def ensure_state() -> None:
    if "request_sequencer" not in st.session_state:
        st.session_state["request_sequencer"] = RequestSequencer()
    if "search_outcome" not in st.session_state:
        st.session_state["search_outcome"] = SearchOutcome()
    if "search_query_input" not in st.session_state:
        st.session_state["search_query_input"] = ""
    if "search_prefill" not in st.session_state:
        st.session_state["search_prefill"] = None
    if "enter_submit" not in st.session_state:
        st.session_state["enter_submit"] = False
    if "sort_key" not in st.session_state:
        st.session_state["sort_key"] = DEFAULT_SORT_KEY
    if "sort_direction" not in st.session_state:
        st.session_state["sort_direction"] = "Ascending"
    if "type_choice" not in st.session_state:
        st.session_state["type_choice"] = ""
    if "type_outcome" not in st.session_state:
        st.session_state["type_outcome"] = TypeBrowseOutcome()


def _mark_enter_submit() -> None:
    st.session_state["enter_submit"] = True


def render_nav(active: str) -> None:
    links = (("search", "Search", "?"), ("gallery", "Gallery", "?view=gallery"))
    parts = [
        f'<a class="nav-button{" active" if key == active else ""}" href="{href}" target="_self">{label}</a>'
        for key, label, href in links
    ]
    st.markdown(f'<div class="nav-bar">{"".join(parts)}</div>', unsafe_allow_html=True)


def render_record_card(record: EntityRecord, src: str | None = None) -> str:
    types = ", ".join(display_name(t) for t in record.type_tags)
    return "\n".join(
        [
            f'<a class="poke-card" href="?pokemon={record.id}" target="_self">',
            '  <div class="card-header">',
            f"    {sprite_img_html(record, src, 'pixel-icon')}",
            "    <div>",
            f'      <div class="name">{html.escape(display_name(record.name))}</div>',
            f'      <div class="meta">#{record.id} · {format_height(record.height)} · {format_weight(record.weight)}</div>',
            f'      <div class="meta">{html.escape(types)}</div>',
            "    </div>",
            "  </div>",
            "</a>",
        ]
    )


def render_record_grid(records: Sequence[EntityRecord], per_row: int = CARDS_PER_ROW) -> None:
    cols = st.columns(per_row)
    for idx, (record, src) in enumerate(zip(records, sprite_sources(records))):
        with cols[idx % per_row]:
            st.markdown(render_record_card(record, src), unsafe_allow_html=True)


def render_sprite_gallery(records: Sequence[EntityRecord]) -> None:
    cols = st.columns(GALLERY_PER_ROW)
    for idx, (record, src) in enumerate(zip(records, sprite_sources(records))):
        with cols[idx % GALLERY_PER_ROW]:
            st.markdown(
                f'''
                <a class="sprite-card" href="?pokemon={record.id}" target="_self">
                  {sprite_img_html(record, src, "gallery-sprite")}
                  <div>{html.escape(display_name(record.name))}</div>
                  <div class="pod-chips">{build_type_chips_html(record.type_tags)}</div>
                </a>
                ''',
                unsafe_allow_html=True,
            )


def _run_search(query: str) -> None:
    sequencer: RequestSequencer = st.session_state["request_sequencer"]
    token = sequencer.begin()
    with st.spinner("Searching..."):
        outcome = resolve_search(
            query,
            get_client(),
            get_name_index(),
            st.session_state["sort_key"],
            st.session_state["sort_direction"] == "Descending",
        )
    if sequencer.is_current(token):
        st.session_state["search_outcome"] = outcome
    else:
        logger.debug("Dropping stale search result for %r", query)


def render_suggestions(typed: str) -> None:
    """Up to five clickable names for the committed text; a click searches that name."""
    try:
        suggestions = suggest_names(get_name_index().get(), typed)
    except PokeAPIError:
        return
    if not suggestions:
        return
    cols = st.columns(len(suggestions))
    for col, name in zip(cols, suggestions):
        if col.button(display_name(name), key=f"suggest_{name}"):
            st.session_state["search_prefill"] = name
            _run_search(name)
            st.rerun()


def render_search_view() -> None:
    render_nav("search")
    st.markdown("## Pokémon Search")

    if st.session_state["search_prefill"] is not None:
        st.session_state["search_query_input"] = st.session_state["search_prefill"]
        st.session_state["search_prefill"] = None

    search_value = st.text_input(
        "Search the Pokédex",
        placeholder="Enter Pokémon name (e.g., pikachu, char, saur)",
        key="search_query_input",
        label_visibility="collapsed",
        autocomplete="off",
        on_change=_mark_enter_submit,
    )
    search_clicked = st.button("Search", key="search_submit")
    if st.session_state.get("enter_submit"):
        search_clicked = True
        st.session_state["enter_submit"] = False

    if search_clicked:
        _run_search(search_value)

    outcome: SearchOutcome = st.session_state["search_outcome"]
    typed = search_value.strip()
    if typed and outcome.record is None:
        render_suggestions(typed)

    if outcome.error:
        if outcome.error_kind == ERROR_NOT_FOUND:
            st.info(outcome.error)
        else:
            st.error(outcome.error)
        return
    if outcome.record is not None:
        render_record_grid([outcome.record], per_row=1)
        return
    if outcome.results:
        sort_cols = st.columns([2, 2, 3])
        with sort_cols[0]:
            st.selectbox(
                "Sort by",
                list(SORT_KEYS.keys()),
                key="sort_key",
                format_func=lambda key: SORT_KEYS[key][0],
            )
        with sort_cols[1]:
            st.radio("Order", ["Ascending", "Descending"], key="sort_direction", horizontal=True)
        ordered = sort_records(
            outcome.results,
            st.session_state["sort_key"],
            st.session_state["sort_direction"] == "Descending",
        )
        st.markdown(f"### Search Results ({len(ordered)} found)")
        render_record_grid(ordered)
        return
    st.caption(
        "Search for any Pokémon by name. Partial searches work too: try char, pika or saur."
    )


def _on_type_change() -> None:
    choice = st.session_state.get("type_choice") or ""
    sequencer: RequestSequencer = st.session_state["request_sequencer"]
    token = sequencer.begin()
    st.session_state["type_outcome"] = TypeBrowseOutcome()
    outcome = browse_type(choice, get_client())
    if sequencer.is_current(token):
        st.session_state["type_outcome"] = outcome


def render_gallery_view() -> None:
    render_nav("gallery")
    st.markdown("## Browse by Type")
    try:
        options = load_type_options(get_settings().verify_types)
    except PokeAPIError:
        st.error(GENERIC_ERROR_MESSAGE)
        return
    st.selectbox(
        "Type",
        [""] + options,
        key="type_choice",
        format_func=lambda key: "Choose a type" if not key else display_name(key),
        on_change=_on_type_change,
    )
    outcome: TypeBrowseOutcome = st.session_state["type_outcome"]
    if outcome.error:
        st.error(outcome.error)
        return
    group = outcome.group
    if group is None:
        return
    st.markdown(
        f'<div class="pod-chips">{build_type_chips_html([group.category_name])}</div>',
        unsafe_allow_html=True,
    )
    st.caption(f"{len(group.members)} Pokémon · tap a sprite to open its entry.")
    render_sprite_gallery(group.members)


def _navigate_to(name: str) -> None:
    st.query_params.clear()
    st.query_params["pokemon"] = name


def render_stat_sheet(record: EntityRecord) -> None:
    rows = []
    for stat, value in record.base_stats.items():
        rows.append(
            '<div class="stat-row">'
            f"<span>{html.escape(format_stat_name(stat))}</span>"
            f'<div class="stat-bar-container"><div class="stat-bar" style="width:{stat_bar_width(value)}%;"></div></div>'
            f"<span>{value}</span>"
            "</div>"
        )
    st.markdown("".join(rows), unsafe_allow_html=True)


def render_detail_view(identifier: str) -> None:
    render_nav("detail")
    sequencer: RequestSequencer = st.session_state["request_sequencer"]
    token = sequencer.begin()
    with st.spinner("Loading Pokémon details..."):
        outcome: DetailOutcome = resolve_detail(identifier, get_client(), get_name_index())
    if not sequencer.is_current(token):
        return
    if outcome.error:
        st.error(outcome.error)
        return
    record = outcome.record
    if record is None:
        st.error("No Pokémon data available.")
        return

    st.markdown(f"## {html.escape(display_name(record.name))} #{record.id}")
    image_col, info_col = st.columns([1, 2], gap="large")
    with image_col:
        st.markdown(sprite_img_html(record, sprite_sources([record])[0], "detail-sprite"), unsafe_allow_html=True)
    with info_col:
        st.markdown("### Basic Information")
        st.markdown(f"**Height:** {format_height(record.height)}  \n**Weight:** {format_weight(record.weight)}")
        st.markdown(
            f'<div class="pod-chips">{build_type_chips_html(record.type_tags)}</div>',
            unsafe_allow_html=True,
        )
        st.markdown("### Base Stats")
        render_stat_sheet(record)

    prev_col, counter_col, next_col = st.columns([1, 2, 1])
    with prev_col:
        if st.button("←", key="detail_prev", disabled=not outcome.navigation_enabled):
            _navigate_to(outcome.neighbour(-1))
            st.rerun()
    with counter_col:
        st.markdown(f'<div class="pokemon-counter">{outcome.counter_label()}</div>', unsafe_allow_html=True)
    with next_col:
        if st.button("→", key="detail_next", disabled=not outcome.navigation_enabled):
            _navigate_to(outcome.neighbour(1))
            st.rerun()


def render_footer() -> None:
    st.markdown(
        """
        <div class="footer-bar">
          <span>Pokémon and Pokémon character names are trademarks of Nintendo, Creatures, and GAME FREAK.</span><br/>
          <span>Data and sprites powered by PokéAPI.</span>
        </div>
        """,
        unsafe_allow_html=True,
    )


def main() -> None:
    set_page_metadata()
    get_settings()
    ensure_state()

    identifier = st.query_params.get("pokemon")
    view = st.query_params.get("view")
    if identifier:
        render_detail_view(identifier)
    elif view == "gallery":
        render_gallery_view()
    else:
        render_search_view()
    render_footer()


if __name__ == "__main__":
    main()
