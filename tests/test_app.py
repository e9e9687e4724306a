from __future__ import annotations

from pathlib import Path

import pytest
import requests
import streamlit as st
from streamlit.testing.v1 import AppTest

import streamlit_app
from pokeapi_live import EntityRecord, ImageRefs
from sprites import SPRITE_BASE
from tests.conftest import API, FakeSession, make_pokemon

APP_PATH = Path(__file__).resolve().parents[1] / "streamlit_app.py"


@pytest.fixture
def fake_http(monkeypatch):
    fake = FakeSession()
    monkeypatch.setenv("POKESEARCH_API_BASE", API)
    monkeypatch.setattr(requests.Session, "get", lambda self, url, **kw: fake.get(url, kw.get("timeout")))
    monkeypatch.setattr(requests.Session, "head", lambda self, url, **kw: fake.head(url, kw.get("timeout")))
    st.cache_resource.clear()
    st.cache_data.clear()
    yield fake
    st.cache_resource.clear()
    st.cache_data.clear()


def _load_starters(fake):
    names = ["charmander", "charmeleon", "charizard", "pikachu"]
    fake.set_index(names)
    for pid, name in zip((4, 5, 6, 25), names):
        fake.add_pokemon(make_pokemon(pid, name))


def _suggestion_keys(at):
    return [b.key for b in at.button if (b.key or "").startswith("suggest_")]


def test_search_view_renders_without_network():
    at = AppTest.from_file(str(APP_PATH)).run()

    assert not at.exception
    assert at.text_input(key="search_query_input").value == ""
    assert at.button(key="search_submit")


def test_page_icon_is_square_rgba():
    icon = streamlit_app.build_page_icon(32)

    assert icon.size == (32, 32)
    assert icon.mode == "RGBA"


def test_type_chips_fall_back_to_grey():
    chips = streamlit_app.build_type_chips_html(["water", "cosmic"])

    assert "#6390F0" in chips
    assert "#777777" in chips
    assert ">Cosmic<" in chips


def test_record_card_links_to_detail():
    card = streamlit_app.render_record_card(EntityRecord(id=25, name="pikachu", height=4, weight=60))

    assert 'href="?pokemon=25"' in card
    assert "Pikachu" in card
    assert "0.4 m" in card


def test_record_card_uses_checked_source():
    record = EntityRecord(id=6, name="charizard", image_refs=ImageRefs(primary="https://img.test/6.png"))

    card = streamlit_app.render_record_card(record, f"{SPRITE_BASE}/6.png")

    assert f'src="{SPRITE_BASE}/6.png"' in card
    assert "https://img.test/6.png" not in card


def test_suggestions_shown_alongside_list_results(fake_http):
    _load_starters(fake_http)
    at = AppTest.from_file(str(APP_PATH)).run()

    at.text_input(key="search_query_input").input("char").run()

    assert not at.exception
    assert _suggestion_keys(at) == ["suggest_charmander", "suggest_charmeleon", "suggest_charizard"]
    assert any("Search Results (3 found)" in md.value for md in at.markdown)


def test_no_suggestions_for_single_record(fake_http):
    _load_starters(fake_http)
    at = AppTest.from_file(str(APP_PATH)).run()

    at.text_input(key="search_query_input").input("pikachu").run()

    assert not at.exception
    assert _suggestion_keys(at) == []


def test_broken_sprite_rendered_with_fallback(fake_http):
    _load_starters(fake_http)
    fake_http.image_status["https://img.test/25.png"] = 404
    at = AppTest.from_file(str(APP_PATH)).run()

    at.text_input(key="search_query_input").input("pikachu").run()

    cards = [md.value for md in at.markdown if "poke-card" in md.value and "?pokemon=25" in md.value]
    assert cards
    assert f'src="{SPRITE_BASE}/25.png"' in cards[0]
