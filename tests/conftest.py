from __future__ import annotations

from typing import Dict, Iterable

import pytest
import requests

from pokeapi_live import NameIndexCache, PokeAPIClient
from settings import Settings

API = "https://pokeapi.test/api/v2"


def make_pokemon(
    pid: int,
    name: str,
    types: Iterable[str] = ("normal",),
    stats: Dict[str, int] | None = None,
    sprite: str | None = "default",
) -> dict:
    stats = stats if stats is not None else {"hp": 50, "attack": 50, "defense": 50}
    front = f"https://img.test/{pid}.png" if sprite == "default" else sprite
    return {
        "id": pid,
        "name": name,
        "height": 7,
        "weight": 69,
        "types": [{"slot": i + 1, "type": {"name": t}} for i, t in enumerate(types)],
        "stats": [{"base_stat": v, "stat": {"name": k}} for k, v in stats.items()],
        "sprites": {"front_default": front, "front_shiny": None, "other": {}},
    }


class FakeResponse:
    def __init__(self, status_code: int, payload: object = None) -> None:
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> object:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Maps URLs to payloads; unknown URLs answer 404."""

    def __init__(self) -> None:
        self.routes: Dict[str, FakeResponse] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []
        self.image_status: Dict[str, int] = {}

    def add(self, path: str, payload: object, status: int = 200) -> None:
        self.routes[f"{API}/{path}"] = FakeResponse(status, payload)

    def add_pokemon(self, payload: dict) -> None:
        self.add(f"pokemon/{payload['id']}/", payload)
        self.add(f"pokemon/{payload['id']}", payload)
        self.add(f"pokemon/{payload['name']}", payload)

    def set_index(self, names: Iterable[str], limit: int = 1302) -> None:
        results = [{"name": name, "url": f"{API}/pokemon/{name}"} for name in names]
        self.add(f"pokemon?limit={limit}", {"count": len(results), "results": results})

    def get(self, url: str, timeout: float | None = None) -> FakeResponse:
        self.calls.append(url)
        if url in self.failing:
            raise requests.ConnectionError("boom")
        return self.routes.get(url, FakeResponse(404, {"detail": "Not found."}))

    def head(self, url: str, timeout: float | None = None, allow_redirects: bool = False) -> FakeResponse:
        self.calls.append(url)
        if url in self.failing:
            raise requests.ConnectionError("boom")
        return FakeResponse(self.image_status.get(url, 200))


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> PokeAPIClient:
    return PokeAPIClient(Settings(api_base=API, max_workers=4), session=session)  # type: ignore[arg-type]


@pytest.fixture
def index(client: PokeAPIClient) -> NameIndexCache:
    return NameIndexCache(client)
