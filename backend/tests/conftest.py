import json
import sqlite3

import httpx
import pytest

from app.limiter import limiter
from app.services.pantry import PantryClient
from app.services.pixels import PixelService

API_KEY = "test-key"
BASE_URL = "https://pantry.test"

_DATATYPES = {"INTEGER": "number", "REAL": "number", "TEXT": "string"}


class FakePantryServer:
    """In-memory stand-in for the remote pantry API, backed by SQLite."""

    def __init__(self):
        self.db = sqlite3.connect(":memory:", check_same_thread=False, isolation_level=None)
        self.db.row_factory = sqlite3.Row
        self.db.execute(
            "CREATE TABLE pixels ("
            "id TEXT PRIMARY KEY, x INTEGER, y INTEGER, color TEXT, ip TEXT, created_at TEXT)"
        )
        self.requests: list[httpx.Request] = []
        self.changes_override: int | None = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != f"Bearer {API_KEY}":
            return httpx.Response(401, json={"error": "Invalid API key"})
        if request.method == "GET" and request.url.path == "/api/schema":
            return httpx.Response(200, json=self.schema())
        if request.method == "POST" and request.url.path == "/api/sql":
            body = json.loads(request.content)
            return self.run_sql(body["query"], body["params"])
        return httpx.Response(404, json={"error": "Not found"})

    def run_sql(self, query: str, params: list) -> httpx.Response:
        try:
            cursor = self.db.execute(query, params)
        except sqlite3.Error as e:
            return httpx.Response(400, json={"error": str(e)})
        if cursor.description is not None:
            return httpx.Response(200, json=[dict(row) for row in cursor.fetchall()])
        changes = cursor.rowcount if self.changes_override is None else self.changes_override
        return httpx.Response(200, json={"changes": changes})

    def schema(self) -> dict:
        tables = []
        names = self.db.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
        ).fetchall()
        for (name,) in names:
            columns = [
                {
                    "name": col["name"],
                    "datatype": _DATATYPES.get(col["type"], "string"),
                    "constraint": "primary" if col["pk"] else "none",
                    "isRequired": bool(col["notnull"] or col["pk"]),
                    "foreignKey": None,
                }
                for col in self.db.execute(f"PRAGMA table_info({name})").fetchall()
            ]
            tables.append({"name": name, "columns": columns})
        return {"DBname": "canvas", "tables": tables}

    def replace_table(self, ddl: str) -> None:
        """Swap the pixels table for one with a different shape."""
        self.db.execute("DROP TABLE pixels")
        self.db.execute(ddl)

    def rows(self) -> list[dict]:
        return [dict(r) for r in self.db.execute("SELECT * FROM pixels ORDER BY id").fetchall()]


@pytest.fixture
def pantry_server():
    return FakePantryServer()


@pytest.fixture
def pantry_client(pantry_server):
    http = httpx.AsyncClient(transport=httpx.MockTransport(pantry_server.handle))
    return PantryClient(api_key=API_KEY, base_url=BASE_URL, http_client=http)


@pytest.fixture
def pixel_service(pantry_client):
    return PixelService(db=pantry_client)


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """SlowAPI keeps counters in memory; start every test from zero."""
    limiter.reset()
    yield
