import asyncio

import httpx
import pytest

from app.services.pantry import (
    PantryClient,
    PantryError,
    eq,
    gt,
    gte,
    in_array,
    like,
    lt,
    lte,
    ne,
)

API_KEY = "test-key"
BASE_URL = "https://pantry.test"


def offline_client():
    def refuse(request):
        raise AssertionError("query builder must not hit the network")

    return PantryClient(api_key=API_KEY, http_client=httpx.AsyncClient(transport=httpx.MockTransport(refuse)))


def test_select_with_where_and_or_where():
    db = offline_client()
    query, params = db.select("*").from_("pixels").where(eq("x", 3)).or_where(eq("y", 4)).to_sql()
    assert query == "SELECT * FROM pixels WHERE x = ? OR y = ?"
    assert params == [3, 4]


def test_select_order_limit_offset():
    db = offline_client()
    query, params = (
        db.select("id", "color").from_("pixels").order_by("created_at", "desc").limit(5).offset(2).to_sql()
    )
    assert query == "SELECT id, color FROM pixels ORDER BY created_at DESC LIMIT 5 OFFSET 2"
    assert params == []


def test_offset_without_limit_uses_unbounded_limit():
    query, _ = offline_client().select().from_("pixels").offset(10).to_sql()
    assert query == "SELECT * FROM pixels LIMIT -1 OFFSET 10"


def test_joins():
    db = offline_client()
    query, _ = (
        db.select("pixels.*", "colors.id AS color_id")
        .from_("pixels")
        .join("colors", "pixels.color = colors.name")
        .left_join("owners", "pixels.ip = owners.ip")
        .to_sql()
    )
    assert query == (
        "SELECT pixels.*, colors.id AS color_id FROM pixels "
        "JOIN colors ON pixels.color = colors.name "
        "LEFT JOIN owners ON pixels.ip = owners.ip"
    )


def test_condition_builders():
    assert ne("x", 1).sql == "x != ?"
    assert gt("x", 1).sql == "x > ?"
    assert gte("x", 1).sql == "x >= ?"
    assert lt("x", 1).sql == "x < ?"
    assert lte("x", 1).sql == "x <= ?"
    assert like("color", "bl%").params == ("bl%",)
    cond = in_array("color", ["red", "blue"])
    assert cond.sql == "color IN (?, ?)"
    assert cond.params == ("red", "blue")
    assert in_array("color", []).sql == "1 = 0"


def test_insert_or_replace_batch():
    rows = [{"id": "x1_y2", "x": 1, "y": 2}, {"id": "x3_y4", "x": 3, "y": 4}]
    query, params = offline_client().insert("pixels").or_replace().values(rows).to_sql()
    assert query == "INSERT OR REPLACE INTO pixels (id, x, y) VALUES (?, ?, ?), (?, ?, ?)"
    assert params == ["x1_y2", 1, 2, "x3_y4", 3, 4]


def test_insert_single_row():
    query, params = offline_client().insert("pixels").values({"x": 1}).to_sql()
    assert query == "INSERT INTO pixels (x) VALUES (?)"
    assert params == [1]


def test_insert_rejects_mismatched_rows():
    with pytest.raises(ValueError):
        offline_client().insert("pixels").values([{"x": 1}, {"y": 2}]).to_sql()


def test_update_and_delete():
    db = offline_client()
    query, params = db.update("pixels").set({"color": "blue"}).where(eq("x", 10)).where(eq("y", 20)).to_sql()
    assert query == "UPDATE pixels SET color = ? WHERE x = ? AND y = ?"
    assert params == ["blue", 10, 20]

    query, params = db.delete().from_("pixels").where(eq("x", 10)).to_sql()
    assert query == "DELETE FROM pixels WHERE x = ?"
    assert params == [10]


@pytest.mark.parametrize("name", ["x; DROP TABLE pixels", "1x", "", "a.b.c", "color--"])
def test_rejects_invalid_identifiers(name):
    with pytest.raises(ValueError):
        eq(name, 1)


def test_rejects_bad_order_and_limits():
    db = offline_client()
    with pytest.raises(ValueError):
        db.select().from_("pixels").order_by("x", "SIDEWAYS")
    with pytest.raises(ValueError):
        db.select().from_("pixels").limit(-1)
    with pytest.raises(ValueError):
        db.select().from_("pixels").limit(True)
    with pytest.raises(ValueError):
        db.select().to_sql()


def test_runs_queries_against_service(pantry_client, pantry_server):
    async def scenario():
        inserted = await pantry_client.insert("pixels").values(
            [{"id": "x3_y4", "x": 3, "y": 4, "color": "red"}, {"id": "x5_y6", "x": 5, "y": 6, "color": "green"}]
        )
        updated = await pantry_client.update("pixels").set({"color": "blue"}).where(eq("x", 3))
        rows = await pantry_client.select("*").from_("pixels").where(eq("x", 3)).where(eq("y", 4))
        raw = await pantry_client.sql("SELECT * FROM pixels WHERE x = ? AND y = ?", 5, 6)
        deleted = await pantry_client.delete().from_("pixels").where(eq("x", 5))
        missing = await pantry_client.select("*").from_("pixels").where(eq("x", 99)).first()
        return inserted, updated, rows, raw, deleted, missing

    inserted, updated, rows, raw, deleted, missing = asyncio.run(scenario())

    assert inserted == {"changes": 2}
    assert updated == {"changes": 1}
    assert rows[0]["color"] == "blue"
    assert raw[0]["color"] == "green"
    assert deleted == {"changes": 1}
    assert missing is None
    assert all(r.headers["authorization"] == f"Bearer {API_KEY}" for r in pantry_server.requests)
    assert str(pantry_server.requests[0].url) == f"{BASE_URL}/api/sql"


def test_schema(pantry_client):
    schema = asyncio.run(pantry_client.schema())
    assert schema["tables"][0]["name"] == "pixels"
    id_column = schema["tables"][0]["columns"][0]
    assert id_column["name"] == "id"
    assert id_column["constraint"] == "primary"


def test_invalid_sql_raises(pantry_client):
    with pytest.raises(PantryError) as exc_info:
        asyncio.run(pantry_client.sql("SELECTE * FROM pixels"))
    assert exc_info.value.status_code == 400
    assert "syntax error" in str(exc_info.value)


def test_rejected_api_key(pantry_server):
    http = httpx.AsyncClient(transport=httpx.MockTransport(pantry_server.handle))
    client = PantryClient(api_key="wrong", http_client=http)
    with pytest.raises(PantryError) as exc_info:
        asyncio.run(client.schema())
    assert exc_info.value.status_code == 401
    assert "Invalid API key" in str(exc_info.value)


def test_transport_error_raises():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = PantryClient(api_key=API_KEY, http_client=httpx.AsyncClient(transport=httpx.MockTransport(unreachable)))
    with pytest.raises(PantryError) as exc_info:
        asyncio.run(client.sql("SELECT 1"))
    assert exc_info.value.status_code is None


def test_non_json_body_raises():
    client = PantryClient(
        api_key=API_KEY,
        http_client=httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>oops</html>"))
        ),
    )
    with pytest.raises(PantryError):
        asyncio.run(client.schema())
