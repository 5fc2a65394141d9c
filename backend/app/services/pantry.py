"""
Cliente del servicio de base de datos remoto ("pantry").

Este modulo encapsula TODA la comunicacion con la base de datos hospedada.
Ningun otro archivo del proyecto deberia hacer peticiones HTTP al servicio
directamente; todo pasa por `PantryClient`. Asi, en tests basta con
inyectar un cliente HTTP falso para simular el servicio completo.

Que ofrece el servicio remoto?
------------------------------
Solo dos endpoints HTTP:
    GET  /api/schema  -> estructura de la base (tablas y columnas)
    POST /api/sql     -> ejecuta una consulta SQL parametrizada
                         body: {"query": "...", "params": [...]}
                         respuesta: lista de filas (SELECT) o
                                    {"changes": n} (INSERT/UPDATE/DELETE)

Todo lo demas (el "query builder") se construye AQUI, del lado del
cliente: cada cadena de metodos se compila a un SQL con placeholders "?"
y una lista de parametros, y se envia a /api/sql.

Ejemplo:
    rows = await pantry.select("*").from_("pixels").where(eq("x", 3)).limit(5)
    # Se envia: SELECT * FROM pixels WHERE x = ? LIMIT 5   params=[3]

Seguridad:
----------
- Los VALORES nunca se interpolan en el SQL: viajan como parametros.
- Los NOMBRES (tablas, columnas) no pueden ser parametros en SQL, asi que
  se validan contra IDENTIFIER_PATTERN antes de interpolarlos. Esto
  previene SQL injection via nombres de columna.
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

# httpx: cliente HTTP con soporte async. Es el mismo que usa internamente
# el TestClient de FastAPI, y permite inyectar un "transport" falso en
# tests (httpx.MockTransport) sin levantar ningun servidor.
import httpx

from app.config import settings

# Nombre simple ("color") o calificado por tabla ("pixels.color").
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

ORDER_DIRECTIONS = ("ASC", "DESC")


class PantryError(Exception):
    """
    Error al comunicarse con el servicio remoto.

    Cubre fallos de red, respuestas HTTP de error (4xx/5xx) y respuestas
    que no son JSON. `status_code` es None cuando no hubo respuesta.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _identifier(name: str) -> str:
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def _count(value: int, what: str) -> int:
    # bool es subclase de int en Python; True no es un limite valido.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{what} must be a non-negative integer, got {value!r}")
    return value


# ---------- Constructores de condiciones ----------


@dataclass(frozen=True)
class Condition:
    """Fragmento de WHERE ya compilado: SQL con "?" y sus parametros."""

    sql: str
    params: tuple = ()


def _compare(column: str, operator: str, value) -> Condition:
    return Condition(f"{_identifier(column)} {operator} ?", (value,))


def eq(column: str, value) -> Condition:
    return _compare(column, "=", value)


def ne(column: str, value) -> Condition:
    return _compare(column, "!=", value)


def gt(column: str, value) -> Condition:
    return _compare(column, ">", value)


def gte(column: str, value) -> Condition:
    return _compare(column, ">=", value)


def lt(column: str, value) -> Condition:
    return _compare(column, "<", value)


def lte(column: str, value) -> Condition:
    return _compare(column, "<=", value)


def like(column: str, pattern: str) -> Condition:
    return _compare(column, "LIKE", pattern)


def in_array(column: str, values: Iterable) -> Condition:
    """
    Condicion `column IN (?, ?, ...)`.

    Una lista vacia produce una condicion que nunca se cumple, porque
    "IN ()" no es SQL valido.
    """
    column = _identifier(column)
    values = tuple(values)
    if not values:
        return Condition("1 = 0")
    placeholders = ", ".join("?" for _ in values)
    return Condition(f"{column} IN ({placeholders})", values)


# ---------- Query builder ----------


class _Query:
    """
    Base de todas las consultas encadenables.

    Las subclases implementan to_sql(). Una consulta se ejecuta con
    `await query.execute()` o simplemente `await query` (gracias a
    __await__, la consulta misma es "awaitable").
    """

    def __init__(self, client: "PantryClient"):
        self._client = client
        self._conditions: list[tuple[str, Condition]] = []

    def where(self, condition: Condition):
        self._conditions.append(("AND", condition))
        return self

    def or_where(self, condition: Condition):
        self._conditions.append(("OR", condition))
        return self

    def _where_sql(self) -> tuple[str, list]:
        if not self._conditions:
            return "", []
        parts = []
        params: list = []
        for index, (connector, condition) in enumerate(self._conditions):
            parts.append(condition.sql if index == 0 else f"{connector} {condition.sql}")
            params.extend(condition.params)
        return " WHERE " + " ".join(parts), params

    def to_sql(self) -> tuple[str, list]:
        raise NotImplementedError

    async def execute(self):
        query, params = self.to_sql()
        return await self._client.sql(query, *params)

    def __await__(self):
        return self.execute().__await__()


class SelectQuery(_Query):
    def __init__(self, client: "PantryClient", columns: Iterable[str]):
        super().__init__(client)
        # Las columnas del SELECT se pasan tal cual para permitir
        # expresiones como "pixels.*" o "colors.id AS color_id".
        self._columns = [c for c in columns if c] or ["*"]
        self._table: str | None = None
        self._joins: list[str] = []
        self._order: list[str] = []
        self._limit: int | None = None
        self._offset: int | None = None

    def from_(self, table: str) -> "SelectQuery":
        self._table = _identifier(table)
        return self

    def join(self, table: str, on: str) -> "SelectQuery":
        self._joins.append(f"JOIN {_identifier(table)} ON {on}")
        return self

    def left_join(self, table: str, on: str) -> "SelectQuery":
        self._joins.append(f"LEFT JOIN {_identifier(table)} ON {on}")
        return self

    def order_by(self, column: str, direction: str = "ASC") -> "SelectQuery":
        direction = direction.upper()
        if direction not in ORDER_DIRECTIONS:
            raise ValueError(f"Order direction must be ASC or DESC, got {direction!r}")
        self._order.append(f"{_identifier(column)} {direction}")
        return self

    def limit(self, count: int) -> "SelectQuery":
        self._limit = _count(count, "limit")
        return self

    def offset(self, count: int) -> "SelectQuery":
        self._offset = _count(count, "offset")
        return self

    def to_sql(self) -> tuple[str, list]:
        if self._table is None:
            raise ValueError("Select query has no table; call from_() first")
        where_sql, params = self._where_sql()
        query = f"SELECT {', '.join(self._columns)} FROM {self._table}"
        for join in self._joins:
            query += f" {join}"
        query += where_sql
        if self._order:
            query += " ORDER BY " + ", ".join(self._order)
        # limit y offset ya fueron validados como enteros, se interpolan.
        if self._limit is not None:
            query += f" LIMIT {self._limit}"
        if self._offset is not None:
            if self._limit is None:
                # En SQLite, OFFSET solo es valido despues de un LIMIT.
                query += " LIMIT -1"
            query += f" OFFSET {self._offset}"
        return query, params

    async def first(self) -> dict | None:
        """Ejecuta la consulta y retorna la primera fila, o None si no hay."""
        if self._limit is None:
            self._limit = 1
        rows = await self.execute()
        return rows[0] if rows else None


class InsertQuery(_Query):
    def __init__(self, client: "PantryClient", table: str):
        super().__init__(client)
        self._table = _identifier(table)
        self._replace = False
        self._rows: list[dict] = []

    def or_replace(self) -> "InsertQuery":
        """
        Convierte el INSERT en "INSERT OR REPLACE" (upsert): si una fila
        choca con la clave primaria de otra existente, la reemplaza.
        """
        self._replace = True
        return self

    def values(self, data: Mapping | Iterable[Mapping]) -> "InsertQuery":
        rows = [data] if isinstance(data, Mapping) else list(data)
        if not rows:
            raise ValueError("Insert needs at least one row")
        self._rows = [dict(row) for row in rows]
        return self

    def to_sql(self) -> tuple[str, list]:
        if not self._rows:
            raise ValueError("Insert has no rows; call values() first")
        columns = [_identifier(c) for c in self._rows[0]]
        for row in self._rows[1:]:
            if set(row) != set(columns):
                raise ValueError("All inserted rows must have the same columns")
        verb = "INSERT OR REPLACE" if self._replace else "INSERT"
        row_placeholders = "(" + ", ".join("?" for _ in columns) + ")"
        query = (
            f"{verb} INTO {self._table} ({', '.join(columns)}) "
            f"VALUES {', '.join(row_placeholders for _ in self._rows)}"
        )
        params = [row[c] for row in self._rows for c in columns]
        return query, params


class UpdateQuery(_Query):
    def __init__(self, client: "PantryClient", table: str):
        super().__init__(client)
        self._table = _identifier(table)
        self._data: dict = {}

    def set(self, data: Mapping) -> "UpdateQuery":
        if not data:
            raise ValueError("Update needs at least one column to set")
        self._data = dict(data)
        return self

    def to_sql(self) -> tuple[str, list]:
        if not self._data:
            raise ValueError("Update has nothing to set; call set() first")
        assignments = ", ".join(f"{_identifier(c)} = ?" for c in self._data)
        where_sql, where_params = self._where_sql()
        query = f"UPDATE {self._table} SET {assignments}{where_sql}"
        return query, list(self._data.values()) + where_params


class DeleteQuery(_Query):
    def __init__(self, client: "PantryClient"):
        super().__init__(client)
        self._table: str | None = None

    def from_(self, table: str) -> "DeleteQuery":
        self._table = _identifier(table)
        return self

    def to_sql(self) -> tuple[str, list]:
        if self._table is None:
            raise ValueError("Delete query has no table; call from_() first")
        where_sql, params = self._where_sql()
        return f"DELETE FROM {self._table}{where_sql}", params


# ---------- Cliente ----------


class PantryClient:
    """
    Cliente del servicio de base de datos remoto.

    Atributos:
        api_key (str): Credencial enviada como "Authorization: Bearer ...".
        base_url (str): URL base del servicio, sin "/" final.
        http (httpx.AsyncClient): Cliente HTTP que hace las llamadas.

    Patron de diseno: Inyeccion de Dependencias
    -------------------------------------------
    Igual que con cualquier servicio externo, el constructor acepta un
    `http_client` opcional:

        # En produccion:
        client = PantryClient(api_key="...")

        # En tests (sin red):
        fake = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = PantryClient(api_key="test", http_client=fake)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://datapantry.org",
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.http = http_client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, path: str, payload: dict | None = None):
        try:
            response = await self.http.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            raise PantryError(f"Request to {path} failed: {e}") from e

        if response.is_error:
            raise PantryError(
                f"{path} returned {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise PantryError(
                f"{path} returned a non-JSON body", status_code=response.status_code
            ) from e

    async def schema(self) -> dict:
        """
        Retorna la estructura de la base de datos:
            {"DBname": str, "tables": [{"name": str, "columns": [...]}]}
        """
        return await self._request("GET", "/api/schema")

    async def sql(self, query: str, *params) -> list[dict] | dict:
        """
        Ejecuta una consulta SQL parametrizada.

        Retorna:
            list[dict]: Filas, para consultas de lectura.
            dict: {"changes": n}, para escrituras.
        """
        result = await self._request("POST", "/api/sql", {"query": query, "params": list(params)})
        if not isinstance(result, (list, dict)):
            raise PantryError(f"Unexpected SQL result type: {type(result).__name__}")
        return result

    def select(self, *columns: str) -> SelectQuery:
        return SelectQuery(self, columns)

    def insert(self, table: str) -> InsertQuery:
        return InsertQuery(self, table)

    def update(self, table: str) -> UpdateQuery:
        return UpdateQuery(self, table)

    def delete(self) -> DeleteQuery:
        return DeleteQuery(self)

    async def aclose(self) -> None:
        await self.http.aclose()


def _error_detail(response: httpx.Response) -> str:
    # El servicio responde {"error": "..."}; si no, usamos el texto crudo.
    try:
        body = response.json()
    except ValueError:
        return response.text or "no details"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text or "no details"


# Instancia global del cliente (Singleton implicito). Reutiliza las
# conexiones HTTP del AsyncClient entre peticiones.
pantry = PantryClient(
    api_key=settings.API_KEY,
    base_url=settings.PANTRY_BASE_URL,
    timeout=settings.PANTRY_TIMEOUT,
)
