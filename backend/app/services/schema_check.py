"""
Verificacion del esquema de la base de datos remota.

Al arrancar el servidor (y desde scripts/check_schema.py) pedimos el
esquema al servicio remoto y revisamos que exista la tabla de pixeles con
las columnas que usa el backend. Los problemas se REPORTAN en el log, no
detienen el servidor: el servicio remoto puede estar temporalmente caido
y el esquema puede corregirse sin reiniciar nada.
"""

from app.config import settings
from app.logger import get_logger
from app.services.pantry import PantryClient, PantryError

logger = get_logger(__name__)

# Columnas que lee o escribe services/pixels.py.
REQUIRED_COLUMNS = ("id", "x", "y", "color", "ip", "created_at")


def check_pixel_schema(schema: dict | None, table: str | None = None) -> list[str]:
    """
    Revisa un esquema y retorna la lista de problemas encontrados.

    Parametros:
        schema (dict | None): Respuesta de PantryClient.schema().
        table (str | None): Tabla de pixeles; por defecto PIXEL_TABLE.
            Se compara sin distinguir mayusculas, como hace SQL.

    Retorna:
        list[str]: Vacia si el esquema sirve.
    """
    table = table or settings.PIXEL_TABLE
    if not schema or not isinstance(schema, dict):
        return ["Schema not found"]

    tables = schema.get("tables") or []
    if not tables:
        return ["No tables found in schema"]

    pixel_table = next(
        (t for t in tables if str(t.get("name", "")).lower() == table.lower()), None
    )
    if pixel_table is None:
        names = ", ".join(str(t.get("name")) for t in tables)
        return [f"Table '{table}' not found in schema (tables: {names})"]

    columns = pixel_table.get("columns") or []
    if not columns:
        return [f"No columns found in table '{table}'"]

    present = {str(c.get("name", "")).lower() for c in columns}
    missing = [c for c in REQUIRED_COLUMNS if c not in present]
    if missing:
        return [f"Required columns missing in table '{table}': {', '.join(missing)}"]
    return []


async def verify_schema(client: PantryClient) -> list[str]:
    """
    Descarga el esquema, lo revisa y registra el resultado en el log.

    Retorna:
        list[str]: Problemas encontrados (incluye el fallo de conexion,
            si no se pudo obtener el esquema).
    """
    try:
        schema = await client.schema()
    except PantryError as e:
        logger.error("Could not load schema: %s", e)
        return [f"Could not load schema: {e}"]

    problems = check_pixel_schema(schema)
    for problem in problems:
        logger.warning(problem)
    if not problems:
        logger.info("Schema loaded successfully")
    return problems
