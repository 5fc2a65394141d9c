"""
Script de verificacion del esquema de la base de datos remota.

Hace la misma revision que el servidor al arrancar, pero de forma
independiente: util despues de crear o modificar la tabla de pixeles
en el panel del servicio remoto, sin tener que levantar el backend.

Que revisa?
-----------
- Que el servicio responda con un esquema.
- Que exista la tabla de pixeles (PIXEL_TABLE, por defecto "pixels").
- Que tenga las columnas id, x, y, color, ip y created_at.

Uso:
    python scripts/check_schema.py

Codigo de salida:
    0 -> el esquema sirve
    1 -> hay problemas (detallados en el log)

Requisitos:
    - API_KEY configurada (variable de entorno o archivo .env)
    - El paquete del backend instalado (pip install -e .)
"""

import asyncio
import sys

from app.config import settings
from app.services.pantry import pantry
from app.services.schema_check import verify_schema


async def main() -> int:
    if not settings.API_KEY:
        print("API_KEY is not set", file=sys.stderr)
        return 1
    try:
        problems = await verify_schema(pantry)
    finally:
        await pantry.aclose()
    return 1 if problems else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
