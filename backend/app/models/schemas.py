"""
Modulo de esquemas (schemas) de datos de la API.

Este archivo define la ESTRUCTURA de los datos que entran y salen de la
API del lienzo, usando Pydantic. Es el "contrato" entre el frontend y el
backend.

Patron de diseno: Data Transfer Objects (DTOs)
----------------------------------------------
Estos schemas solo transportan datos entre capas; no contienen logica
de negocio. La logica (hash de IP, cooldown, upsert) vive en
services/pixels.py.

Flujo tipico:
    JSON del cliente -> Pydantic valida -> Objeto Python -> Servicio -> JSON de respuesta
"""

from pydantic import BaseModel, ConfigDict, Field


class PixelInput(BaseModel):
    """
    Un pixel enviado por el cliente en POST /api/save-pixel.

    Atributos:
        x (int): Columna del pixel en el lienzo.
        y (int): Fila del pixel en el lienzo.
        color (str): Color en el formato que use el frontend
            (ej: "red" o "#ff0000"). El backend no lo interpreta.
    """
    x: int
    y: int
    color: str


class SavePixelsRequest(BaseModel):
    """
    Cuerpo de POST /api/save-pixel.

    `pixels` es opcional a nivel de schema a proposito: si falta o esta
    vacio, el endpoint responde 400 con su propio mensaje, en vez del 422
    automatico de FastAPI.
    """
    pixels: list[PixelInput] | None = None


class Pixel(BaseModel):
    """
    Un pixel tal como esta guardado en la base de datos remota.

    Las filas vienen de un servicio externo: la tabla puede tener columnas
    opcionales (color NULL) o un id numerico si se creo a mano. Por eso
    todos los campos son opcionales y tolerantes; la API devuelve las filas
    tal como estan guardadas, sin rechazar el lienzo completo por una fila.

    Atributos:
        id (str | int): Derivado de las coordenadas ("x10_y20") para los
            pixeles que guarda este backend. Es la clave primaria, por eso
            un pixel nuevo en la misma coordenada reemplaza al anterior.
        ip (str): Hash SHA-256 de la IP de quien lo coloco (nunca la IP
            cruda).
        created_at (str): Fecha ISO-8601 en UTC.

    extra="allow" conserva cualquier columna adicional que tenga la
    tabla remota.
    """
    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    x: int | float | None = None
    y: int | float | None = None
    color: str | None = None
    ip: str | None = None
    created_at: str | None = None


class LoadPixelsResponse(BaseModel):
    """
    Respuesta de GET /api/load-pixels.

    Atributos:
        pixels (list[Pixel]): Hasta LOAD_LIMIT pixeles del lienzo.
        wait_time (int): Segundos que el cliente debe esperar antes de
            poder guardar de nuevo (0 = puede guardar ya). En el JSON
            viaja como "waitTime", que es lo que espera el frontend.
    """
    model_config = ConfigDict(populate_by_name=True)

    pixels: list[Pixel]
    wait_time: int = Field(alias="waitTime", ge=0)


class HealthResponse(BaseModel):
    status: str
