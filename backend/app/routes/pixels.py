"""
Modulo de rutas del lienzo de pixeles.

Este archivo define los dos endpoints que usa el frontend:

    1. GET  /api/load-pixels  -> Lienzo actual + cooldown del cliente
    2. POST /api/save-pixel   -> Coloca entre 1 y 10 pixeles

Responsabilidades de las rutas:
1. Identificar al cliente (IP -> hash SHA-256)
2. Validar el envio (tamano del lote)
3. Llamar al servicio (services/pixels.py)
4. Traducir los resultados y errores a codigos HTTP

Codigos de respuesta:
---------------------
- 200: Exito.
- 400: Envio invalido (0 pixeles, mas de 10, o body mal formado).
- 429: La IP esta en cooldown, o excedio el rate limit de SlowAPI.
- 500: Fallo el servicio remoto, o escribio menos filas de las enviadas.

Los errores viajan como texto plano (ver el handler en main.py), no como
JSON: el frontend solo muestra el mensaje.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse
from starlette.requests import Request

from app.config import settings
from app.limiter import get_client_address, limiter
from app.logger import get_logger
from app.models.schemas import LoadPixelsResponse, SavePixelsRequest
from app.services.pantry import PantryError
from app.services.pixels import CooldownActive, IncompleteWrite, hash_ip, pixel_service
from app.services.validator import validate_submission

logger = get_logger(__name__)

router = APIRouter()


@router.get("/api/load-pixels", response_model=LoadPixelsResponse)
@limiter.limit(settings.LOAD_RATE_LIMIT)
async def load_pixels(request: Request):
    """
    Retorna los pixeles del lienzo y el tiempo de espera del cliente.

    Parametros:
        request (Request): Peticion HTTP. De aqui sale la IP del cliente,
            y SlowAPI la necesita en la firma para aplicar el rate limit.

    Retorna:
        LoadPixelsResponse: {"pixels": [...], "waitTime": segundos}.

    Raises:
        HTTPException(500): Si falla la consulta al servicio remoto.
    """
    logger.info("Received request to /api/load-pixels")
    hashed_ip = hash_ip(get_client_address(request))

    try:
        pixels = await pixel_service.load_pixels()
        wait_time = await pixel_service.wait_time(hashed_ip)
    except PantryError:
        logger.exception("Error loading pixel data")
        raise HTTPException(status_code=500, detail="Error loading pixel data")

    return LoadPixelsResponse(pixels=pixels, wait_time=wait_time)


@router.post("/api/save-pixel", response_class=PlainTextResponse)
@limiter.limit(settings.SAVE_RATE_LIMIT)
async def save_pixel(request: Request, body: SavePixelsRequest):
    """
    Guarda un lote de pixeles del cliente.

    Flujo:
    1. Valida el tamano del lote (400 si es invalido).
    2. Delega al servicio, que revisa el cooldown y hace el upsert.
    3. Traduce CooldownActive -> 429, y fallos de escritura -> 500.

    Parametros:
        request (Request): Peticion HTTP (IP del cliente y SlowAPI).
        body (SavePixelsRequest): {"pixels": [{"x", "y", "color"}, ...]}.

    Retorna:
        str: "Pixels saved successfully" como texto plano.
    """
    hashed_ip = hash_ip(get_client_address(request))

    # --- Paso 1: Validar el lote ---
    result = validate_submission(body.pixels)
    if not result.is_valid:
        logger.warning(
            "Invalid pixel submission from %s: %d pixel(s)", hashed_ip, len(body.pixels or [])
        )
        raise HTTPException(status_code=400, detail=result.error)

    # --- Paso 2: Guardar ---
    try:
        await pixel_service.save_pixels(body.pixels, hashed_ip)
    except CooldownActive as e:
        logger.info("IP %s is in timeout (%ds left). Rejecting pixel save.", hashed_ip, e.wait_time)
        # Retry-After le dice al cliente cuantos segundos esperar.
        raise HTTPException(
            status_code=429,
            detail="You are in timeout. Please wait before placing more pixels.",
            headers={"Retry-After": str(e.wait_time)},
        )
    except IncompleteWrite as e:
        logger.error(str(e))
        raise HTTPException(status_code=500, detail="Error saving pixel data")
    except PantryError:
        logger.exception("Error saving pixel data")
        raise HTTPException(status_code=500, detail="Error saving pixel data")

    return "Pixels saved successfully"
