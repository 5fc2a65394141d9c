"""
Punto de entrada principal de la aplicacion FastAPI.

Este es el archivo "raiz" del backend del lienzo de pixeles. Aqui se:
1. Crea la instancia de la aplicacion FastAPI.
2. Configura los middlewares (CORS, rate limiting).
3. Registra los handlers de errores (respuestas en texto plano).
4. Registra las rutas del lienzo y el health check.
5. Monta el frontend estatico, si existe.

Arquitectura de la aplicacion:
------------------------------
    main.py (punto de entrada)
        |
        +-- routes/         (Controladores: reciben HTTP requests)
        |    +-- pixels.py
        |
        +-- services/       (Logica de negocio y clientes externos)
        |    +-- pixels.py        (hash de IP, cooldown, upsert)
        |    +-- validator.py     (tamano del lote)
        |    +-- pantry.py        (cliente de la base de datos remota)
        |    +-- schema_check.py  (verificacion del esquema al arrancar)
        |
        +-- models/         (DTOs)
        |    +-- schemas.py
        |
        +-- config.py       (Configuracion centralizada)
        +-- limiter.py      (Rate limiting e IP del cliente)
        +-- logger.py       (Logging)

El flujo de una peticion HTTP es:
    Cliente -> CORS middleware -> Router -> Rate limiter -> Endpoint -> Servicio -> Base remota
"""

import os
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles

# El handler de SlowAPI genera respuestas HTTP 429 cuando un cliente
# excede el limite de peticiones.
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request

from app.config import settings
from app.limiter import limiter
from app.logger import get_logger
from app.models.schemas import HealthResponse
from app.routes.pixels import router as pixels_router
from app.services.pantry import pantry
from app.services.schema_check import verify_schema
from app.services.validator import invalid_submission_message

logger = get_logger(__name__)


# ---------- Ciclo de vida ----------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Codigo que corre al arrancar y al apagar el servidor.

    Al arrancar: verifica que la base remota tenga la tabla de pixeles.
    Al apagar: cierra las conexiones HTTP del cliente remoto.
    """
    if settings.API_KEY:
        await verify_schema(pantry)
    else:
        logger.warning("API_KEY is not set; calls to the pixel store will be rejected")
    yield
    await pantry.aclose()


# ---------- Creacion de la aplicacion ----------

app = FastAPI(title="Pixel Canvas", lifespan=lifespan)

# ---------- Configuracion del Rate Limiter ----------

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


# ---------- Errores como texto plano ----------

# El frontend muestra el cuerpo de los errores tal cual, asi que en vez
# del JSON {"detail": "..."} de FastAPI respondemos solo el mensaje.
# RateLimitExceeded hereda de HTTPException, pero Starlette elige el
# handler mas especifico, asi que SlowAPI conserva el suyo.
async def http_exception_as_text(request: Request, exc: StarletteHTTPException):
    return PlainTextResponse(
        str(exc.detail), status_code=exc.status_code, headers=getattr(exc, "headers", None)
    )


# Un body mal formado (sin "pixels", x no numerico, JSON invalido) es un
# envio invalido mas: 400 con el mismo mensaje, no el 422 de FastAPI.
async def validation_error_as_bad_request(request: Request, exc: RequestValidationError):
    logger.warning("Malformed request to %s: %s", request.url.path, exc.errors())
    return PlainTextResponse(invalid_submission_message(), status_code=400)


app.add_exception_handler(StarletteHTTPException, http_exception_as_text)
app.add_exception_handler(RequestValidationError, validation_error_as_bad_request)

# ---------- Configuracion de CORS ----------

# SEGURIDAD: NUNCA uses allow_origins=["*"] en produccion.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


# ---------- Health Check ----------

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """
    Endpoint de verificacion de salud del servidor.

    Retorna:
        HealthResponse: {"status": "ok"} si el servidor esta funcionando.
    """
    return HealthResponse(status="ok")


# ---------- Registro de rutas ----------

app.include_router(pixels_router)

# ---------- Frontend estatico ----------

def mount_website(target: FastAPI, directory: str) -> bool:
    """
    Monta la carpeta del frontend en "/" si existe.

    Debe llamarse AL FINAL: un mount en "/" atrapa cualquier ruta, y las
    rutas de la API registradas antes tienen prioridad. html=True sirve
    index.html en "/".

    Retorna:
        bool: True si se monto, False si la carpeta no existe.
    """
    if not os.path.isdir(directory):
        return False
    target.mount("/", StaticFiles(directory=directory, html=True), name="website")
    return True


mount_website(app, settings.STATIC_DIR)


def run() -> None:
    """Arranca el servidor con uvicorn en HOST:PORT."""
    logger.info("Server is running on http://localhost:%d", settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
