"""
Configuracion centralizada de logging.

Este modulo define COMO se escriben los mensajes de log de todo el
backend. Ningun otro archivo configura handlers ni formatos; todos piden
su logger asi:

    from app.logger import get_logger
    logger = get_logger(__name__)

Por que usar logging en vez de print()?
---------------------------------------
1. **Niveles:** Cada mensaje tiene un nivel (DEBUG, INFO, WARNING, ERROR).
   Con LOG_LEVEL=WARNING en produccion se ocultan los mensajes de rutina
   sin tocar el codigo.
2. **Contexto:** El formato agrega fecha, nivel y el nombre del modulo
   que escribio el mensaje, util para saber de donde viene un error.
3. **Tracebacks:** logger.exception() incluye el traceback completo de la
   excepcion que se esta manejando (ej: un fallo del servicio remoto).

Formato de cada linea:
    2026-10-19 10:00:00 | WARNING  | app.routes.pixels | IP ... is in timeout

Privacidad:
-----------
Los mensajes del lienzo solo incluyen el HASH de la IP del cliente,
nunca la IP cruda (ver services/pixels.py::hash_ip).

Patron de diseno: Inicializacion perezosa (lazy)
------------------------------------------------
La configuracion del logger raiz se hace en la PRIMERA llamada a
get_logger(), y una sola vez (flag _initialized). Asi importar este
modulo no tiene efectos secundarios, y no se agregan handlers
duplicados (que imprimirian cada mensaje dos veces).
"""

import logging
import sys

from app.config import settings

# asctime = fecha, levelname = nivel (relleno a 8 caracteres para que
# las columnas queden alineadas), name = modulo que escribe.
_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_initialized = False


def _init_logging() -> None:
    """Configura el logger raiz una sola vez."""
    global _initialized
    if _initialized:
        return
    # stdout en vez de stderr: Docker y la mayoria de plataformas de
    # despliegue recogen stdout como log del contenedor.
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT, _DATE_FORMAT))
    root = logging.getLogger()
    # setLevel acepta el nombre del nivel como string ("INFO", "DEBUG").
    root.setLevel(settings.LOG_LEVEL.upper())
    root.addHandler(handler)
    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """
    Obtiene un logger con nombre.

    Parametros:
        name (str): Normalmente el `__name__` del modulo que llama.
            Los loggers forman una jerarquia por puntos: "app.routes.pixels"
            hereda la configuracion del logger raiz.

    Retorna:
        logging.Logger: Logger listo para usar.
    """
    _init_logging()
    return logging.getLogger(name)
