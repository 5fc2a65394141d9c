"""
Servicio del lienzo de pixeles: hash de IPs, cooldown y guardado.

Este modulo contiene la logica de negocio del backend. Las rutas solo
traducen HTTP <-> llamadas a este servicio.

Reglas del lienzo:
------------------
1. Cada pixel se identifica por sus coordenadas: id = "x{x}_y{y}".
   Guardar en una coordenada ocupada REEMPLAZA el pixel (upsert), asi que
   nunca hay dos filas para el mismo (x, y).
2. Cada pixel guarda el hash SHA-256 de la IP de quien lo coloco. La IP
   cruda nunca se almacena.
3. Una IP no puede guardar pixeles nuevos hasta que pasen
   COOLDOWN_SECONDS (5 minutos) desde su ultima escritura aceptada.
   El cooldown no se guarda en ningun lado: se recalcula en cada peticion
   a partir de la fila mas reciente con ese hash.

Concurrencia:
-------------
"Consultar cooldown y luego escribir" son dos llamadas remotas. Dos
peticiones simultaneas de la misma IP podrian pasar ambas la consulta
antes de que cualquiera escriba. Para cerrar esa ventana, save_pixels
toma un asyncio.Lock por hash de IP durante toda la secuencia. Esto
serializa las peticiones dentro de UN proceso; con varios procesos la
ventana sigue abierta.
"""

import asyncio
import hashlib
import weakref
from datetime import datetime, timedelta, timezone

from app.config import settings
from app.logger import get_logger
from app.models.schemas import PixelInput
from app.services.pantry import PantryClient, PantryError, eq, pantry

logger = get_logger(__name__)


class CooldownActive(Exception):
    """La IP todavia esta en cooldown; `wait_time` son los segundos que faltan."""

    def __init__(self, wait_time: int):
        super().__init__(f"Caller must wait {wait_time} more seconds")
        self.wait_time = wait_time


class IncompleteWrite(Exception):
    """El servicio remoto reporto menos (o mas) filas escritas que las enviadas."""

    def __init__(self, expected: int, changes):
        super().__init__(f"Expected to insert {expected} records, but {changes} were inserted")
        self.expected = expected
        self.changes = changes


# ---------- Funciones puras ----------


def hash_ip(ip: str) -> str:
    """
    Hash SHA-256 (hexadecimal, 64 caracteres) de una direccion IP.

    Es deterministico: la misma IP siempre produce el mismo hash, que es
    lo que permite buscar "el ultimo pixel de esta IP" sin guardar la IP.
    """
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


def pixel_id(x: int, y: int) -> str:
    return f"x{x}_y{y}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    # "2026-10-19T10:00:00.000Z": el orden alfabetico coincide con el
    # orden temporal, asi ORDER BY created_at funciona sobre strings.
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Convierte un created_at guardado a datetime en UTC (naive = UTC)."""
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def compute_wait_time(last_placed: datetime | None, now: datetime, cooldown: timedelta) -> int:
    """
    Segundos enteros que faltan para que termine el cooldown.

    El cooldown esta activo solo si el ultimo pixel es ESTRICTAMENTE
    posterior a (now - cooldown). Justo en el limite ya se puede guardar.
    Los segundos se redondean hacia arriba: 0.2s restantes -> 1.

    Retorna:
        int: 0 si puede guardar, o los segundos de espera (>= 1).
    """
    if last_placed is None or last_placed <= now - cooldown:
        return 0
    remaining = (last_placed + cooldown) - now
    micros = remaining // timedelta(microseconds=1)
    # Division entera con techo, sin pasar por float.
    return -(-micros // 1_000_000)


def stamp_pixel(pixel: PixelInput, hashed_ip: str, now: datetime) -> dict:
    """Convierte un pixel del cliente en la fila que se guarda."""
    return {
        "id": pixel_id(pixel.x, pixel.y),
        "x": pixel.x,
        "y": pixel.y,
        "color": pixel.color,
        "ip": hashed_ip,
        "created_at": format_timestamp(now),
    }


# ---------- Servicio ----------


class PixelService:
    """
    Operaciones del lienzo sobre la base de datos remota.

    Atributos:
        db (PantryClient): Cliente del servicio remoto. Inyectable para tests.
        table (str): Tabla de pixeles.
        cooldown (timedelta): Espera minima entre escrituras de una IP.
        load_limit (int): Maximo de filas devueltas por load_pixels().
    """

    def __init__(
        self,
        db: PantryClient | None = None,
        table: str | None = None,
        cooldown_seconds: int | None = None,
        load_limit: int | None = None,
    ):
        self.db = db or pantry
        self.table = table or settings.PIXEL_TABLE
        if cooldown_seconds is None:
            cooldown_seconds = settings.COOLDOWN_SECONDS
        self.cooldown = timedelta(seconds=cooldown_seconds)
        self.load_limit = load_limit if load_limit is not None else settings.LOAD_LIMIT
        # Un lock por hash de IP. WeakValueDictionary borra la entrada
        # sola cuando ninguna peticion lo esta usando.
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def load_pixels(self) -> list[dict]:
        """Hasta load_limit pixeles, sin orden garantizado."""
        return await self.db.select("*").from_(self.table).limit(self.load_limit)

    async def last_placement(self, hashed_ip: str) -> datetime | None:
        """Fecha del pixel mas reciente colocado por esta IP, o None."""
        row = await (
            self.db.select("*")
            .from_(self.table)
            .where(eq("ip", hashed_ip))
            .order_by("created_at", "DESC")
            .limit(1)
            .first()
        )
        if not row or not row.get("created_at"):
            return None
        try:
            return parse_timestamp(row["created_at"])
        except (AttributeError, TypeError, ValueError) as e:
            raise PantryError(f"Malformed created_at in stored pixel: {row['created_at']!r}") from e

    async def wait_time(self, hashed_ip: str, now: datetime | None = None) -> int:
        """Segundos que esta IP debe esperar antes de guardar (0 = ya puede)."""
        now = now or utcnow()
        return compute_wait_time(await self.last_placement(hashed_ip), now, self.cooldown)

    def _lock_for(self, hashed_ip: str) -> asyncio.Lock:
        lock = self._locks.get(hashed_ip)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[hashed_ip] = lock
        return lock

    async def save_pixels(
        self, pixels: list[PixelInput], hashed_ip: str, now: datetime | None = None
    ) -> int:
        """
        Guarda un lote de pixeles validado, respetando el cooldown.

        Flujo:
        1. Toma el lock de esta IP.
        2. Si la IP esta en cooldown, lanza CooldownActive.
        3. Estampa cada pixel con id, hash de IP y fecha.
        4. Escribe todo en UN solo "INSERT OR REPLACE".
        5. Verifica que "changes" coincida con el tamano del lote.

        Retorna:
            int: Cantidad de filas escritas.

        Raises:
            CooldownActive: Si la IP debe esperar.
            IncompleteWrite: Si el conteo de cambios no coincide.
            PantryError: Si falla el servicio remoto.
        """
        lock = self._lock_for(hashed_ip)
        async with lock:
            now = now or utcnow()
            wait = await self.wait_time(hashed_ip, now)
            if wait > 0:
                raise CooldownActive(wait)

            rows = [stamp_pixel(pixel, hashed_ip, now) for pixel in pixels]
            result = await self.db.insert(self.table).or_replace().values(rows)
            changes = result.get("changes") if isinstance(result, dict) else None
            if changes != len(rows):
                raise IncompleteWrite(expected=len(rows), changes=changes)

            logger.info("Saved %d pixel(s) for %s", changes, hashed_ip)
            return changes


# Instancia global del servicio (Singleton implicito).
pixel_service = PixelService()
