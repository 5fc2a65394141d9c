"""
Modulo de configuracion centralizada de la aplicacion.

Este archivo define TODAS las constantes y configuraciones que el backend
del lienzo de pixeles necesita para funcionar. Centralizar la configuracion
en un solo lugar tiene varias ventajas:

1. **Principio DRY (Don't Repeat Yourself):** Si el nombre de la tabla de
   pixeles estuviera hardcodeado en varios archivos y necesitaras cambiarlo,
   tendrias que modificar todos. Con este modulo, solo cambias uno.

2. **Configuracion por entorno:** Usamos variables de entorno (os.getenv)
   para que la misma aplicacion corra en desarrollo y produccion con
   distintos valores SIN cambiar el codigo fuente.

3. **Seguridad:** La API key del servicio de base de datos remoto NUNCA
   debe estar en el codigo. Se inyecta via variable de entorno o via un
   archivo .env que no se sube al repositorio.

Patron de diseno utilizado: **Singleton implicito**
La instancia `settings` se crea UNA sola vez al importar este modulo.
"""

import os

# python-dotenv lee un archivo .env (si existe) y copia sus pares
# CLAVE=valor a os.environ. Asi en desarrollo basta con crear un .env
# con API_KEY=... en vez de exportar variables a mano.
# load_dotenv() NO sobreescribe variables que ya existan en el entorno.
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """
    Clase que encapsula toda la configuracion de la aplicacion.

    Los valores se leen del entorno al momento de crear la instancia,
    asi en tests podemos crear un Settings() nuevo despues de cambiar
    variables de entorno con monkeypatch.
    """

    def __init__(self):
        # ---------- Servicio de base de datos remoto ----------

        # Credencial del servicio remoto. Vacia significa "sin configurar":
        # la app arranca igual, pero la verificacion de esquema se omite.
        self.API_KEY: str = os.getenv("API_KEY", "")

        # URL base de la API remota. Todas las consultas SQL y la
        # introspeccion del esquema se hacen contra este host.
        self.PANTRY_BASE_URL: str = os.getenv("PANTRY_BASE_URL", "https://datapantry.org")

        # Timeout (segundos) de cada llamada HTTP al servicio remoto.
        self.PANTRY_TIMEOUT: float = float(os.getenv("PANTRY_TIMEOUT", "10"))

        # Nombre de la tabla donde viven los pixeles.
        self.PIXEL_TABLE: str = os.getenv("PIXEL_TABLE", "pixels")

        # ---------- Servidor ----------

        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "3002"))

        # Origenes permitidos para CORS, separados por coma.
        self.CORS_ORIGINS: list[str] = os.getenv(
            "CORS_ORIGINS", "http://localhost:3002"
        ).split(",")

        # Carpeta con el frontend estatico (index.html, js, css).
        # Si no existe, simplemente no se monta.
        self.STATIC_DIR: str = os.getenv("STATIC_DIR", "website")

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # ---------- Reglas del lienzo ----------

        # Tiempo de espera (cooldown) entre escrituras aceptadas de una
        # misma IP: 5 minutos = 300 segundos.
        self.COOLDOWN_SECONDS: int = int(os.getenv("COOLDOWN_SECONDS", "300"))

        # Cantidad maxima de pixeles por peticion de guardado.
        self.MAX_PIXELS_PER_SAVE: int = int(os.getenv("MAX_PIXELS_PER_SAVE", "10"))

        # Cantidad maxima de filas que devuelve /api/load-pixels.
        self.LOAD_LIMIT: int = int(os.getenv("LOAD_LIMIT", "1000"))

        # ---------- Rate limiting (SlowAPI) ----------

        # Formato de la libreria "limits": "<cantidad>/<periodo>".
        # Esto es independiente del cooldown de 5 minutos: solo protege
        # al servidor de rafagas de peticiones.
        self.LOAD_RATE_LIMIT: str = os.getenv("LOAD_RATE_LIMIT", "60/minute")
        self.SAVE_RATE_LIMIT: str = os.getenv("SAVE_RATE_LIMIT", "20/minute")


# Instancia unica de configuracion (patron Singleton implicito).
settings = Settings()
