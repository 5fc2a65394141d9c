"""
Modulo de limitacion de tasa de peticiones (Rate Limiting) e identificacion
del cliente.

Hay DOS mecanismos de limitacion en este backend y conviene no confundirlos:

1. **SlowAPI (este modulo):** Protege al servidor de rafagas. Cuenta
   peticiones por IP en memoria (ej: "20/minute") y responde HTTP 429
   automaticamente, sin ejecutar el endpoint.

2. **Cooldown del lienzo (services/pixels.py):** Regla de negocio. Una IP
   no puede colocar pixeles nuevos hasta 5 minutos despues de su ultima
   escritura aceptada. Se calcula consultando la base de datos remota.

Ambos necesitan saber QUIEN hace la peticion, asi que la funcion
`get_client_address` vive aqui y la usan los dos.
"""

from slowapi import Limiter

# Request de Starlette: el objeto de peticion HTTP de FastAPI.
from starlette.requests import Request


def get_client_address(request: Request) -> str:
    """
    Extrae la direccion del cliente de una peticion.

    Detras de un reverse proxy (Nginx, un load balancer) la IP del socket
    es la del proxy, y la IP real llega en el header X-Forwarded-For.
    Ese header puede traer una cadena de direcciones:
        "203.0.113.7, 10.0.0.2"
    La primera es la del cliente original.

    Parametros:
        request (Request): Peticion HTTP entrante.

    Retorna:
        str: Direccion del cliente, o "unknown" si no se puede determinar.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# Instancia global del limitador. Todas las rutas comparten el mismo
# estado de conteo. Los contadores se guardan en memoria; con varios
# procesos se usaria storage_uri="redis://..." para compartirlos.
limiter = Limiter(key_func=get_client_address)
