"""
Modulo de validacion de envios de pixeles.

Pydantic ya verifica la FORMA de cada pixel (x e y enteros, color string).
Este servicio verifica la regla de negocio sobre el LOTE completo:
un envio debe traer entre 1 y MAX_PIXELS_PER_SAVE pixeles.

Por que no usar simplemente Field(min_length=1, max_length=10)?
---------------------------------------------------------------
Porque FastAPI responde 422 ante errores de schema, y el frontend del
lienzo espera un 400 con un mensaje legible. Validando aqui controlamos
el codigo HTTP y el texto.

Patron de diseno: Resultado como dataclass
------------------------------------------
En vez de lanzar excepciones, retornamos un ValidationResult con:
    - is_valid: booleano
    - error: mensaje de error (vacio si es valido)
El endpoint decide que hacer con el resultado.
"""

from dataclasses import dataclass

from app.config import settings


@dataclass
class ValidationResult:
    """
    Resultado de validar un lote de pixeles.

    Atributos:
        is_valid (bool): True si el lote se puede guardar.
        error (str): Mensaje para el cliente. Vacio si is_valid es True.
    """
    is_valid: bool
    error: str = ""


def invalid_submission_message() -> str:
    """Mensaje comun para todo envio rechazado por forma o tamano."""
    return (
        "Invalid pixel submission. You can submit between 1 and "
        f"{settings.MAX_PIXELS_PER_SAVE} pixels at a time."
    )


def validate_submission(pixels: list | None) -> ValidationResult:
    """
    Valida el tamano de un lote de pixeles.

    Parametros:
        pixels (list | None): Lista recibida en el body. None significa
            que el cliente no envio el campo "pixels".

    Retorna:
        ValidationResult: is_valid=False si la lista falta, esta vacia
            o supera el maximo permitido.
    """
    if not pixels or len(pixels) > settings.MAX_PIXELS_PER_SAVE:
        return ValidationResult(is_valid=False, error=invalid_submission_message())
    return ValidationResult(is_valid=True)
