"""
Utilidades para el RUT chileno (Rol Único Tributario).

Forma de almacenamiento: sin puntos y con guion, dígito verificador en
mayúscula (``12345678-5``). Forma de despliegue: con puntos de miles
(``12.345.678-5``).
"""
import re
from typing import Optional

RUT_PATTERN = re.compile(r"^\d{1,2}\.?\d{3}\.?\d{3}-[\dkK]$")


def normalize_rut(rut: Optional[str]) -> Optional[str]:
    """Quita puntos y espacios; conserva el guion y el dígito verificador."""
    if not rut:
        return rut
    return rut.strip().replace(".", "").replace(" ", "").upper()


def format_rut(rut: Optional[str]) -> Optional[str]:
    """Agrupa el cuerpo en bloques de 3 desde la derecha (el primero puede tener 1-3 dígitos)."""
    if not rut or not isinstance(rut, str):
        return rut

    clean = rut.replace(".", "")
    dash = clean.find("-")
    if dash == -1:
        return rut

    body, verifier = clean[:dash], clean[dash:].upper()
    groups = []
    while len(body) > 3:
        groups.insert(0, body[-3:])
        body = body[:-3]
    groups.insert(0, body)
    return ".".join(groups) + verifier


def compute_check_digit(body: str) -> str:
    """Módulo 11 con pesos 2..7 de derecha a izquierda."""
    total = 0
    multiplier = 2
    for digit in reversed(body):
        total += int(digit) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1

    expected = 11 - (total % 11)
    if expected == 11:
        return "0"
    if expected == 10:
        return "K"
    return str(expected)


def validate_rut(rut: Optional[str]) -> bool:
    if not rut or not isinstance(rut, str):
        return False

    clean = rut.replace(".", "").replace("-", "").strip().upper()
    if len(clean) < 2:
        return False

    body, verifier = clean[:-1], clean[-1]
    if not body.isdecimal() or not (verifier.isdecimal() or verifier == "K"):
        return False

    return compute_check_digit(body) == verifier
