"""
Validadores específicos para República Dominicana
"""
import re
from typing import Optional


NCF_PATTERN = re.compile(r'^[A-Z]\d{2}\d{8}$')


def validate_rnc(rnc: Optional[str]) -> bool:
    """
    Valida RNC (Registro Nacional del Contribuyente).
    - 9 dígitos (empresas) u 11 dígitos (personas físicas)
    - Se ignoran guiones y espacios
    """
    if not rnc:
        return False

    # Limpiar guiones y espacios
    cleaned = re.sub(r'[\s\-]', '', rnc)

    if not cleaned.isdigit():
        return False

    return len(cleaned) in (9, 11)


def validate_cedula(cedula: Optional[str]) -> bool:
    """
    Valida cédula dominicana.
    - Formato XXX-XXXXXXX-X (11 dígitos en total)
    """
    if not cedula:
        return False

    cleaned = re.sub(r'[\s\-]', '', cedula)

    return cleaned.isdigit() and len(cleaned) == 11


def validate_ncf(ncf: Optional[str]) -> bool:
    """
    Valida NCF (Número de Comprobante Fiscal).
    Formato: una letra de serie, dos dígitos de tipo y ocho de secuencia.
    Ejemplo: B0100000001
    """
    if not ncf:
        return False
    return NCF_PATTERN.match(ncf) is not None
