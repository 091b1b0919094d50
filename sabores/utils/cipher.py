"""
Ofuscación reversible heredada del sistema anterior (base64 invertido).

NO es cifrado. Solo se conserva para validar las credenciales migradas
y para el endpoint de depuración /api/debug/encrypt.
"""
import base64


def obfuscate(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")[::-1]


def deobfuscate(value: str) -> str:
    return base64.b64decode(value[::-1].encode("ascii")).decode("utf-8")
