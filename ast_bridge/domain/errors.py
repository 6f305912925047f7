"""
errors.py — Jerarquía de excepciones del puente
===============================================

Cada excepción corresponde a una clase de severidad:

- Por mensaje: el error se convierte en el cuerpo de la respuesta y el
  servicio continúa (`TransformError`, `CodegenError`).
- Servicio completo: el proceso termina (`FatalTransformError`,
  `CompilerExitedError`, `StartupError`).
"""

from typing import Optional


class BridgeError(Exception):
    """Clase base de todos los errores del puente."""


class StartupError(BridgeError):
    """Configuración de arranque inválida (p. ej. falta `--code`)."""


class TemplateSyntaxError(BridgeError, ValueError):
    """La plantilla de una macro no es JavaScript válido para la gramática."""


class TransformError(BridgeError):
    """
    Fallo de una pasada de transformación.

    Aborta la ejecución del pipeline para el mensaje actual; el servicio
    sigue atendiendo mensajes posteriores.
    """

    def __init__(self, message: str, pass_name: Optional[str] = None):
        super().__init__(message)
        self.pass_name = pass_name

    def __str__(self) -> str:
        base = super().__str__()
        if self.pass_name:
            return f"[{self.pass_name}] {base}"
        return base


class FatalTransformError(TransformError):
    """
    Fallo que invalida el servicio completo.

    Se usa cuando una plantilla de macro no se puede analizar: la plantilla
    viene embebida en el compilador, no en los datos del llamador.
    """


class CodegenError(BridgeError):
    """El generador de código encontró un nodo que no sabe imprimir."""


class CompilerExitedError(BridgeError):
    """El proceso compilador terminó; no se aceptan más peticiones."""

    def __init__(self, returncode: Optional[int]):
        super().__init__(f"El compilador terminó con código {returncode}")
        self.returncode = returncode
