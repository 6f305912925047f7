"""
framer.py — Reconstrucción de mensajes a partir del flujo de bytes
==================================================================

El compilador escribe en su salida estándar un documento JSON por línea.
La salida llega en trozos de tamaño arbitrario: una línea puede estar
repartida entre varios trozos y un trozo puede contener varias líneas.

`LineFramer` es un analizador incremental: acumula el fragmento pendiente y
devuelve, en orden, todas las líneas completas (con su salto de línea
final). La concatenación de los mensajes emitidos es igual a la entrada
salvo el último fragmento incompleto.

El búfer está acotado por `max_message_bytes`: si un mensaje lo supera se
descarta hasta su salto de línea y en su lugar se emite un documento de
error, de modo que cada petición sigue recibiendo exactamente un resultado.
"""

import json
import logging
from typing import List

logger = logging.getLogger(__name__)

LINE_FEED = b"\n"


class LineFramer:
    """
    Framer incremental de mensajes delimitados por salto de línea.

    Args:
        max_message_bytes: tamaño máximo de un mensaje (sin contar el
            salto de línea).
    """

    def __init__(self, max_message_bytes: int = 64 * 1024 * 1024):
        if max_message_bytes <= 0:
            raise ValueError("max_message_bytes debe ser positivo")
        self.max_message_bytes = max_message_bytes
        self._buffer = bytearray()
        self._discarding = False

    @property
    def pending(self) -> int:
        """Bytes acumulados de un mensaje todavía incompleto."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> List[bytes]:
        """
        Consume un trozo de la salida y devuelve los mensajes completos.

        Args:
            chunk: bytes leídos del proceso, en orden de llegada.

        Returns:
            Lista (posiblemente vacía) de mensajes terminados en `\\n`.
        """
        messages: List[bytes] = []
        start = 0
        while True:
            closing = chunk.find(LINE_FEED, start)
            if closing == -1:
                break
            if self._discarding:
                # Fin del mensaje sobredimensionado; ya se informó el error
                self._discarding = False
            elif len(self._buffer) + (closing - start) > self.max_message_bytes:
                messages.append(self._overflow(discard=False))
            else:
                self._buffer += chunk[start:closing + 1]
                messages.append(bytes(self._buffer))
            self._buffer.clear()
            start = closing + 1

        if not self._discarding:
            self._buffer += chunk[start:]
            if len(self._buffer) > self.max_message_bytes:
                messages.append(self._overflow(discard=True))
        return messages

    def _overflow(self, discard: bool) -> bytes:
        logger.warning(
            "Mensaje del compilador supera %d bytes; se descarta",
            self.max_message_bytes,
        )
        self._buffer.clear()
        self._discarding = discard
        error = {
            "type": "Error",
            "message": f"Protocol message exceeds {self.max_message_bytes} bytes",
        }
        return json.dumps(error).encode("utf-8") + LINE_FEED

    def reset(self) -> None:
        """Descarta cualquier fragmento pendiente."""
        self._buffer.clear()
        self._discarding = False
