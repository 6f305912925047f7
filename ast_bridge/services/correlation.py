"""
correlation.py — Registro de respuestas pendientes
==================================================

Cada petición HTTP en vuelo se registra con un id propio y un `Future`.
El compilador procesa las líneas en serie, así que los resultados se
entregan a la petición pendiente más antigua (FIFO). Si el documento de
resultado trae un `id` que coincide con una petición registrada, se entrega
a esa petición.

Una petición cuyo llamador se desconectó conserva su turno: el resultado
que le corresponde se consume y se descarta, sin desplazar a las demás.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class PendingResponses:
    """Mapa ordenado id de petición → Future del cuerpo de respuesta."""

    def __init__(self):
        self._pending: "OrderedDict[str, asyncio.Future]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def register(self) -> Tuple[str, asyncio.Future]:
        """
        Registra una nueva petición en vuelo.

        Returns:
            (request_id, future); el future se resuelve con el texto de
            la respuesta.
        """
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        return request_id, future

    def discard(self, request_id: str) -> None:
        """Elimina una petición que nunca llegó a enviarse al compilador."""
        future = self._pending.pop(request_id, None)
        if future is not None and not future.done():
            future.cancel()

    def resolve(self, body: str, request_id: Optional[str] = None) -> bool:
        """
        Entrega un resultado.

        Args:
            body: texto de la respuesta.
            request_id: id devuelto por el compilador, si lo hay.

        Returns:
            True si había una petición que consumiera el resultado.
        """
        if request_id is not None and request_id in self._pending:
            future = self._pending.pop(request_id)
        elif self._pending:
            _, future = self._pending.popitem(last=False)
        else:
            logger.warning("Resultado sin petición pendiente; se descarta")
            return False

        if future.done():
            logger.info("El llamador ya no espera este resultado; se descarta")
        else:
            future.set_result(body)
        return True

    def fail_all(self, exc: BaseException) -> None:
        """Falla todas las peticiones pendientes con `exc`."""
        while self._pending:
            _, future = self._pending.popitem(last=False)
            if not future.done():
                future.set_exception(exc)
