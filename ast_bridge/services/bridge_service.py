"""
bridge_service.py — Servicio puente entre HTTP y el compilador
==============================================================

Responsabilidad: reenviar cada petición al compilador como una línea,
encuadrar su salida en mensajes, transformar cada mensaje y entregar el
resultado a la petición que corresponde.

Flujo por mensaje:
    stdout → LineFramer → json.loads → TransformPipeline.run → PendingResponses
"""

import json
import logging
from typing import Callable, Optional

from ..domain.errors import (
    CodegenError, CompilerExitedError, FatalTransformError, StartupError, TransformError,
)
from ..infrastructure.compiler_process import CompilerProcess
from .correlation import PendingResponses
from .framer import LineFramer
from .pipeline import TransformPipeline

logger = logging.getLogger(__name__)


def normalize_request(text: str, request_id: Optional[str] = None) -> str:
    """
    Convierte el cuerpo de una petición en una única línea del protocolo.

    Cada tabulador pasa a cuatro espacios y cada salto de línea a los dos
    caracteres `\\n`; después se añade un único salto de línea real. Con
    `request_id` la línea queda como `<id>\\t<texto>`.
    """
    line = text.replace("\t", "    ").replace("\n", "\\n")
    if request_id is not None:
        line = f"{request_id}\t{line}"
    return line + "\n"


class BridgeService:
    """
    Orquesta el proceso compilador, el framer, el pipeline y el registro de
    peticiones pendientes.

    Args:
        compiler: proceso compilador (o un doble con la misma interfaz).
        pipeline: pipeline de pasadas y generación de código.
        framer: framer de la salida; por defecto uno con el límite estándar.
        echo_request_ids: prefija cada línea enviada con el id de petición.
        on_shutdown: callback invocado cuando el servicio debe terminar.
    """

    def __init__(
        self,
        compiler: CompilerProcess,
        pipeline: TransformPipeline,
        framer: Optional[LineFramer] = None,
        echo_request_ids: bool = False,
        on_shutdown: Optional[Callable[[], None]] = None,
    ):
        self.compiler = compiler
        self.pipeline = pipeline
        self.framer = framer or LineFramer()
        self.echo_request_ids = echo_request_ids
        self.on_shutdown = on_shutdown
        self.pending = PendingResponses()
        self.exit_code: Optional[int] = None
        self._closed = False
        self._stopping = False

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------------
    # CICLO DE VIDA
    # ------------------------------------------------------------------------

    async def start(self) -> None:
        """
        Lanza el compilador.

        Raises:
            StartupError: si el proceso no puede crearse; el servicio queda
                cerrado con código de salida 1.
        """
        try:
            await self.compiler.start(self._on_stdout, self._on_stderr, self._on_exit)
        except OSError as e:
            logger.critical("No se pudo lanzar el compilador: %s", e)
            self.exit_code = 1
            self._closed = True
            raise StartupError(f"No se pudo lanzar el compilador: {e}") from e

    async def stop(self) -> None:
        self._stopping = True
        self._closed = True
        await self.compiler.stop()
        self.pending.fail_all(CompilerExitedError(self.compiler.returncode))

    def _shutdown(self, exit_code: Optional[int], exc: BaseException) -> None:
        self.exit_code = exit_code
        self._closed = True
        self.pending.fail_all(exc)
        if self.on_shutdown is not None:
            self.on_shutdown()

    # ------------------------------------------------------------------------
    # PETICIONES
    # ------------------------------------------------------------------------

    async def submit(self, text: str) -> str:
        """
        Envía `text` al compilador y espera el resultado que le corresponde.

        Raises:
            CompilerExitedError: si el compilador ya terminó o termina antes
                de producir el resultado.
        """
        if self._closed:
            raise CompilerExitedError(self.exit_code)

        request_id, future = self.pending.register()
        line = normalize_request(text, request_id if self.echo_request_ids else None)
        try:
            await self.compiler.write(line)
        except (BrokenPipeError, ConnectionResetError) as e:
            self.pending.discard(request_id)
            raise CompilerExitedError(self.compiler.returncode) from e
        return await future

    # ------------------------------------------------------------------------
    # SALIDA DEL COMPILADOR
    # ------------------------------------------------------------------------

    async def _on_stdout(self, chunk: bytes) -> None:
        for message in self.framer.feed(chunk):
            if self._closed:
                return
            self._dispatch(message)

    def _dispatch(self, message: bytes) -> None:
        text = message.decode("utf-8", errors="replace").strip()
        if not text:
            return

        try:
            document = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as e:
            logger.warning("Mensaje del compilador no es JSON válido: %s", e)
            self.pending.resolve(str(e))
            return

        request_id = None
        if isinstance(document, dict) and isinstance(document.get("id"), str) \
                and document["id"] in self.pending:
            request_id = document["id"]

        try:
            body = self.pipeline.run(document)
        except FatalTransformError as e:
            logger.critical("Error fatal en el pipeline: %s", e)
            self.pending.resolve(str(e), request_id)
            self._shutdown(1, e)
            return
        except (TransformError, CodegenError) as e:
            logger.error("Error transformando el mensaje: %s", e)
            body = str(e)
        except Exception as e:
            # la lectura de stdout no debe detenerse por un mensaje
            logger.exception("Error inesperado procesando el mensaje")
            body = f"{type(e).__name__}: {e}"

        self.pending.resolve(body, request_id)

    async def _on_stderr(self, chunk: bytes) -> None:
        text = chunk.decode("utf-8", errors="replace")
        logger.error("Compilador (stderr): %s", text.rstrip())
        if not self._closed:
            self.pending.resolve(text)

    async def _on_exit(self, returncode: Optional[int]) -> None:
        if self._stopping:
            return
        logger.info("Finished with code %s", returncode)
        if self.framer.pending:
            logger.warning("Se descartan %d bytes sin salto de línea final", self.framer.pending)
            self.framer.reset()
        self._shutdown(returncode, CompilerExitedError(returncode))
