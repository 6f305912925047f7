"""
compiler_process.py — Proceso compilador externo
================================================

Arranca el compilador como subproceso asyncio con stdin/stdout/stderr en
tubería y bombea su salida en fragmentos hacia callbacks. El encuadre en
líneas no se hace aquí: stdout se entrega en bruto.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)

ChunkHandler = Callable[[bytes], Awaitable[None]]
ExitHandler = Callable[[Optional[int]], Awaitable[None]]


class CompilerProcess:
    """
    Envoltorio del subproceso compilador.

    Uso:
        process = CompilerProcess(["mono", "fable/Fable.exe", "{...}"])
        await process.start(on_stdout, on_stderr, on_exit)
        await process.write("texto\\n")
    """

    def __init__(self, command: List[str], cwd: Optional[str] = None, chunk_size: int = 64 * 1024):
        self.command = list(command)
        self.cwd = cwd
        self.chunk_size = chunk_size
        self._process: Optional[asyncio.subprocess.Process] = None
        self._tasks: List[asyncio.Task] = []

    @property
    def returncode(self) -> Optional[int]:
        if self._process is None:
            return None
        return self._process.returncode

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def start(self, on_stdout: ChunkHandler, on_stderr: ChunkHandler, on_exit: ExitHandler) -> None:
        """
        Lanza el proceso y las tareas que leen su salida.

        `on_exit` se invoca una sola vez, después de consumir todo stdout.
        """
        self._process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=self.cwd,
        )
        logger.debug("Compilador iniciado (pid %s)", self._process.pid)

        stdout_task = asyncio.create_task(self._pump(self._process.stdout, on_stdout))
        stderr_task = asyncio.create_task(self._pump(self._process.stderr, on_stderr))
        wait_task = asyncio.create_task(self._wait(stdout_task, stderr_task, on_exit))
        self._tasks = [stdout_task, stderr_task, wait_task]

    async def _pump(self, stream: asyncio.StreamReader, handler: ChunkHandler) -> None:
        while True:
            chunk = await stream.read(self.chunk_size)
            if not chunk:
                return
            await handler(chunk)

    async def _wait(self, stdout_task: asyncio.Task, stderr_task: asyncio.Task, on_exit: ExitHandler) -> None:
        returncode = await self._process.wait()
        results = await asyncio.gather(stdout_task, stderr_task, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error("Lectura de la salida del compilador interrumpida: %r", result)
        await on_exit(returncode)

    async def write(self, line: str) -> None:
        """Escribe una línea (ya terminada en LF) en el stdin del compilador."""
        if not self.running or self._process.stdin is None:
            raise BrokenPipeError("El compilador no está en ejecución")
        self._process.stdin.write(line.encode("utf-8"))
        await self._process.stdin.drain()

    async def stop(self) -> None:
        """Termina el proceso si sigue vivo y cancela las tareas de lectura."""
        if self.running:
            self._process.terminate()
            try:
                await asyncio.wait_for(self._process.wait(), timeout=5)
            except asyncio.TimeoutError:
                self._process.kill()
                await self._process.wait()
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks = []
