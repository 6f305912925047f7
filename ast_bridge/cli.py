"""
Línea de comandos del puente.

Usage:
    ast-bridge --code src/main.fsx --outDir out [--watch] [--clave valor ...]

Los argumentos `--clave valor` forman el documento `CompilerOptions`, que se
pasa como JSON en el último argumento del compilador.
"""

import logging
import sys
from typing import List, Optional, Sequence

import uvicorn
from pydantic import ValidationError

from .config import Settings, get_settings
from .domain.errors import StartupError
from .infrastructure.compiler_process import CompilerProcess
from .main import create_app
from .schemas import CompilerOptions
from .services.bridge_service import BridgeService
from .services.framer import LineFramer
from .services.passes import build_passes
from .services.pipeline import TransformPipeline

logger = logging.getLogger("ast_bridge")


def parse_cli_options(argv: Sequence[str]) -> CompilerOptions:
    """
    Convierte `--clave valor` en `CompilerOptions`.

    `--watch` no lleva valor. Una clave sin valor al final queda como None.

    Raises:
        StartupError: si falta `--code` o las opciones no son válidas.
    """
    values = {}
    args = list(argv)
    i = 0
    while i < len(args):
        key = args[i][2:] if args[i].startswith("--") else args[i]
        if key == "watch":
            values[key] = True
            i += 1
            continue
        values[key] = args[i + 1] if i + 1 < len(args) else None
        i += 2

    try:
        options = CompilerOptions.model_validate(values)
    except ValidationError as e:
        raise StartupError(f"Opciones inválidas: {e}") from e

    if not isinstance(options.code, str):
        raise StartupError("No correct --code argument provided")
    return options


def build_compiler_command(settings: Settings, options: CompilerOptions,
                           platform: Optional[str] = None) -> List[str]:
    """Comando completo del compilador; en Windows se lanza con `cmd /C`."""
    platform = platform or sys.platform
    if platform == "win32":
        head = ["cmd", "/C"]
    else:
        head = [settings.COMPILER_COMMAND]
    return head + settings.compiler_args + [options.to_argument()]


def build_service(settings: Settings, command: List[str]) -> BridgeService:
    passes = build_passes(settings.transform_passes)
    compiler = CompilerProcess(command, cwd=settings.COMPILER_CWD, chunk_size=settings.READ_CHUNK_SIZE)
    return BridgeService(
        compiler,
        TransformPipeline(passes),
        framer=LineFramer(settings.MAX_MESSAGE_BYTES),
        echo_request_ids=settings.ECHO_REQUEST_IDS,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        options = parse_cli_options(sys.argv[1:] if argv is None else argv)
        command = build_compiler_command(settings, options)
        service = build_service(settings, command)
    except StartupError as e:
        print(f"ARG ERROR: {e}")
        sys.exit(1)

    logger.info(" ".join(command))

    app = create_app(service, settings)
    server = uvicorn.Server(uvicorn.Config(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    ))

    def request_exit() -> None:
        server.should_exit = True

    service.on_shutdown = request_exit
    server.run()
    if service.exit_code is None and not server.started:
        # el arranque falló antes de lanzar el compilador
        sys.exit(1)
    sys.exit(service.exit_code or 0)


if __name__ == "__main__":
    main()
