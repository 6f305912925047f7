"""
Punto de entrada de la aplicación HTTP.

Expone `create_app`, que construye la app FastAPI alrededor de un
`BridgeService` ya configurado. El servicio se arranca y se detiene con el
ciclo de vida (lifespan) de la app.

El arranque normal se hace desde la línea de comandos (`ast_bridge.cli`),
que construye el comando del compilador a partir de los argumentos.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from . import __version__
from .api.routes import router
from .config import Settings, get_settings
from .services.bridge_service import BridgeService


def create_app(service: BridgeService, settings: Optional[Settings] = None) -> FastAPI:
    """
    Crea y configura la aplicación FastAPI.

    - Sin documentación interactiva: toda ruta que no sea POST responde 405.
    - El servicio puente queda en `app.state.bridge`.

    Returns:
        Instancia configurada de `FastAPI`.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        try:
            yield
        finally:
            await service.stop()

    app = FastAPI(
        title="AST Bridge",
        description="Puente HTTP hacia un compilador que emite ASTs de Babel.",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.bridge = service
    app.state.settings = settings

    app.include_router(router)
    return app
