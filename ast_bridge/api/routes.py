"""Endpoints del puente.

Responsabilidad única: manejar HTTP requests/responses.

- `POST` en cualquier ruta: el cuerpo es el texto fuente; la respuesta es el
  código generado (o el texto del error) como `text/plain`.
- Cualquier otro método: 405 sin cuerpo.

Toda respuesta lleva `text/plain` y `Access-Control-Allow-Origin: *`.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse

from ..config import Settings
from ..domain.errors import BridgeError
from ..services.bridge_service import BridgeService

logger = logging.getLogger(__name__)

router = APIRouter()

RESPONSE_HEADERS = {"Access-Control-Allow-Origin": "*"}

OTHER_METHODS = ["GET", "HEAD", "PUT", "DELETE", "PATCH", "OPTIONS"]


def get_bridge(request: Request) -> BridgeService:
    return request.app.state.bridge


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _too_large(limit: int) -> Response:
    logger.warning("Petición rechazada: el cuerpo supera %d bytes", limit)
    return PlainTextResponse("", status_code=413, headers={**RESPONSE_HEADERS, "Connection": "close"})


async def _read_body(request: Request, limit: int):
    """Lee el cuerpo por trozos; devuelve None en cuanto supera `limit`."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        return None
    body = bytearray()
    async for chunk in request.stream():
        body += chunk
        if len(body) > limit:
            return None
    return bytes(body)


@router.post("/{path:path}")
async def compile_source(
    request: Request,
    bridge: BridgeService = Depends(get_bridge),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """Reenvía el texto al compilador y devuelve el resultado transformado.

    Returns:
        200 con el código o el mensaje de error del compilador/pipeline,
        413 si el cuerpo es demasiado grande,
        503 si el compilador ya no está disponible.
    """
    body = await _read_body(request, settings.MAX_BODY_BYTES)
    if body is None:
        return _too_large(settings.MAX_BODY_BYTES)

    try:
        result = await bridge.submit(body.decode("utf-8", errors="replace"))
    except BridgeError as e:
        return PlainTextResponse(str(e), status_code=503, headers=RESPONSE_HEADERS)

    return PlainTextResponse(result, headers=RESPONSE_HEADERS)


@router.api_route("/{path:path}", methods=OTHER_METHODS, include_in_schema=False)
async def method_not_allowed() -> Response:
    return PlainTextResponse("", status_code=405, headers=RESPONSE_HEADERS)
