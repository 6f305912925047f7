"""
test_routes.py - Capa HTTP con TestClient y un compilador simulado
==================================================================
"""

import json

import pytest
from fastapi.testclient import TestClient

from ast_bridge.main import create_app

from conftest import macro, num, program, stmt


async def echo_as_error(compiler, line):
    """Responde a cada línea con un documento de error que la repite."""
    await compiler.emit({"type": "Error", "message": line})


@pytest.fixture
def client_for(make_service, settings):
    def _client(responder):
        compiler, service = make_service(responder)
        return compiler, service, TestClient(create_app(service, settings))
    return _client


# ============================================================================
# MÉTODOS Y CABECERAS
# ============================================================================

@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE", "PATCH", "OPTIONS"])
def test_other_methods_are_rejected(client_for, method):
    compiler, _, client = client_for(echo_as_error)
    with client:
        response = client.request(method, "/any/path")

    assert response.status_code == 405
    assert response.content == b""
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["access-control-allow-origin"] == "*"
    assert compiler.lines == []


def test_post_returns_transformed_code(client_for):
    async def respond(compiler, line):
        await compiler.emit(program(stmt(macro("$0 + $1", num(2), num(3)))))

    _, _, client = client_for(respond)
    with client:
        response = client.post("/", content="let x = 1")

    assert response.status_code == 200
    assert response.text == "2 + 3;"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["access-control-allow-origin"] == "*"


def test_request_text_is_normalized_before_forwarding(client_for):
    compiler, _, client = client_for(echo_as_error)
    with client:
        response = client.post("/compile", content="a\tb\nc")

    assert compiler.lines == ["a    b\\nc\n"]
    assert response.text == "a    b\\nc\n"


def test_error_document_message_is_the_body(client_for):
    async def respond(compiler, line):
        await compiler.emit({"type": "Error", "message": "boom"})

    _, _, client = client_for(respond)
    with client:
        response = client.post("/", content="x")

    assert response.status_code == 200
    assert response.text == "boom"


def test_stderr_is_the_body(client_for):
    async def respond(compiler, line):
        await compiler.on_stderr(b"Unhandled exception: boom")

    _, _, client = client_for(respond)
    with client:
        response = client.post("/", content="x")

    assert response.text == "Unhandled exception: boom"


# ============================================================================
# LÍMITE DEL CUERPO
# ============================================================================

def test_body_at_limit_is_accepted(client_for, settings):
    compiler, _, client = client_for(echo_as_error)
    with client:
        response = client.post("/", content=b"a" * settings.MAX_BODY_BYTES)

    assert response.status_code == 200
    assert len(compiler.lines) == 1


def test_body_over_limit_is_rejected_without_forwarding(client_for, settings):
    compiler, _, client = client_for(echo_as_error)
    with client:
        response = client.post("/", content=b"a" * (settings.MAX_BODY_BYTES + 1))

    assert response.status_code == 413
    assert response.headers["connection"] == "close"
    assert response.headers["content-type"].startswith("text/plain")
    assert response.headers["access-control-allow-origin"] == "*"
    assert compiler.lines == []


# ============================================================================
# COMPILADOR TERMINADO
# ============================================================================

def test_compiler_exit_yields_service_unavailable(client_for):
    async def respond(compiler, line):
        await compiler.exit(2)

    compiler, service, client = client_for(respond)
    with client:
        first = client.post("/", content="x")
        second = client.post("/", content="y")

    assert first.status_code == 503
    assert second.status_code == 503
    assert service.exit_code == 2
    assert compiler.stopped is True


def test_lifespan_starts_and_stops_the_service(client_for):
    compiler, _, client = client_for(echo_as_error)
    with client:
        assert compiler.started is True
        response = client.post("/", content=json.dumps({"k": 1}))

    assert response.status_code == 200
    assert compiler.stopped is True
