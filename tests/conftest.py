"""
conftest.py - Dobles y fixtures compartidos
===========================================

`FakeCompiler` reemplaza al subproceso: registra cada línea recibida y,
opcionalmente, responde a través de los mismos callbacks que usaría el
proceso real.
"""

import json
from typing import Awaitable, Callable, List, Optional

import pytest

from ast_bridge.config import Settings
from ast_bridge.services.bridge_service import BridgeService
from ast_bridge.services.passes import build_passes
from ast_bridge.services.pipeline import TransformPipeline


class FakeCompiler:
    """Doble del proceso compilador con la interfaz de `CompilerProcess`."""

    def __init__(self, responder: Optional[Callable[["FakeCompiler", str], Awaitable[None]]] = None):
        self.responder = responder
        self.lines: List[str] = []
        self.returncode: Optional[int] = None
        self.started = False
        self.stopped = False

    async def start(self, on_stdout, on_stderr, on_exit) -> None:
        self.on_stdout = on_stdout
        self.on_stderr = on_stderr
        self.on_exit = on_exit
        self.started = True

    async def write(self, line: str) -> None:
        if self.returncode is not None:
            raise BrokenPipeError("compiler gone")
        self.lines.append(line)
        if self.responder is not None:
            await self.responder(self, line)

    async def stop(self) -> None:
        self.stopped = True

    async def emit(self, document) -> None:
        await self.on_stdout(json.dumps(document).encode("utf-8") + b"\n")

    async def exit(self, code: int) -> None:
        self.returncode = code
        await self.on_exit(code)


# ============================================================================
# CONSTRUCTORES DE ÁRBOLES
# ============================================================================

def ident(name):
    return {"type": "Identifier", "name": name}


def num(value):
    return {"type": "NumericLiteral", "value": value}


def stmt(expression):
    return {"type": "ExpressionStatement", "expression": expression}


def program(*body):
    return {"type": "File", "program": {"type": "Program", "body": list(body), "directives": []}}


def macro(template, *args):
    return {"type": "StringLiteral", "value": template, "macro": True, "args": list(args)}


def var(kind="var", **declarations):
    return {
        "type": "VariableDeclaration",
        "kind": kind,
        "declarations": [
            {"type": "VariableDeclarator", "id": ident(name), "init": init}
            for name, init in declarations.items()
        ],
    }


def do_expression(*body):
    return {"type": "DoExpression", "body": {"type": "BlockStatement", "body": list(body), "directives": []}}


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def pipeline(settings) -> TransformPipeline:
    return TransformPipeline(build_passes(settings.transform_passes))


@pytest.fixture
def make_service(pipeline):
    def _make(responder=None, echo_request_ids=False, on_shutdown=None):
        compiler = FakeCompiler(responder)
        service = BridgeService(
            compiler,
            pipeline,
            echo_request_ids=echo_request_ids,
            on_shutdown=on_shutdown,
        )
        return compiler, service
    return _make
