"""Pasada `do-expressions`: `do { ... }` como expresión.

El cuerpo del DoExpression sustituye al nodo; el recorrido convierte esas
sentencias en una expresión (secuencia con variables `var` elevadas al
ámbito más cercano, o función invocada inmediatamente).
"""

from ...domain.ast_models import Node, Replacement
from ...domain.ast_utils import void_zero
from .base import TransformPass


class DoExpressionLowering(TransformPass):
    name = "do-expressions"
    node_types = frozenset({"DoExpression"})

    def visit(self, node: Node, ctx) -> Replacement:
        body = (node.get("body") or {}).get("body") or []
        if body:
            return list(body)
        return void_zero()
