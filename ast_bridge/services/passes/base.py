"""Contrato común de las pasadas de transformación."""

from typing import TYPE_CHECKING, FrozenSet

from ...domain.ast_models import Node, Replacement

if TYPE_CHECKING:
    from ..traversal import PassContext


class TransformPass:
    """
    Pasada AST → AST.

    Atributos:
        name (str): nombre con el que se registra y configura la pasada.
        node_types (FrozenSet[str]): tipos de nodo que la pasada visita.

    `visit` debe ser pura: no modifica `node` y devuelve None (sin cambios),
    un nodo de reemplazo o una lista de nodos (splice).
    """

    name: str = "pass"
    node_types: FrozenSet[str] = frozenset()

    def visit(self, node: Node, ctx: "PassContext") -> Replacement:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
