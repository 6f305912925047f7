"""
declaration_dedup.py — Eliminación de declaradores `var` duplicados
===================================================================

Al resolver expresiones `do` y elevar sus variables, un mismo nombre puede
quedar declarado varias veces en la misma lista sin inicializador. Esta
pasada conserva un único enlace por nombre:

1. Recorre los declaradores de izquierda a derecha registrando los nombres.
2. Marca un declarador si su nombre ya se vio **y** no tiene inicializador.
3. Elimina los marcados desde el final hacia el principio.

Los patrones de desestructuración nunca se eliminan ni registran nombres.
"""

from typing import List, Set

from pydantic import ValidationError

from ...domain.ast_models import Node, Replacement, VariableDeclarator
from ...domain.errors import TransformError
from .base import TransformPass


def duplicated_declarators(declarations: List[Node]) -> List[int]:
    """
    Índices de los declaradores redundantes, en orden creciente.

    Raises:
        ValidationError: si algún declarador no tiene la forma esperada.
    """
    seen: Set[str] = set()
    duplicated: List[int] = []

    for i, raw in enumerate(declarations):
        name = VariableDeclarator.model_validate(raw).binding_name
        if name is None:
            continue
        if name in seen and raw.get("init") is None:
            duplicated.append(i)
        else:
            seen.add(name)
    return duplicated


class DeclarationDeduplicator(TransformPass):
    """Pasada `remove-duplicated-var-declarators`."""

    name = "remove-duplicated-var-declarators"
    node_types = frozenset({"VariableDeclaration"})

    def visit(self, node: Node, ctx) -> Replacement:
        declarations = node.get("declarations")
        if not isinstance(declarations, list):
            raise TransformError("VariableDeclaration sin lista de declaraciones", self.name)

        try:
            duplicated = duplicated_declarators(declarations)
        except ValidationError as e:
            raise TransformError(f"Failed to remove duplicated variables: {e}", self.name) from e
        if not duplicated:
            return None

        kept = list(declarations)
        for index in reversed(duplicated):
            del kept[index]
        return {**node, "declarations": kept}
