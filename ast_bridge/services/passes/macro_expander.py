"""
macro_expander.py — Expansión de literales marcados como macro
==============================================================

Un `StringLiteral` con `macro: true` contiene una plantilla de código con
marcadores posicionales `$0 … $n`. La plantilla se parsea (con cache) y cada
identificador `$i` se sustituye por una copia del i-ésimo argumento del
literal. El literal se reemplaza por la sentencia resultante o, si la
plantilla tiene varias sentencias de nivel superior, por la secuencia.

Una plantilla que no se puede parsear es un fallo fatal del servicio: la
plantilla viene embebida en el compilador, no en los datos del llamador.
"""

import copy
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ...domain.ast_models import MacroLiteral, Node, Replacement
from ...domain.ast_utils import is_node, is_type
from ...domain.errors import FatalTransformError, TemplateSyntaxError, TransformError
from ..template_builder import build_template
from .base import TransformPass

logger = logging.getLogger(__name__)


def substitute_placeholders(node: Any, bindings: Dict[str, Node]) -> Any:
    """
    Copia `node` sustituyendo los identificadores ligados en `bindings`.

    Cada aparición recibe su propia copia del argumento, de modo que el
    árbol resultante no comparte nodos.
    """
    if isinstance(node, list):
        return [substitute_placeholders(item, bindings) for item in node]
    if not isinstance(node, dict):
        return node
    if is_type(node, "Identifier") and node.get("name") in bindings:
        return copy.deepcopy(bindings[node["name"]])
    return {key: substitute_placeholders(value, bindings) for key, value in node.items()}


class MacroExpander(TransformPass):
    """Pasada `macro-expressions`."""

    name = "macro-expressions"
    node_types = frozenset({"StringLiteral"})

    def visit(self, node: Node, ctx) -> Replacement:
        if not node.get("macro"):
            return None

        try:
            macro = MacroLiteral.model_validate(node)
        except ValidationError as e:
            raise TransformError(f"Macro mal formada: {e}", self.name) from e
        if not all(is_node(arg) for arg in macro.args):
            raise TransformError("Los argumentos de la macro deben ser nodos", self.name)

        try:
            template = build_template(macro.value)
        except TemplateSyntaxError as e:
            logger.critical("Failed to parse macro: %s", macro.value)
            raise FatalTransformError(f"Failed to parse macro: {macro.value}", self.name) from e

        expanded: List[Node] = substitute_placeholders(list(template), macro.bindings())
        if len(expanded) == 1:
            return expanded[0]
        return expanded
