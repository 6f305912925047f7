"""Pasada `shorthand-properties`: propiedades y métodos abreviados a ES5."""

from ...domain.ast_models import Node, Replacement
from .base import TransformPass


class ShorthandPropertyLowering(TransformPass):
    name = "shorthand-properties"
    node_types = frozenset({"ObjectProperty", "ObjectMethod"})

    def visit(self, node: Node, ctx) -> Replacement:
        if node["type"] == "ObjectProperty":
            if not node.get("shorthand"):
                return None
            return {**node, "shorthand": False}

        # { f() {} } → { f: function () {} }
        if node.get("kind", "method") != "method":
            return None  # getters y setters no tienen forma abreviada
        function = {
            "type": "FunctionExpression",
            "id": None,
            "params": node.get("params") or [],
            "body": node["body"],
            "generator": node.get("generator", False),
            "async": node.get("async", False),
        }
        return {
            "type": "ObjectProperty",
            "key": node["key"],
            "value": function,
            "computed": node.get("computed", False),
            "shorthand": False,
        }
