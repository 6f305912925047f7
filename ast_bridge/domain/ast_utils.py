from typing import Any, Iterator, List, Optional, Sequence, Tuple

from .ast_models import Node


# Metadatos posicionales y comentarios: nunca se recorren
NON_CHILD_KEYS = frozenset({
    "type", "loc", "start", "end", "range", "extra",
    "leadingComments", "trailingComments", "innerComments",
})

_DECLARATION_TYPES = frozenset({
    "VariableDeclaration", "FunctionDeclaration", "ClassDeclaration",
    "ImportDeclaration", "ExportNamedDeclaration", "ExportDefaultDeclaration",
    "ExportAllDeclaration",
})


def is_node(value: Any) -> bool:
    return isinstance(value, dict) and isinstance(value.get("type"), str)


def is_type(node: Any, *types: str) -> bool:
    return is_node(node) and node["type"] in types


def is_statement(node: Any) -> bool:
    if not is_node(node):
        return False
    kind = node["type"]
    return kind.endswith("Statement") or kind in _DECLARATION_TYPES


def is_expression(node: Any) -> bool:
    if not is_node(node) or is_statement(node):
        return False
    kind = node["type"]
    return kind.endswith("Expression") or kind.endswith("Literal") or kind == "Identifier"


def child_items(node: Node) -> Iterator[Tuple[str, Any]]:
    """Pares (campo, valor) de los campos que contienen nodos."""
    for key, value in node.items():
        if key in NON_CHILD_KEYS:
            continue
        if is_node(value):
            yield key, value
        elif isinstance(value, list) and any(is_node(v) for v in value):
            yield key, value


def binding_identifiers(pattern: Optional[Node]) -> List[Node]:
    """Identificadores ligados por un patrón de declaración."""
    if not is_node(pattern):
        return []
    kind = pattern["type"]
    if kind == "Identifier":
        return [pattern]
    if kind == "AssignmentPattern":
        return binding_identifiers(pattern.get("left"))
    if kind == "RestElement":
        return binding_identifiers(pattern.get("argument"))
    if kind == "ArrayPattern":
        out: List[Node] = []
        for elem in pattern.get("elements") or []:
            out.extend(binding_identifiers(elem))
        return out
    if kind == "ObjectPattern":
        out = []
        for prop in pattern.get("properties") or []:
            if is_type(prop, "RestElement", "RestProperty"):
                out.extend(binding_identifiers(prop.get("argument")))
            elif is_node(prop):
                out.extend(binding_identifiers(prop.get("value")))
        return out
    return []


# ---------------------------------------------------------------------------
# Constructores de nodos
# ---------------------------------------------------------------------------

def identifier(name: str) -> Node:
    return {"type": "Identifier", "name": name}


def numeric_literal(value) -> Node:
    return {"type": "NumericLiteral", "value": value}


def void_zero() -> Node:
    return {"type": "UnaryExpression", "operator": "void", "prefix": True,
            "argument": numeric_literal(0)}


def expression_statement(expression: Node) -> Node:
    return {"type": "ExpressionStatement", "expression": expression}


def block_statement(body: Sequence[Node]) -> Node:
    return {"type": "BlockStatement", "body": list(body), "directives": []}


def sequence_expression(expressions: Sequence[Node]) -> Node:
    return {"type": "SequenceExpression", "expressions": list(expressions)}


def assignment_expression(left: Node, right: Node, operator: str = "=") -> Node:
    return {"type": "AssignmentExpression", "operator": operator, "left": left, "right": right}


def conditional_expression(test: Node, consequent: Node, alternate: Node) -> Node:
    return {"type": "ConditionalExpression", "test": test,
            "consequent": consequent, "alternate": alternate}


def return_statement(argument: Optional[Node]) -> Node:
    return {"type": "ReturnStatement", "argument": argument}


def call_expression(callee: Node, arguments: Sequence[Node] = ()) -> Node:
    return {"type": "CallExpression", "callee": callee, "arguments": list(arguments)}


def function_expression(body: Node, params: Sequence[Node] = (), name: Optional[str] = None) -> Node:
    return {
        "type": "FunctionExpression",
        "id": identifier(name) if name else None,
        "params": list(params),
        "body": body,
        "generator": False,
        "async": False,
    }


def variable_declaration(ids: Sequence[Node], kind: str = "var") -> Node:
    return {
        "type": "VariableDeclaration",
        "kind": kind,
        "declarations": [
            {"type": "VariableDeclarator", "id": dict(i), "init": None} for i in ids
        ],
    }
