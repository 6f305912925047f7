"""
traversal.py — Recorrido y reconstrucción del AST para una pasada
=================================================================

Las pasadas son funciones puras: reciben un nodo y devuelven None (sin
cambios), un nodo o una lista de nodos. Este módulo es el único que
reconstruye el árbol; nunca modifica el árbol de entrada.

Reglas de reemplazo según la posición del nodo reemplazado:

- Lista de sentencias: los nodos se insertan en su lugar (splice).
- `ExpressionStatement.expression` reemplazado por sentencias: las
  sentencias sustituyen a la ExpressionStatement en la lista que la contiene.
- Posición de expresión: una ExpressionStatement se desenvuelve; varias
  expresiones forman una SequenceExpression; sentencias arbitrarias se
  convierten en una expresión (secuencia con variables elevadas o función
  invocada inmediatamente).
- Posición de sentencia única (cuerpo de un `if`, de un bucle): varias
  sentencias se agrupan en un BlockStatement.

Los nodos devueltos por una pasada se vuelven a visitar con la misma pasada.
"""

from typing import List, Optional

from ..domain.ast_models import Node
from ..domain.ast_utils import (
    is_node, is_type, is_statement, is_expression, child_items,
    binding_identifiers, void_zero, expression_statement, block_statement,
    sequence_expression, assignment_expression, conditional_expression,
    return_statement, call_expression, function_expression,
    variable_declaration,
)
from ..domain.errors import TransformError
from .passes.base import TransformPass


# Profundidad máxima de re-visitas de nodos de reemplazo
MAX_REVISIT_DEPTH = 64

# Nodos cuyo cuerpo recibe las declaraciones elevadas
SCOPE_TYPES = frozenset({"Program", "BlockStatement"})


# ============================================================================
# CONTEXTO DE LA PASADA
# ============================================================================

class _Scope:
    def __init__(self, hoistable: bool):
        self.hoistable = hoistable
        self.hoisted: List[Node] = []


class PassContext:
    """
    Estado compartido durante el recorrido de una pasada.

    Mantiene la pila de ámbitos donde se pueden elevar declaraciones `var`
    (el cuerpo del bloque o programa más cercano).
    """

    def __init__(self, pass_name: str):
        self.pass_name = pass_name
        self._scopes: List[_Scope] = []

    def enter_scope(self, hoistable: bool = True) -> None:
        self._scopes.append(_Scope(hoistable))

    def exit_scope(self) -> List[Node]:
        return self._scopes.pop().hoisted

    def can_hoist(self) -> bool:
        return bool(self._scopes) and self._scopes[-1].hoistable

    def hoist(self, ids: List[Node]) -> None:
        """
        Declara `var <id>` (sin inicializador) al inicio del ámbito actual.

        Nombres repetidos producen declaradores repetidos; eliminarlos es
        tarea de la pasada de deduplicación.
        """
        if not self.can_hoist():
            raise TransformError("No hay ámbito donde elevar declaraciones", self.pass_name)
        self._scopes[-1].hoisted.extend({"type": "Identifier", "name": i["name"]} for i in ids)


# ============================================================================
# CONVERSIÓN DE SENTENCIAS A EXPRESIÓN
# ============================================================================

def _gather_sequence(nodes: List[Node], declars: List[Node]) -> Optional[Node]:
    """
    Intenta expresar `nodes` como una única expresión.

    Devuelve None si alguna sentencia no tiene equivalente como expresión.
    Los identificadores a elevar se acumulan en `declars`.
    """
    exprs: List[Node] = []
    ensure_last_undefined = True

    for node in nodes:
        ensure_last_undefined = False

        if is_expression(node):
            exprs.append(node)
        elif is_type(node, "ExpressionStatement"):
            exprs.append(node["expression"])
        elif is_type(node, "VariableDeclaration"):
            if node.get("kind") != "var":
                return None
            for declar in node.get("declarations") or []:
                declars.extend(binding_identifiers(declar.get("id")))
                if declar.get("init") is not None:
                    exprs.append(assignment_expression(declar["id"], declar["init"]))
            ensure_last_undefined = True
        elif is_type(node, "IfStatement"):
            consequent = (_gather_sequence([node["consequent"]], declars)
                          if node.get("consequent") else void_zero())
            alternate = (_gather_sequence([node["alternate"]], declars)
                         if node.get("alternate") else void_zero())
            if consequent is None or alternate is None:
                return None
            exprs.append(conditional_expression(node["test"], consequent, alternate))
        elif is_type(node, "BlockStatement"):
            body = _gather_sequence(node.get("body") or [], declars)
            if body is None:
                return None
            exprs.append(body)
        elif is_type(node, "EmptyStatement"):
            ensure_last_undefined = True
        else:
            return None

    if ensure_last_undefined:
        exprs.append(void_zero())

    if len(exprs) == 1:
        return exprs[0]
    return sequence_expression(exprs)


def _completion(stmt: Node) -> Node:
    kind = stmt["type"]
    if kind == "ExpressionStatement":
        return return_statement(stmt["expression"])
    if kind == "BlockStatement":
        return {**stmt, "body": _with_completion(stmt.get("body") or [])}
    if kind == "IfStatement":
        alternate = stmt.get("alternate")
        return {**stmt,
                "consequent": _completion(stmt["consequent"]),
                "alternate": _completion(alternate) if alternate else None}
    if kind == "TryStatement":
        handler = stmt.get("handler")
        if handler:
            handler = {**handler, "body": _completion(handler["body"])}
        return {**stmt, "block": _completion(stmt["block"]), "handler": handler}
    return stmt


def _with_completion(statements: List[Node]) -> List[Node]:
    if not statements:
        return statements
    return statements[:-1] + [_completion(statements[-1])]


def statements_to_expression(nodes: List[Node], ctx: PassContext) -> Node:
    """
    Convierte una secuencia de sentencias en una expresión equivalente.

    Primero intenta una SequenceExpression elevando las variables `var` al
    ámbito actual; si no es posible, envuelve las sentencias en una función
    invocada inmediatamente cuyo último valor se devuelve con `return`.
    """
    declars: List[Node] = []
    result = _gather_sequence(list(nodes), declars)
    if result is not None and (not declars or ctx.can_hoist()):
        if declars:
            ctx.hoist(declars)
        return result

    statements = [n if is_statement(n) else expression_statement(n) for n in nodes]
    body = block_statement(_with_completion(statements))
    return call_expression(function_expression(body), [])


# ============================================================================
# RECORRIDO
# ============================================================================

class _Walker:
    """Recorrido en profundidad que aplica una pasada y reconstruye el árbol."""

    def __init__(self, transform_pass: TransformPass, ctx: PassContext):
        self.transform_pass = transform_pass
        self.ctx = ctx

    def visit(self, node: Node, depth: int = 0) -> List[Node]:
        if node["type"] in self.transform_pass.node_types:
            replacement = self.transform_pass.visit(node, self.ctx)
            if replacement is not None:
                if depth >= MAX_REVISIT_DEPTH:
                    raise TransformError(
                        f"Reemplazos anidados en exceso sobre {node['type']}",
                        self.transform_pass.name,
                    )
                nodes = replacement if isinstance(replacement, list) else [replacement]
                out: List[Node] = []
                for new_node in nodes:
                    if not is_node(new_node):
                        raise TransformError(
                            f"Reemplazo inválido para {node['type']}: {new_node!r}",
                            self.transform_pass.name,
                        )
                    out.extend(self.visit(new_node, depth + 1))
                return out
        return self._walk_children(node)

    def _walk_children(self, node: Node) -> List[Node]:
        kind = node["type"]
        opens_scope = kind in SCOPE_TYPES
        # Una flecha con cuerpo de expresión no tiene dónde elevar variables
        barrier = kind == "ArrowFunctionExpression" and not is_type(node.get("body"), "BlockStatement")
        if opens_scope or barrier:
            self.ctx.enter_scope(hoistable=opens_scope)

        rebuilt = dict(node)
        for key, value in child_items(node):
            if isinstance(value, list):
                rebuilt[key] = self._walk_list(value)
            elif kind == "ExpressionStatement" and key == "expression":
                results = self.visit(value)
                if not results:
                    return []
                if any(is_statement(r) for r in results):
                    return [r if is_statement(r) else expression_statement(r) for r in results]
                rebuilt[key] = self._fit_expression(results)
            else:
                rebuilt[key] = self._fit_single(value, self.visit(value))

        if opens_scope or barrier:
            hoisted = self.ctx.exit_scope()
            if hoisted:
                rebuilt["body"] = [variable_declaration(hoisted)] + list(rebuilt.get("body") or [])
        return [rebuilt]

    def _walk_list(self, items: list) -> list:
        out = []
        for item in items:
            if not is_node(item):
                out.append(item)  # huecos de arrays, valores escalares
                continue
            results = self.visit(item)
            if is_statement(item):
                out.extend(r if is_statement(r) else expression_statement(r) for r in results)
            elif is_expression(item):
                if any(is_statement(r) and not is_type(r, "ExpressionStatement") for r in results):
                    out.append(statements_to_expression(results, self.ctx))
                else:
                    out.extend(r["expression"] if is_type(r, "ExpressionStatement") else r
                               for r in results)
            else:
                out.extend(results)
        return out

    def _fit_expression(self, results: List[Node]) -> Node:
        if len(results) == 1 and not is_statement(results[0]):
            return results[0]
        if results and all(is_type(r, "ExpressionStatement") or not is_statement(r) for r in results):
            exprs = [r["expression"] if is_type(r, "ExpressionStatement") else r for r in results]
            return exprs[0] if len(exprs) == 1 else sequence_expression(exprs)
        return statements_to_expression(results, self.ctx)

    def _fit_single(self, original: Node, results: List[Node]) -> Node:
        if is_expression(original):
            return self._fit_expression(results)
        if is_statement(original):
            statements = [r if is_statement(r) else expression_statement(r) for r in results]
            if len(statements) == 1:
                return statements[0]
            return block_statement(statements)
        if len(results) != 1:
            raise TransformError(
                f"No se puede reemplazar {original['type']} por {len(results)} nodos",
                self.transform_pass.name,
            )
        return results[0]


def run_pass(root: Node, transform_pass: TransformPass) -> Node:
    """
    Aplica una pasada a todo el árbol y devuelve el árbol reconstruido.

    Raises:
        TransformError: si la pasada falla o el reemplazo de la raíz no es
            un único nodo.
    """
    ctx = PassContext(transform_pass.name)
    results = _Walker(transform_pass, ctx).visit(root)
    if len(results) != 1:
        raise TransformError(
            f"La raíz {root.get('type')} se reemplazó por {len(results)} nodos",
            transform_pass.name,
        )
    return results[0]
