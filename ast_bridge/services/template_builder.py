"""
template_builder.py — Construcción de nodos Babel desde el parse tree
====================================================================

Responsabilidad: transformar el parse tree de Lark de una plantilla en una
lista de sentencias con la forma del AST de Babel (objetos JSON).

La expansión de macros no usa este módulo directamente: pasa por
`build_template`, que cachea el resultado por texto de plantilla.
"""

import re
from functools import lru_cache
from typing import List, Tuple

from lark import Transformer, v_args, Token
from lark.exceptions import VisitError

from ..domain.ast_models import Node
from ..domain.ast_utils import (
    identifier, numeric_literal, expression_statement, block_statement,
    sequence_expression, assignment_expression, conditional_expression,
    return_statement, call_expression,
)
from ..domain.errors import TemplateSyntaxError
from ..infrastructure.template_parser import get_template_parser, scan_template_literal


# ============================================================================
# UTILIDADES DE CONSTRUCCIÓN
# ============================================================================

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "b": "\b",
    "f": "\f", "v": "\v", "0": "\0",
}

_METHOD_MODIFIERS = ("static", "async", "get", "set")


class TemplateBuilderUtils:
    """Métodos auxiliares para construcción de nodos."""

    @staticmethod
    def unescape(body: str) -> str:
        """Decodifica las secuencias de escape de JavaScript."""

        def _replace(match: "re.Match") -> str:
            esc = match.group(1)
            if esc.startswith("u{"):
                return chr(int(esc[2:-1], 16))
            if esc[0] in "ux" and len(esc) > 1:
                return chr(int(esc[1:], 16))
            if esc in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
                return ""  # continuación de línea
            return _SIMPLE_ESCAPES.get(esc, esc)

        return _ESCAPE_RE.sub(_replace, body)

    @classmethod
    def unescape_string(cls, raw: str) -> str:
        """Decodifica un literal de cadena JavaScript (con comillas)."""
        return cls.unescape(raw[1:-1])

    @staticmethod
    def parse_number(raw: str):
        """Convierte un NUMBER a int o float."""
        if raw[:2].lower() in ("0x", "0o", "0b"):
            return int(raw, 0)
        if re.fullmatch(r"\d+", raw):
            return int(raw)
        return float(raw)

    @staticmethod
    def name_of(tok) -> str:
        return str(tok)

    @staticmethod
    def method_flags(modifiers) -> dict:
        """Valida los modificadores de un método (`static get x() {}`)."""
        unknown = [m for m in modifiers if m not in _METHOD_MODIFIERS]
        if unknown or len(set(modifiers)) != len(modifiers) \
                or ("get" in modifiers and "set" in modifiers):
            raise TemplateSyntaxError(f"Modificadores no válidos: {' '.join(modifiers)}")
        kind = "get" if "get" in modifiers else "set" if "set" in modifiers else "method"
        return {"kind": kind, "static": "static" in modifiers, "async": "async" in modifiers}


# ============================================================================
# TRANSFORMER PRINCIPAL
# ============================================================================

@v_args(inline=True)
class BuildTemplate(Transformer):
    """
    Transformer de Lark → nodos Babel.

    Cada método corresponde a una regla (o alias) de `template.lark`.
    """

    def __init__(self):
        super().__init__()
        self.utils = TemplateBuilderUtils()

    # ------------------------------------------------------------------------
    # PROGRAMA Y BLOQUES
    # ------------------------------------------------------------------------

    def start(self, *statements) -> List[Node]:
        return [s for s in statements if s is not None]

    def block(self, *statements) -> Node:
        return block_statement([s for s in statements if s is not None])

    def expr_stmt(self, expression) -> Node:
        return expression_statement(expression)

    def debugger_stmt(self) -> Node:
        return {"type": "DebuggerStatement"}

    # ------------------------------------------------------------------------
    # DECLARACIONES
    # ------------------------------------------------------------------------

    def var_kind(self, tok) -> str:
        return str(tok)

    def declarator(self, target, init) -> Node:
        return {"type": "VariableDeclarator", "id": target, "init": init}

    def var_decl(self, kind, *declarators) -> Node:
        return {
            "type": "VariableDeclaration",
            "kind": kind,
            "declarations": list(declarators),
        }

    def for_var(self, kind, target) -> Node:
        return self.var_decl(kind, self.declarator(target, None))

    def function_decl(self, name, params, body) -> Node:
        return {
            "type": "FunctionDeclaration",
            "id": identifier(self.utils.name_of(name)),
            "params": params or [],
            "body": body,
            "generator": False,
            "async": False,
        }

    # ------------------------------------------------------------------------
    # PATRONES
    # ------------------------------------------------------------------------

    def object_pattern(self, *properties) -> Node:
        return {"type": "ObjectPattern", "properties": list(properties)}

    def pattern_property(self, key, value) -> Node:
        key_node, computed = key
        return {"type": "ObjectProperty", "key": key_node, "value": value,
                "computed": computed, "shorthand": False}

    def shorthand_pattern(self, tok, default) -> Node:
        name = str(tok)
        value = identifier(name)
        if default is not None:
            value = self.default_value(value, default)
        return {"type": "ObjectProperty", "key": identifier(name), "value": value,
                "computed": False, "shorthand": True}

    def array_pattern(self, *elements) -> Node:
        # el último hueco corresponde a `[]` o a una coma final
        items = list(elements)
        if items and items[-1] is None:
            items.pop()
        return {"type": "ArrayPattern", "elements": items}

    def default_value(self, left, right) -> Node:
        return {"type": "AssignmentPattern", "left": left, "right": right}

    def rest_element(self, argument) -> Node:
        return {"type": "RestElement", "argument": argument}

    # ------------------------------------------------------------------------
    # SENTENCIAS DE CONTROL
    # ------------------------------------------------------------------------

    def if_stmt(self, test, consequent, alternate) -> Node:
        return {"type": "IfStatement", "test": test,
                "consequent": consequent, "alternate": alternate}

    def for_stmt(self, init, test, update, body) -> Node:
        return {"type": "ForStatement", "init": init, "test": test,
                "update": update, "body": body}

    def for_in_stmt(self, left, right, body) -> Node:
        return {"type": "ForInStatement", "left": left, "right": right, "body": body}

    def for_of_stmt(self, left, right, body) -> Node:
        return {"type": "ForOfStatement", "left": left, "right": right, "body": body}

    def while_stmt(self, test, body) -> Node:
        return {"type": "WhileStatement", "test": test, "body": body}

    def do_while_stmt(self, body, test) -> Node:
        return {"type": "DoWhileStatement", "body": body, "test": test}

    def return_stmt(self, argument) -> Node:
        return return_statement(argument)

    def throw_stmt(self, argument) -> Node:
        return {"type": "ThrowStatement", "argument": argument}

    def break_stmt(self, label) -> Node:
        return {"type": "BreakStatement",
                "label": identifier(str(label)) if label is not None else None}

    def continue_stmt(self, label) -> Node:
        return {"type": "ContinueStatement",
                "label": identifier(str(label)) if label is not None else None}

    def try_stmt(self, block, handler, finalizer) -> Node:
        return {"type": "TryStatement", "block": block,
                "handler": handler, "finalizer": finalizer}

    def catch_clause(self, param, body) -> Node:
        return {"type": "CatchClause", "param": param, "body": body}

    def finally_clause(self, body) -> Node:
        return body

    def switch_stmt(self, discriminant, *cases) -> Node:
        return {"type": "SwitchStatement", "discriminant": discriminant,
                "cases": list(cases)}

    def switch_case(self, test, *consequent) -> Node:
        return {"type": "SwitchCase", "test": test,
                "consequent": [s for s in consequent if s is not None]}

    def default_case(self, *consequent) -> Node:
        return self.switch_case(None, *consequent)

    def labeled_stmt(self, label, body) -> Node:
        return {"type": "LabeledStatement", "label": identifier(str(label)), "body": body}

    # ------------------------------------------------------------------------
    # OPERADORES
    # ------------------------------------------------------------------------

    def _operator(self, tok) -> str:
        return str(tok)

    assign_op = coalesce_op = or_op = and_op = bor_op = xor_op = band_op = _operator
    eq_op = rel_op = shift_op = add_op = mul_op = pow_op = _operator
    unary_op = update_op = _operator

    def sequence(self, *expressions) -> Node:
        return sequence_expression(expressions)

    def assign(self, left, operator, right) -> Node:
        return assignment_expression(left, right, operator)

    def conditional(self, test, consequent, alternate) -> Node:
        return conditional_expression(test, consequent, alternate)

    def logical(self, left, operator, right) -> Node:
        return {"type": "LogicalExpression", "operator": operator,
                "left": left, "right": right}

    def binary(self, left, operator, right) -> Node:
        return {"type": "BinaryExpression", "operator": operator,
                "left": left, "right": right}

    def unary(self, operator, argument) -> Node:
        return {"type": "UnaryExpression", "operator": operator,
                "prefix": True, "argument": argument}

    def prefix_update(self, operator, argument) -> Node:
        return {"type": "UpdateExpression", "operator": operator,
                "prefix": True, "argument": argument}

    def postfix_update(self, argument, operator) -> Node:
        return {"type": "UpdateExpression", "operator": operator,
                "prefix": False, "argument": argument}

    # ------------------------------------------------------------------------
    # LLAMADAS Y ACCESOS
    # ------------------------------------------------------------------------

    def new(self, callee, arguments=None) -> Node:
        return {"type": "NewExpression", "callee": callee,
                "arguments": arguments or []}

    def call(self, callee, arguments) -> Node:
        return call_expression(callee, arguments)

    def member(self, obj, prop) -> Node:
        return {"type": "MemberExpression", "object": obj,
                "property": prop, "computed": False}

    def computed_member(self, obj, prop) -> Node:
        return {"type": "MemberExpression", "object": obj,
                "property": prop, "computed": True}

    def tagged_template(self, tag, tok) -> Node:
        return {"type": "TaggedTemplateExpression", "tag": tag,
                "quasi": self.template(tok)}

    def arguments(self, items=None) -> List[Node]:
        return items or []

    def arg_list(self, *items) -> List[Node]:
        return list(items)

    def spread(self, argument) -> Node:
        return {"type": "SpreadElement", "argument": argument}

    def prop_name(self, tok) -> Node:
        return identifier(str(tok))

    def keyword_name(self, tok) -> Token:
        return Token("NAME", str(tok))

    # ------------------------------------------------------------------------
    # LITERALES Y PRIMARIOS
    # ------------------------------------------------------------------------

    def identifier(self, tok) -> Node:
        return identifier(str(tok))

    def number(self, tok) -> Node:
        return numeric_literal(self.utils.parse_number(str(tok)))

    def string(self, tok) -> Node:
        return {"type": "StringLiteral", "value": self.utils.unescape_string(str(tok))}

    def regex(self, tok) -> Node:
        text = str(tok)
        close = text.rindex("/")
        return {"type": "RegExpLiteral", "pattern": text[1:close], "flags": text[close + 1:]}

    def template(self, tok) -> Node:
        _, chunks, substitutions = scan_template_literal(str(tok))
        quasis = []
        for i, chunk in enumerate(chunks):
            raw = chunk.replace("\r\n", "\n")
            quasis.append({
                "type": "TemplateElement",
                "value": {"raw": raw, "cooked": self.utils.unescape(raw)},
                "tail": i == len(chunks) - 1,
            })
        return {"type": "TemplateLiteral", "quasis": quasis,
                "expressions": [parse_expression(s) for s in substitutions]}

    def this(self) -> Node:
        return {"type": "ThisExpression"}

    def super_expr(self) -> Node:
        return {"type": "Super"}

    def true(self) -> Node:
        return {"type": "BooleanLiteral", "value": True}

    def false(self) -> Node:
        return {"type": "BooleanLiteral", "value": False}

    def null(self) -> Node:
        return {"type": "NullLiteral"}

    def array(self, elements=None) -> Node:
        return {"type": "ArrayExpression", "elements": elements or []}

    # ------------------------------------------------------------------------
    # OBJETOS
    # ------------------------------------------------------------------------

    def object(self, *properties) -> Node:
        for prop in properties:
            if prop["type"] == "ObjectMethod" and prop.pop("static"):
                raise TemplateSyntaxError("`static` sólo es válido en clases")
        return {"type": "ObjectExpression", "properties": list(properties)}

    def prop_key(self, tok) -> Tuple[Node, bool]:
        if tok.type == "STRING":
            return self.string(tok), False
        if tok.type == "NUMBER":
            return self.number(tok), False
        return identifier(str(tok)), False

    def computed_key(self, expression) -> Tuple[Node, bool]:
        return expression, True

    def object_property(self, key, value) -> Node:
        key_node, computed = key
        return {"type": "ObjectProperty", "key": key_node, "value": value,
                "computed": computed, "shorthand": False}

    def shorthand_property(self, tok) -> Node:
        name = str(tok)
        return {"type": "ObjectProperty", "key": identifier(name),
                "value": identifier(name), "computed": False, "shorthand": True}

    def modifier(self, tok) -> str:
        return str(tok)

    def method_def(self, *children) -> Node:
        *modifiers, key, params, body = children
        key_node, computed = key
        flags = self.utils.method_flags(modifiers)
        return {
            "type": "ObjectMethod", "kind": flags["kind"], "key": key_node,
            "computed": computed, "static": flags["static"],
            "params": params or [], "body": body,
            "generator": False, "async": flags["async"],
        }

    # ------------------------------------------------------------------------
    # CLASES
    # ------------------------------------------------------------------------

    def _class(self, kind, name, heritage, body) -> Node:
        return {
            "type": kind,
            "id": identifier(str(name)) if name is not None else None,
            "superClass": heritage,
            "body": body,
        }

    def class_decl(self, name, heritage, body) -> Node:
        return self._class("ClassDeclaration", name, heritage, body)

    def class_expr(self, name, heritage, body) -> Node:
        return self._class("ClassExpression", name, heritage, body)

    def class_heritage(self, expression) -> Node:
        return expression

    def class_body(self, *members) -> Node:
        body = []
        for member in members:
            if member is None:
                continue
            if member["type"] == "ObjectMethod":
                member = {**member, "type": "ClassMethod"}
                key = member["key"]
                if member["kind"] == "method" and not member["computed"] \
                        and key.get("name") == "constructor":
                    member["kind"] = "constructor"
            body.append(member)
        return {"type": "ClassBody", "body": body}

    def class_field(self, *children) -> Node:
        *modifiers, key, value = children
        if any(m != "static" for m in modifiers) or len(modifiers) > 1:
            raise TemplateSyntaxError(f"Modificadores no válidos: {' '.join(modifiers)}")
        key_node, computed = key
        return {"type": "ClassProperty", "key": key_node, "value": value,
                "computed": computed, "static": bool(modifiers)}

    # ------------------------------------------------------------------------
    # FUNCIONES
    # ------------------------------------------------------------------------

    def function_expr(self, name, params, body) -> Node:
        return {
            "type": "FunctionExpression",
            "id": identifier(str(name)) if name is not None else None,
            "params": params or [],
            "body": body,
            "generator": False,
            "async": False,
        }

    def arrow_function(self, params, body) -> Node:
        return {
            "type": "ArrowFunctionExpression",
            "params": params,
            "body": body,
            "expression": body.get("type") != "BlockStatement",
            "generator": False,
            "async": False,
        }

    def single_param(self, tok) -> List[Node]:
        return [identifier(str(tok))]

    def param_list(self, params=None) -> List[Node]:
        return params or []

    def params(self, *items) -> List[Node]:
        return list(items)


# ============================================================================
# API PÚBLICA
# ============================================================================

def _build(source: str) -> List[Node]:
    tree = get_template_parser().parse(source)
    try:
        return BuildTemplate().transform(tree)
    except VisitError as e:
        raise TemplateSyntaxError(f"Plantilla no válida: {e.orig_exc}") from e


def parse_expression(source: str) -> Node:
    """Parsea el código de una sustitución `${...}` como una sola expresión."""
    statements = _build(f"({source})")
    if len(statements) != 1 or statements[0]["type"] != "ExpressionStatement":
        raise TemplateSyntaxError(f"Se esperaba una expresión: {source}")
    return statements[0]["expression"]


@lru_cache(maxsize=256)
def _cached_template(source: str) -> Tuple[Node, ...]:
    return tuple(_build(source))


def build_template(source: str) -> Tuple[Node, ...]:
    """
    Parsea una plantilla y devuelve sus sentencias de nivel superior.

    El resultado está cacheado y es compartido: quien lo use debe copiar los
    nodos antes de modificarlos.

    Raises:
        TemplateSyntaxError: Si la plantilla no es válida
    """
    return _cached_template(source)


def parse_statements(source: str) -> List[Node]:
    """Variante sin cache, útil para pruebas y diagnósticos."""
    return _build(source)


__all__ = ["BuildTemplate", "build_template", "parse_expression", "parse_statements"]
