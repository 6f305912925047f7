"""
codegen.py — Generación de código JavaScript desde el AST de Babel
==================================================================

Imprime el árbol final del pipeline como texto fuente:

- Indentación de dos espacios y sentencias terminadas en `;`.
- Cadenas entre comillas dobles (escapado JSON).
- Paréntesis según la precedencia de operadores de JavaScript.
- Paréntesis alrededor de sentencias de expresión que empezarían por `{`,
  `function` o `class` (se leerían como bloque o declaración).
- Una VariableDeclaration sin declaradores se omite.

Los comentarios y la información de posición se ignoran.
"""

import json
import math
import re
from typing import Callable, Dict, List, Optional, Tuple

from ..domain.ast_models import Node
from ..domain.ast_utils import block_statement, is_node, is_type
from ..domain.errors import CodegenError


# ============================================================================
# PRECEDENCIAS
# ============================================================================

SEQUENCE = 0
ASSIGN = 1
CONDITIONAL = 2
UNARY = 14
POSTFIX = 15
MEMBER = 17
PRIMARY = 19

BINARY_PRECEDENCE: Dict[str, int] = {
    "??": 3, "||": 3, "&&": 4,
    "|": 5, "^": 6, "&": 7,
    "==": 8, "!=": 8, "===": 8, "!==": 8,
    "<": 9, ">": 9, "<=": 9, ">=": 9, "instanceof": 9, "in": 9,
    "<<": 10, ">>": 10, ">>>": 10,
    "+": 11, "-": 11,
    "*": 12, "/": 12, "%": 12,
    "**": 13,
}

# Una sentencia de expresión no puede empezar así sin paréntesis
_AMBIGUOUS_START = re.compile(r"(\{|function\b|class\b|let\s*\[)")

# Sentencias cuyo cuerpo final puede ser un `if` sin `else`
_BODY_FIELDS = {
    "ForStatement": "body", "ForInStatement": "body", "ForOfStatement": "body",
    "WhileStatement": "body", "LabeledStatement": "body", "WithStatement": "body",
}


def _ends_in_open_if(node: Node) -> bool:
    """True si un `else` que siga a `node` se uniría a un `if` interno."""
    while is_node(node):
        if node["type"] == "IfStatement":
            if not node.get("alternate"):
                return True
            node = node["alternate"]
        elif node["type"] in _BODY_FIELDS:
            node = node[_BODY_FIELDS[node["type"]]]
        else:
            return False
    return False


def _mixes_coalesce(operator: str, operand: Node) -> bool:
    """`??` no puede combinarse con `||` ni `&&` sin paréntesis."""
    if not is_type(operand, "LogicalExpression"):
        return False
    operators = {operator, operand.get("operator")}
    return "??" in operators and bool(operators & {"||", "&&"})


class CodeGenerator:
    """
    Impresor de nodos Babel.

    Uso:
        CodeGenerator().generate(tree)  # File, Program, sentencia o expresión
    """

    indent_unit = "  "

    def __init__(self):
        self._depth = 0
        self._statements: Dict[str, Callable[[Node], str]] = {
            "ExpressionStatement": self._expression_statement,
            "BlockStatement": self._block,
            "EmptyStatement": lambda node: ";",
            "DebuggerStatement": lambda node: "debugger;",
            "ReturnStatement": self._return,
            "ThrowStatement": self._throw,
            "BreakStatement": self._jump,
            "ContinueStatement": self._jump,
            "LabeledStatement": self._labeled,
            "IfStatement": self._if,
            "ForStatement": self._for,
            "ForInStatement": self._for_in_of,
            "ForOfStatement": self._for_in_of,
            "WhileStatement": self._while,
            "DoWhileStatement": self._do_while,
            "TryStatement": self._try,
            "SwitchStatement": self._switch,
            "VariableDeclaration": self._variable_declaration,
            "FunctionDeclaration": self._function,
            "ClassDeclaration": self._class,
            "ImportDeclaration": self._import,
            "ExportNamedDeclaration": self._export_named,
            "ExportDefaultDeclaration": self._export_default,
            "ExportAllDeclaration": self._export_all,
        }
        self._expressions: Dict[str, Callable[[Node], Tuple[str, int]]] = {
            "Identifier": lambda node: (node["name"], PRIMARY),
            "StringLiteral": lambda node: (json.dumps(node.get("value", "")), PRIMARY),
            "NumericLiteral": self._numeric,
            "BooleanLiteral": lambda node: ("true" if node.get("value") else "false", PRIMARY),
            "NullLiteral": lambda node: ("null", PRIMARY),
            "RegExpLiteral": lambda node: (f"/{node['pattern']}/{node.get('flags', '')}", PRIMARY),
            "TemplateLiteral": self._template_literal,
            "TaggedTemplateExpression": self._tagged_template,
            "ThisExpression": lambda node: ("this", PRIMARY),
            "Super": lambda node: ("super", PRIMARY),
            "ArrayExpression": self._array,
            "ArrayPattern": self._array,
            "ObjectExpression": self._object,
            "ObjectPattern": self._object,
            "FunctionExpression": lambda node: (self._function(node), PRIMARY),
            "ArrowFunctionExpression": self._arrow,
            "ClassExpression": lambda node: (self._class(node), PRIMARY),
            "UnaryExpression": self._unary,
            "UpdateExpression": self._update,
            "BinaryExpression": self._binary,
            "LogicalExpression": self._binary,
            "AssignmentExpression": self._assignment,
            "AssignmentPattern": self._assignment_pattern,
            "ConditionalExpression": self._conditional,
            "SequenceExpression": self._sequence,
            "CallExpression": self._call,
            "NewExpression": self._new,
            "MemberExpression": self._member,
            "SpreadElement": self._spread,
            "SpreadProperty": self._spread,
            "RestElement": self._spread,
            "RestProperty": self._spread,
            "AwaitExpression": self._await,
            "YieldExpression": self._yield,
            "DoExpression": lambda node: ("do " + self._block(node["body"]), PRIMARY),
            "ParenthesizedExpression": lambda node: (f"({self.expr(node['expression'])})", PRIMARY),
            "MetaProperty": lambda node: (f"{node['meta']['name']}.{node['property']['name']}", PRIMARY),
        }

    # ------------------------------------------------------------------------
    # API PÚBLICA
    # ------------------------------------------------------------------------

    def generate(self, node: Node) -> str:
        """
        Genera el código fuente de `node`.

        Raises:
            CodegenError: si el árbol contiene un nodo no soportado.
        """
        self._depth = 0
        if is_type(node, "File"):
            node = node.get("program")
        if is_type(node, "Program"):
            return self._program(node)
        if not is_node(node):
            raise CodegenError(f"Se esperaba un nodo AST: {node!r}")
        if node["type"] in self._statements:
            return self.stmt(node)
        return self.expr(node)

    # ------------------------------------------------------------------------
    # UTILIDADES
    # ------------------------------------------------------------------------

    def _indent(self) -> str:
        return self.indent_unit * self._depth

    def _lines(self, statements: List[Node]) -> List[str]:
        out = []
        for statement in statements:
            text = self.stmt(statement)
            if text:
                out.append(self._indent() + text)
        return out

    def _directives(self, node: Node) -> List[Node]:
        return [
            {"type": "ExpressionStatement", "directive": True,
             "expression": {"type": "StringLiteral", "value": d["value"]["value"]}}
            for d in node.get("directives") or []
        ]

    def _program(self, node: Node) -> str:
        statements = self._directives(node) + list(node.get("body") or [])
        return "\n".join(self._lines(statements))

    def stmt(self, node: Node) -> str:
        """Sentencia sin indentación en la primera línea."""
        if not is_node(node):
            raise CodegenError(f"Se esperaba una sentencia: {node!r}")
        handler = self._statements.get(node["type"])
        if handler is None:
            raise CodegenError(f"Tipo de sentencia no soportado: {node['type']}")
        return handler(node)

    def expr(self, node: Node, min_precedence: int = SEQUENCE) -> str:
        """Expresión, entre paréntesis si su precedencia es menor que la pedida."""
        if not is_node(node):
            raise CodegenError(f"Se esperaba una expresión: {node!r}")
        handler = self._expressions.get(node["type"])
        if handler is None:
            raise CodegenError(f"Tipo de expresión no soportado: {node['type']}")
        text, precedence = handler(node)
        if precedence < min_precedence:
            return f"({text})"
        return text

    def _clause(self, node: Node) -> str:
        return self.stmt(node)

    def _params(self, params: Optional[List[Node]]) -> str:
        return ", ".join(self.expr(p, ASSIGN) for p in params or [])

    def _key(self, node: Node) -> str:
        key = node["key"]
        if node.get("computed"):
            return f"[{self.expr(key, ASSIGN)}]"
        return self.expr(key, PRIMARY)

    # ------------------------------------------------------------------------
    # SENTENCIAS
    # ------------------------------------------------------------------------

    def _expression_statement(self, node: Node) -> str:
        text = self.expr(node["expression"])
        if not node.get("directive") and _AMBIGUOUS_START.match(text):
            text = f"({text})"
        return text + ";"

    def _block(self, node: Node) -> str:
        statements = self._directives(node) + list(node.get("body") or [])
        if not statements:
            return "{}"
        self._depth += 1
        lines = self._lines(statements)
        self._depth -= 1
        if not lines:
            return "{}"
        return "{\n" + "\n".join(lines) + "\n" + self._indent() + "}"

    def _return(self, node: Node) -> str:
        if node.get("argument") is None:
            return "return;"
        return f"return {self.expr(node['argument'])};"

    def _throw(self, node: Node) -> str:
        return f"throw {self.expr(node['argument'])};"

    def _jump(self, node: Node) -> str:
        keyword = "break" if node["type"] == "BreakStatement" else "continue"
        label = node.get("label")
        if label:
            return f"{keyword} {label['name']};"
        return keyword + ";"

    def _labeled(self, node: Node) -> str:
        return f"{node['label']['name']}: {self._clause(node['body'])}"

    def _if(self, node: Node) -> str:
        consequent = node["consequent"]
        alternate = node.get("alternate")
        if alternate and _ends_in_open_if(consequent):
            consequent = block_statement([consequent])
        text = f"if ({self.expr(node['test'])}) {self._clause(consequent)}"
        if alternate:
            if is_type(consequent, "BlockStatement"):
                text += " else "
            else:
                text += "\n" + self._indent() + "else "
            text += self._clause(alternate)
        return text

    def _for_head_part(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        if is_type(node, "VariableDeclaration"):
            return self._declarations(node)
        return self.expr(node)

    def _for(self, node: Node) -> str:
        init = self._for_head_part(node.get("init"))
        test = self.expr(node["test"]) if node.get("test") else ""
        update = self.expr(node["update"]) if node.get("update") else ""
        head = f"{init};{' ' + test if test else ''};{' ' + update if update else ''}"
        return f"for ({head}) {self._clause(node['body'])}"

    def _for_in_of(self, node: Node) -> str:
        keyword = "in" if node["type"] == "ForInStatement" else "of"
        left = self._for_head_part(node["left"])
        right = self.expr(node["right"], ASSIGN)
        return f"for ({left} {keyword} {right}) {self._clause(node['body'])}"

    def _while(self, node: Node) -> str:
        return f"while ({self.expr(node['test'])}) {self._clause(node['body'])}"

    def _do_while(self, node: Node) -> str:
        return f"do {self._clause(node['body'])} while ({self.expr(node['test'])});"

    def _try(self, node: Node) -> str:
        text = "try " + self._block(node["block"])
        handler = node.get("handler")
        if handler:
            param = handler.get("param")
            text += f" catch ({self.expr(param)}) " if param else " catch "
            text += self._block(handler["body"])
        if node.get("finalizer"):
            text += " finally " + self._block(node["finalizer"])
        return text

    def _switch(self, node: Node) -> str:
        lines = []
        self._depth += 1
        for case in node.get("cases") or []:
            test = case.get("test")
            label = f"case {self.expr(test)}:" if test is not None else "default:"
            lines.append(self._indent() + label)
            self._depth += 1
            lines.extend(self._lines(case.get("consequent") or []))
            self._depth -= 1
        self._depth -= 1
        head = f"switch ({self.expr(node['discriminant'])}) "
        if not lines:
            return head + "{}"
        return head + "{\n" + "\n".join(lines) + "\n" + self._indent() + "}"

    def _declarations(self, node: Node) -> str:
        parts = []
        for declarator in node.get("declarations") or []:
            text = self.expr(declarator["id"], ASSIGN)
            if declarator.get("init") is not None:
                text += " = " + self.expr(declarator["init"], ASSIGN)
            parts.append(text)
        return f"{node.get('kind', 'var')} " + ", ".join(parts)

    def _variable_declaration(self, node: Node) -> str:
        if not node.get("declarations"):
            return ""
        return self._declarations(node) + ";"

    def _function(self, node: Node) -> str:
        prefix = "async " if node.get("async") else ""
        star = "*" if node.get("generator") else ""
        name = node["id"]["name"] if node.get("id") else ""
        return (f"{prefix}function{star} {name}({self._params(node.get('params'))}) "
                f"{self._block(node['body'])}")

    def _method(self, node: Node) -> str:
        kind = node.get("kind", "method")
        prefix = "static " if node.get("static") else ""
        if node.get("async"):
            prefix += "async "
        if kind in ("get", "set"):
            prefix += kind + " "
        if node.get("generator"):
            prefix += "*"
        return (f"{prefix}{self._key(node)}({self._params(node.get('params'))}) "
                f"{self._block(node['body'])}")

    def _class_member(self, node: Node) -> str:
        if node["type"] in ("ClassMethod", "ClassPrivateMethod"):
            return self._method(node)
        if node["type"] == "ClassProperty":
            prefix = "static " if node.get("static") else ""
            text = prefix + self._key(node)
            if node.get("value") is not None:
                text += " = " + self.expr(node["value"], ASSIGN)
            return text + ";"
        raise CodegenError(f"Miembro de clase no soportado: {node['type']}")

    def _class(self, node: Node) -> str:
        text = "class"
        if node.get("id"):
            text += " " + node["id"]["name"]
        if node.get("superClass"):
            text += " extends " + self.expr(node["superClass"], MEMBER)
        members = (node.get("body") or {}).get("body") or []
        if not members:
            return text + " {}"
        self._depth += 1
        lines = [self._indent() + self._class_member(m) for m in members]
        self._depth -= 1
        return text + " {\n" + "\n".join(lines) + "\n" + self._indent() + "}"

    # Módulos ---------------------------------------------------------------

    def _module_specifier(self, specifier: Node, local_key: str, other_key: str) -> str:
        first = specifier[local_key]["name"]
        second = specifier[other_key]["name"]
        return first if first == second else f"{first} as {second}"

    def _import(self, node: Node) -> str:
        source = json.dumps(node["source"]["value"])
        default, namespace, named = [], [], []
        for specifier in node.get("specifiers") or []:
            if specifier["type"] == "ImportDefaultSpecifier":
                default.append(specifier["local"]["name"])
            elif specifier["type"] == "ImportNamespaceSpecifier":
                namespace.append("* as " + specifier["local"]["name"])
            else:
                named.append(self._module_specifier(specifier, "imported", "local"))
        parts = default + namespace
        if named:
            parts.append("{ " + ", ".join(named) + " }")
        if not parts:
            return f"import {source};"
        return f"import {', '.join(parts)} from {source};"

    def _export_named(self, node: Node) -> str:
        if node.get("declaration"):
            return "export " + self.stmt(node["declaration"])
        specs = [self._module_specifier(s, "local", "exported") for s in node.get("specifiers") or []]
        text = "export { " + ", ".join(specs) + " }" if specs else "export {}"
        if node.get("source"):
            text += " from " + json.dumps(node["source"]["value"])
        return text + ";"

    def _export_default(self, node: Node) -> str:
        declaration = node["declaration"]
        if declaration["type"] in ("FunctionDeclaration", "ClassDeclaration"):
            return "export default " + self.stmt(declaration)
        return f"export default {self.expr(declaration, ASSIGN)};"

    def _export_all(self, node: Node) -> str:
        return f"export * from {json.dumps(node['source']['value'])};"

    # ------------------------------------------------------------------------
    # EXPRESIONES
    # ------------------------------------------------------------------------

    def _numeric(self, node: Node) -> Tuple[str, int]:
        raw = (node.get("extra") or {}).get("raw")
        if isinstance(raw, str):
            text = raw
        else:
            value = node.get("value")
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise CodegenError(f"Valor numérico inválido: {value!r}")
            if isinstance(value, float):
                if math.isnan(value):
                    text = "NaN"
                elif math.isinf(value):
                    text = "Infinity" if value > 0 else "-Infinity"
                elif value.is_integer() and abs(value) < 1e21:
                    text = str(int(value))
                else:
                    text = repr(value)
            else:
                text = str(value)
        return text, UNARY if text.startswith("-") else PRIMARY

    def _template_literal(self, node: Node) -> Tuple[str, int]:
        quasis = node.get("quasis") or []
        expressions = node.get("expressions") or []
        parts = ["`"]
        for i, quasi in enumerate(quasis):
            parts.append(quasi["value"]["raw"])
            if i < len(expressions):
                parts.append("${" + self.expr(expressions[i]) + "}")
        parts.append("`")
        return "".join(parts), PRIMARY

    def _tagged_template(self, node: Node) -> Tuple[str, int]:
        tag = self.expr(node["tag"], MEMBER)
        quasi, _ = self._template_literal(node["quasi"])
        return tag + quasi, MEMBER

    def _array(self, node: Node) -> Tuple[str, int]:
        elements = node.get("elements") or []
        parts = [self.expr(e, ASSIGN) if e is not None else "" for e in elements]
        text = ", ".join(parts)
        if elements and elements[-1] is None:
            text += ","
        return f"[{text}]", PRIMARY

    def _object_member(self, node: Node) -> str:
        kind = node["type"]
        if kind in ("ObjectMethod",) or (kind == "Property" and (node.get("method") or node.get("kind") in ("get", "set"))):
            if kind == "Property":
                value = node["value"]
                node = {**value, "key": node["key"], "computed": node.get("computed"), "kind": node.get("kind")}
                if node["kind"] == "init":
                    node["kind"] = "method"
            return self._method(node)
        if kind in ("ObjectProperty", "Property"):
            value = node["value"]
            if node.get("shorthand") and not node.get("computed"):
                if is_type(value, "Identifier") and is_type(node["key"], "Identifier") \
                        and value["name"] == node["key"]["name"]:
                    return value["name"]
                if is_type(value, "AssignmentPattern"):
                    return self.expr(value, ASSIGN)
            return f"{self._key(node)}: {self.expr(value, ASSIGN)}"
        return self.expr(node, ASSIGN)

    def _object(self, node: Node) -> Tuple[str, int]:
        properties = node.get("properties") or []
        if not properties:
            return "{}", PRIMARY
        return "{ " + ", ".join(self._object_member(p) for p in properties) + " }", PRIMARY

    def _arrow(self, node: Node) -> Tuple[str, int]:
        params = node.get("params") or []
        prefix = "async " if node.get("async") else ""
        if len(params) == 1 and is_type(params[0], "Identifier"):
            head = params[0]["name"]
        else:
            head = f"({self._params(params)})"
        body = node["body"]
        if is_type(body, "BlockStatement"):
            text = self._block(body)
        else:
            text = self.expr(body, ASSIGN)
            if text.startswith("{"):
                text = f"({text})"
        return f"{prefix}{head} => {text}", ASSIGN

    def _unary(self, node: Node) -> Tuple[str, int]:
        operator = node["operator"]
        argument = self.expr(node["argument"], UNARY)
        if operator.isalpha() or (operator in ("+", "-") and argument.startswith(operator)):
            return f"{operator} {argument}", UNARY
        return operator + argument, UNARY

    def _update(self, node: Node) -> Tuple[str, int]:
        operator = node["operator"]
        if node.get("prefix"):
            return operator + self.expr(node["argument"], UNARY), UNARY
        return self.expr(node["argument"], POSTFIX) + operator, POSTFIX

    def _binary(self, node: Node) -> Tuple[str, int]:
        operator = node["operator"]
        precedence = BINARY_PRECEDENCE.get(operator)
        if precedence is None:
            raise CodegenError(f"Operador binario no soportado: {operator}")
        if operator == "**":
            # `-a ** b` es un error de sintaxis
            left_min, right_min = POSTFIX, precedence
        else:
            left_min, right_min = precedence, precedence + 1
        left = self._operand(operator, node["left"], left_min)
        right = self._operand(operator, node["right"], right_min)
        return f"{left} {operator} {right}", precedence

    def _operand(self, operator: str, operand: Node, min_precedence: int) -> str:
        if _mixes_coalesce(operator, operand):
            min_precedence = PRIMARY
        return self.expr(operand, min_precedence)

    def _assignment(self, node: Node) -> Tuple[str, int]:
        left = self.expr(node["left"], POSTFIX)
        right = self.expr(node["right"], ASSIGN)
        return f"{left} {node.get('operator', '=')} {right}", ASSIGN

    def _assignment_pattern(self, node: Node) -> Tuple[str, int]:
        return f"{self.expr(node['left'], POSTFIX)} = {self.expr(node['right'], ASSIGN)}", ASSIGN

    def _conditional(self, node: Node) -> Tuple[str, int]:
        test = self.expr(node["test"], CONDITIONAL + 1)
        consequent = self.expr(node["consequent"], ASSIGN)
        alternate = self.expr(node["alternate"], ASSIGN)
        return f"{test} ? {consequent} : {alternate}", CONDITIONAL

    def _sequence(self, node: Node) -> Tuple[str, int]:
        return ", ".join(self.expr(e, ASSIGN) for e in node["expressions"]), SEQUENCE

    def _arguments(self, node: Node) -> str:
        return ", ".join(self.expr(a, ASSIGN) for a in node.get("arguments") or [])

    def _call(self, node: Node) -> Tuple[str, int]:
        callee = node["callee"]
        if is_type(callee, "FunctionExpression", "ArrowFunctionExpression"):
            callee_text = f"({self.expr(callee)})"
        else:
            callee_text = self.expr(callee, MEMBER)
        return f"{callee_text}({self._arguments(node)})", MEMBER

    @staticmethod
    def _contains_call(node: Node) -> bool:
        while is_node(node):
            if node["type"] == "CallExpression":
                return True
            if node["type"] == "MemberExpression":
                node = node["object"]
            elif node["type"] == "TaggedTemplateExpression":
                node = node["tag"]
            else:
                return False
        return False

    def _new(self, node: Node) -> Tuple[str, int]:
        callee = node["callee"]
        callee_text = self.expr(callee, MEMBER)
        if self._contains_call(callee) and not callee_text.startswith("("):
            callee_text = f"({callee_text})"
        return f"new {callee_text}({self._arguments(node)})", MEMBER

    def _member(self, node: Node) -> Tuple[str, int]:
        obj = node["object"]
        obj_text = self.expr(obj, MEMBER)
        if is_type(obj, "NumericLiteral") and re.fullmatch(r"\d+", obj_text):
            obj_text = f"({obj_text})"
        if node.get("computed"):
            return f"{obj_text}[{self.expr(node['property'])}]", MEMBER
        return f"{obj_text}.{self.expr(node['property'], PRIMARY)}", MEMBER

    def _spread(self, node: Node) -> Tuple[str, int]:
        return "..." + self.expr(node["argument"], ASSIGN), ASSIGN

    def _await(self, node: Node) -> Tuple[str, int]:
        return "await " + self.expr(node["argument"], UNARY), UNARY

    def _yield(self, node: Node) -> Tuple[str, int]:
        text = "yield*" if node.get("delegate") else "yield"
        if node.get("argument") is not None:
            text += " " + self.expr(node["argument"], ASSIGN)
        return text, ASSIGN


def generate(node: Node) -> str:
    """Atajo: genera el código de `node` con un generador nuevo."""
    return CodeGenerator().generate(node)
