"""
test_codegen.py - Generación de JavaScript desde el AST de Babel
================================================================
"""

import pytest

from ast_bridge.domain.errors import CodegenError
from ast_bridge.services.codegen import CodeGenerator, generate

from conftest import ident, num, program, stmt, var


def binary(operator, left, right):
    return {"type": "BinaryExpression", "operator": operator, "left": left, "right": right}


def block(*body):
    return {"type": "BlockStatement", "body": list(body), "directives": []}


def call(callee, *arguments):
    return {"type": "CallExpression", "callee": callee, "arguments": list(arguments)}


def if_stmt(test, consequent, alternate=None):
    return {"type": "IfStatement", "test": test, "consequent": consequent, "alternate": alternate}


def logical(operator, left, right):
    return {"type": "LogicalExpression", "operator": operator, "left": left, "right": right}


def negate(argument):
    return {"type": "UnaryExpression", "operator": "-", "prefix": True, "argument": argument}


# ============================================================================
# SENTENCIAS
# ============================================================================

def test_variable_declaration():
    node = {
        "type": "VariableDeclaration", "kind": "let",
        "declarations": [
            {"type": "VariableDeclarator", "id": ident("a"), "init": num(1)},
            {"type": "VariableDeclarator", "id": ident("b"), "init": None},
        ],
    }
    assert generate(program(node)) == "let a = 1, b;"


def test_empty_declaration_is_elided():
    empty = {"type": "VariableDeclaration", "kind": "var", "declarations": []}
    assert generate(program(empty, stmt(ident("x")))) == "x;"


def test_if_else_blocks_are_indented():
    node = {
        "type": "IfStatement",
        "test": ident("x"),
        "consequent": block(stmt(call(ident("y")))),
        "alternate": block(stmt(call(ident("z")))),
    }
    assert generate(program(node)) == "if (x) {\n  y();\n} else {\n  z();\n}"


def test_else_stays_with_the_outer_if():
    node = if_stmt(ident("a"), if_stmt(ident("b"), stmt(ident("x"))), stmt(ident("y")))

    assert generate(program(node)) == "if (a) {\n  if (b) x;\n} else y;"


def test_else_after_loop_ending_in_if():
    loop = {"type": "WhileStatement", "test": ident("c"), "body": if_stmt(ident("b"), stmt(ident("x")))}
    node = if_stmt(ident("a"), loop, stmt(ident("y")))

    assert generate(program(node)) == "if (a) {\n  while (c) if (b) x;\n} else y;"


def test_closed_inner_if_needs_no_block():
    inner = if_stmt(ident("b"), stmt(ident("x")), stmt(ident("z")))

    assert generate(program(if_stmt(ident("a"), inner))) == "if (a) if (b) x;\nelse z;"


def test_function_declaration_with_return():
    node = {
        "type": "FunctionDeclaration", "id": ident("add"),
        "params": [ident("a"), ident("b")],
        "body": block({"type": "ReturnStatement", "argument": binary("+", ident("a"), ident("b"))}),
    }
    assert generate(program(node)) == "function add(a, b) {\n  return a + b;\n}"


def test_for_statement_head():
    node = {
        "type": "ForStatement",
        "init": var(i=num(0)),
        "test": binary("<", ident("i"), ident("n")),
        "update": {"type": "UpdateExpression", "operator": "++", "prefix": False, "argument": ident("i")},
        "body": block(),
    }
    assert generate(program(node)) == "for (var i = 0; i < n; i++) {}"


def test_directives_are_printed_first():
    tree = program(stmt(ident("x")))
    tree["program"]["directives"] = [
        {"type": "Directive", "value": {"type": "DirectiveLiteral", "value": "use strict"}},
    ]
    assert generate(tree) == '"use strict";\nx;'


# ============================================================================
# EXPRESIONES
# ============================================================================

@pytest.mark.parametrize("node, expected", [
    (binary("*", binary("+", ident("a"), ident("b")), ident("c")), "(a + b) * c"),
    (binary("+", ident("a"), binary("*", ident("b"), ident("c"))), "a + b * c"),
    (binary("-", ident("a"), binary("-", ident("b"), ident("c"))), "a - (b - c)"),
    (binary("-", binary("-", ident("a"), ident("b")), ident("c")), "a - b - c"),
    (binary("**", negate(ident("a")), ident("b")), "(-a) ** b"),
    (binary("**", binary("**", ident("a"), ident("b")), ident("c")), "(a ** b) ** c"),
    (binary("**", ident("a"), binary("**", ident("b"), ident("c"))), "a ** b ** c"),
    (logical("??", logical("||", ident("a"), ident("b")), ident("c")), "(a || b) ?? c"),
    (logical("||", logical("??", ident("a"), ident("b")), ident("c")), "(a ?? b) || c"),
    (logical("&&", ident("a"), logical("??", ident("b"), ident("c"))), "a && (b ?? c)"),
    (logical("??", logical("??", ident("a"), ident("b")), ident("c")), "a ?? b ?? c"),
])
def test_parentheses_follow_precedence(node, expected):
    assert generate(node) == expected


def test_strings_use_double_quotes():
    node = {"type": "StringLiteral", "value": 'it\'s "q"'}
    assert generate(node) == '"it\'s \\"q\\""'


@pytest.mark.parametrize("value, expected", [(1.0, "1"), (0.5, "0.5"), (42, "42")])
def test_numbers(value, expected):
    assert generate(num(value)) == expected


def test_numeric_member_object_is_wrapped():
    node = {"type": "MemberExpression", "object": num(1), "property": ident("toString"), "computed": False}
    assert generate(node) == "(1).toString"


def test_object_expression_statement_is_wrapped():
    obj = {"type": "ObjectExpression", "properties": [
        {"type": "ObjectProperty", "key": ident("a"), "value": num(1), "computed": False, "shorthand": False},
    ]}
    assert generate(program(stmt(obj))) == "({ a: 1 });"


def test_immediately_invoked_function_is_wrapped():
    function = {"type": "FunctionExpression", "id": None, "params": [], "body": block()}
    assert generate(program(stmt(call(function)))) == "(function () {})();"


def test_arrow_returning_object_is_wrapped():
    arrow = {"type": "ArrowFunctionExpression", "params": [],
             "body": {"type": "ObjectExpression", "properties": []}}
    assert generate(arrow) == "() => ({})"


def test_sequence_in_argument_is_wrapped():
    seq = {"type": "SequenceExpression", "expressions": [ident("a"), ident("b")]}
    assert generate(call(ident("f"), seq)) == "f((a, b))"


def test_unary_and_conditional():
    node = {
        "type": "ConditionalExpression",
        "test": {"type": "UnaryExpression", "operator": "!", "prefix": True, "argument": ident("a")},
        "consequent": {"type": "UnaryExpression", "operator": "typeof", "prefix": True, "argument": ident("b")},
        "alternate": {"type": "UnaryExpression", "operator": "void", "prefix": True, "argument": num(0)},
    }
    assert generate(node) == "!a ? typeof b : void 0"


def test_class_declaration():
    node = {
        "type": "ClassDeclaration", "id": ident("A"), "superClass": ident("B"),
        "body": {"type": "ClassBody", "body": [
            {"type": "ClassMethod", "kind": "constructor", "key": ident("constructor"),
             "computed": False, "static": False, "params": [], "body": block()},
        ]},
    }
    assert generate(program(node)) == "class A extends B {\n  constructor() {}\n}"


# ============================================================================
# ERRORES
# ============================================================================

def test_unknown_node_raises():
    with pytest.raises(CodegenError):
        generate(program({"type": "MadeUpStatement"}))


def test_generator_is_reusable():
    generator = CodeGenerator()
    assert generator.generate(program(stmt(ident("a")))) == "a;"
    assert generator.generate(program(stmt(ident("b")))) == "b;"
