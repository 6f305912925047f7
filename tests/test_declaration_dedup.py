"""
test_declaration_dedup.py - Pasada remove-duplicated-var-declarators
====================================================================
"""

import pytest

from ast_bridge.domain.errors import TransformError
from ast_bridge.services.passes import DeclarationDeduplicator
from ast_bridge.services.passes.declaration_dedup import duplicated_declarators
from ast_bridge.services.traversal import run_pass

from conftest import ident, num, program


def declarator(name, init=None):
    return {"type": "VariableDeclarator", "id": ident(name), "init": init}


def declaration(*declarators):
    return {"type": "VariableDeclaration", "kind": "var", "declarations": list(declarators)}


def names(node):
    return [d["id"].get("name") for d in node["declarations"]]


# ============================================================================
# CASOS
# ============================================================================

def test_repeated_names_without_initializer_are_removed():
    node = declaration(declarator("a", num(1)), declarator("a"), declarator("b"), declarator("a"))

    assert duplicated_declarators(node["declarations"]) == [1, 3]
    result = DeclarationDeduplicator().visit(node, None)

    assert names(result) == ["a", "b"]
    assert result["declarations"][0]["init"] == num(1)


def test_later_declaration_with_initializer_is_kept():
    node = declaration(declarator("a"), declarator("a", num(2)))

    assert duplicated_declarators(node["declarations"]) == []
    assert DeclarationDeduplicator().visit(node, None) is None


def test_destructuring_patterns_are_ignored():
    pattern = {"type": "VariableDeclarator",
               "id": {"type": "ObjectPattern", "properties": []}, "init": ident("o")}
    node = declaration(pattern, declarator("a"), declarator("a"))

    assert duplicated_declarators(node["declarations"]) == [2]


def test_input_node_is_not_mutated():
    node = declaration(declarator("a"), declarator("a"))
    DeclarationDeduplicator().visit(node, None)
    assert names(node) == ["a", "a"]


def test_malformed_declarator_is_a_transform_error():
    node = declaration({"type": "VariableDeclarator"})
    with pytest.raises(TransformError, match="Failed to remove duplicated variables"):
        DeclarationDeduplicator().visit(node, None)


def test_applies_to_every_declaration_in_tree():
    tree = program(declaration(declarator("t"), declarator("t")),
                   declaration(declarator("u"), declarator("v"), declarator("u")))

    result = run_pass(tree, DeclarationDeduplicator())
    body = result["program"]["body"]

    assert names(body[0]) == ["t"]
    assert names(body[1]) == ["u", "v"]
