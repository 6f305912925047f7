from .ast_models import (
    Node, Replacement, BabelNode, MacroLiteral,
    VariableDeclarator
)

from .errors import (
    BridgeError, StartupError, TemplateSyntaxError,
    TransformError, FatalTransformError, CodegenError, CompilerExitedError
)

from .ast_utils import (
    is_node, is_type, is_statement, is_expression, child_items, binding_identifiers,
    identifier, numeric_literal, void_zero, expression_statement,
    block_statement, sequence_expression, assignment_expression,
    conditional_expression, return_statement, call_expression,
    function_expression, variable_declaration
)

__all__ = [
    "Node", "Replacement", "BabelNode", "MacroLiteral",
    "VariableDeclarator",
    "BridgeError", "StartupError", "TemplateSyntaxError",
    "TransformError", "FatalTransformError", "CodegenError", "CompilerExitedError",
    "is_node", "is_type", "is_statement", "is_expression", "child_items",
    "binding_identifiers",
    "identifier", "numeric_literal", "void_zero", "expression_statement",
    "block_statement", "sequence_expression", "assignment_expression",
    "conditional_expression", "return_statement", "call_expression",
    "function_expression", "variable_declaration"
]
