"""
test_pipeline.py - Pipeline completo: documento → texto
=======================================================
"""

import pytest

from ast_bridge.domain.errors import CodegenError, FatalTransformError, StartupError, TransformError
from ast_bridge.services.passes import TransformPass, build_passes
from ast_bridge.services.pipeline import TransformPipeline

from conftest import do_expression, ident, macro, num, program, stmt, var


class RecordingPass(TransformPass):
    name = "recording"
    node_types = frozenset({"Identifier", "NumericLiteral", "File", "Program"})

    def __init__(self):
        self.visited = []

    def visit(self, node, ctx):
        self.visited.append(node["type"])
        return None


class BrokenPass(TransformPass):
    name = "broken"
    node_types = frozenset({"Identifier"})

    def visit(self, node, ctx):
        raise KeyError("missing")


def test_error_document_passes_through_without_running_passes():
    recorder = RecordingPass()
    pipeline = TransformPipeline([recorder])

    assert pipeline.run({"type": "Error", "message": "boom"}) == "boom"
    assert recorder.visited == []


def test_passes_run_in_order_over_whole_tree():
    recorder = RecordingPass()
    TransformPipeline([recorder]).run(program(stmt(ident("a"))))

    assert recorder.visited == ["File", "Program", "Identifier"]


def test_default_passes_expand_macros(pipeline):
    assert pipeline.run(program(stmt(macro("$0 + $1", num(2), num(3))))) == "2 + 3;"


def test_default_passes_lower_do_expressions_and_dedup(pipeline):
    tree = program(
        var(a=do_expression(var(t=num(1)), stmt(ident("t")))),
        var(b=do_expression(var(t=num(2)), stmt(ident("t")))),
    )

    assert pipeline.run(tree) == "var t;\nvar a = (t = 1, t);\nvar b = (t = 2, t);"


def test_unexpected_exception_is_wrapped_with_pass_name():
    pipeline = TransformPipeline([BrokenPass()])

    with pytest.raises(TransformError) as info:
        pipeline.run(program(stmt(ident("a"))))
    assert info.value.pass_name == "broken"
    assert str(info.value).startswith("[broken] KeyError")


def test_malformed_node_fails_in_codegen(pipeline):
    with pytest.raises(CodegenError) as info:
        pipeline.run(program({"type": "ThrowStatement"}))
    assert str(info.value).startswith("KeyError")


def test_fatal_error_propagates(pipeline):
    with pytest.raises(FatalTransformError):
        pipeline.run(program(stmt(macro("$0 +", num(1)))))


def test_non_node_document_is_rejected(pipeline):
    with pytest.raises(TransformError):
        pipeline.run([1, 2, 3])


def test_pass_names(pipeline):
    assert pipeline.pass_names == [
        "macro-expressions",
        "do-expressions",
        "remove-duplicated-var-declarators",
        "shorthand-properties",
    ]


def test_unknown_pass_is_a_startup_error():
    with pytest.raises(StartupError):
        build_passes(["macro-expressions", "no-such-pass"])
