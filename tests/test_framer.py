"""
test_framer.py - Encuadre de la salida del compilador en mensajes
================================================================
"""

import json

import pytest

from ast_bridge.services.framer import LineFramer


STREAM = b'{"type":"File"}\n{"type":"Error","message":"boom"}\n{"a":[1,2,3]}\n'


def _feed_all(framer, chunks):
    out = []
    for chunk in chunks:
        out.extend(framer.feed(chunk))
    return out


# ============================================================================
# CORRECCIÓN DEL ENCUADRE
# ============================================================================

@pytest.mark.parametrize("size", [1, 2, 3, 7, 16, len(STREAM)])
def test_any_chunking_yields_same_messages(size):
    chunks = [STREAM[i:i + size] for i in range(0, len(STREAM), size)]
    messages = _feed_all(LineFramer(), chunks)

    assert b"".join(messages) == STREAM
    assert len(messages) == 3
    assert all(m.endswith(b"\n") for m in messages)


def test_every_split_point_preserves_messages():
    for cut in range(len(STREAM) + 1):
        framer = LineFramer()
        messages = framer.feed(STREAM[:cut]) + framer.feed(STREAM[cut:])
        assert messages == STREAM.splitlines(keepends=True)


def test_chunk_with_several_lines_emits_all_of_them():
    framer = LineFramer()
    assert framer.feed(b"a\nb\nc") == [b"a\n", b"b\n"]
    assert framer.pending == 1
    assert framer.feed(b"\n") == [b"c\n"]
    assert framer.pending == 0


def test_incomplete_fragment_is_kept():
    framer = LineFramer()
    assert framer.feed(b'{"type":') == []
    assert framer.pending == len(b'{"type":')
    framer.reset()
    assert framer.pending == 0


# ============================================================================
# LÍMITE DE TAMAÑO
# ============================================================================

def test_message_at_limit_is_accepted():
    framer = LineFramer(max_message_bytes=10)
    assert framer.feed(b"x" * 10 + b"\n") == [b"x" * 10 + b"\n"]


def test_oversized_line_inside_chunk_becomes_error_document():
    framer = LineFramer(max_message_bytes=10)
    messages = framer.feed(b"x" * 20 + b"\n{}\n")

    assert len(messages) == 2
    error = json.loads(messages[0])
    assert error == {"type": "Error", "message": "Protocol message exceeds 10 bytes"}
    assert messages[1] == b"{}\n"


def test_oversized_fragment_is_discarded_until_line_feed():
    framer = LineFramer(max_message_bytes=10)

    first = framer.feed(b"x" * 11)
    assert len(first) == 1
    assert json.loads(first[0])["type"] == "Error"

    # El resto del mensaje se descarta sin un segundo error
    assert framer.feed(b"x" * 100) == []
    assert framer.feed(b"yyy\n{}\n") == [b"{}\n"]


def test_invalid_limit_is_rejected():
    with pytest.raises(ValueError):
        LineFramer(max_message_bytes=0)
