"""Configuración y gestión del parser de plantillas.

Responsabilidad: cargar la gramática `template.lark`, configurar Lark y
parsear el texto de una plantilla de macro a parse tree.
"""

import re
from functools import lru_cache
from pathlib import Path

from lark import Lark, Token
from lark.exceptions import LarkError
from lark.lexer import BasicLexer

from ..domain.errors import TemplateSyntaxError


GRAMMAR_PATH = Path(__file__).parents[1] / "grammar" / "template.lark"


@lru_cache(maxsize=1)
def load_grammar(path: Path = GRAMMAR_PATH) -> str:
    """
    Lee la gramática de plantillas.

    Raises:
        FileNotFoundError: si el archivo no está junto al paquete
    """
    return path.read_text(encoding="utf-8")


# ============================================================================
# LITERALES DEPENDIENTES DEL CONTEXTO
# ============================================================================

_SKIP_RE = re.compile(r"(?:\s+|//[^\n]*|/\*[\s\S]*?\*/)*")
_REGEX_RE = re.compile(r"/(?![*/])(?:[^/\\\[\n]|\\.|\[(?:[^\]\\\n]|\\.)*\])+/[A-Za-z]*")
_STRING_RE = re.compile(r"\"(?:[^\"\\\n]|\\.)*\"|'(?:[^'\\\n]|\\.)*'")

# Tras estos tokens viene un operador, así que `/` es división
_OPERAND_TYPES = frozenset({"NAME", "NUMBER", "STRING", "REGEX", "TEMPLATE"})
_OPERAND_VALUES = frozenset({")", "]", "}", "this", "super", "true", "false", "null"})


def _regex_allowed(last_token) -> bool:
    if last_token is None:
        return True
    if last_token.type in _OPERAND_TYPES:
        return False
    return str(last_token) not in _OPERAND_VALUES


def _substitution_end(source: str, pos: int, end: int):
    """Posición de la `}` que cierra una sustitución `${...}`."""
    depth = 0
    while pos < end:
        char = source[pos]
        if char in "\"'":
            match = _STRING_RE.match(source, pos, end)
            if match is None:
                return None
            pos = match.end()
            continue
        if char == "`":
            scanned = scan_template_literal(source, pos, end)
            if scanned is None:
                return None
            pos = scanned[0]
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                return pos
            depth -= 1
        pos += 1
    return None


def scan_template_literal(source: str, start: int = 0, end: int = None):
    """
    Recorre la plantilla `...` que empieza en `source[start]`.

    Returns:
        (fin, trozos, sustituciones): posición tras la comilla de cierre,
        el texto en crudo entre sustituciones y el código de cada `${...}`.
        None si la plantilla no se cierra.
    """
    end = len(source) if end is None else end
    chunks, substitutions = [], []
    pos = chunk_start = start + 1
    while pos < end:
        char = source[pos]
        if char == "\\":
            pos += 2
        elif char == "`":
            chunks.append(source[chunk_start:pos])
            return pos + 1, chunks, substitutions
        elif source.startswith("${", pos, end):
            chunks.append(source[chunk_start:pos])
            close = _substitution_end(source, pos + 2, end)
            if close is None:
                return None
            substitutions.append(source[pos + 2:close])
            pos = chunk_start = close + 1
        else:
            pos += 1
    return None


class TemplateLexer(BasicLexer):
    """Lexer básico que además reconoce expresiones regulares y plantillas.

    `/` abre una expresión regular sólo donde se espera un operando, lo que
    decide el token anterior. Una plantilla `...` se emite como un único
    token TEMPLATE; el builder parsea sus sustituciones.
    """

    __future_interface__ = 2

    def next_token(self, lex_state, parser_state=None) -> Token:
        line_ctr = lex_state.line_ctr
        source, end = lex_state.text.text, lex_state.text.end
        skipped = _SKIP_RE.match(source, line_ctr.char_pos, end).group()
        if skipped:
            line_ctr.feed(skipped)

        pos = line_ctr.char_pos
        value = type_ = None
        if pos < end and source[pos] == "`":
            scanned = scan_template_literal(source, pos, end)
            if scanned is not None:
                value, type_ = source[pos:scanned[0]], "TEMPLATE"
        elif pos < end and source[pos] == "/" and _regex_allowed(lex_state.last_token):
            match = _REGEX_RE.match(source, pos, end)
            if match is not None:
                value, type_ = match.group(), "REGEX"

        if value is None:
            return super().next_token(lex_state, parser_state)

        token = Token(type_, value, pos, line_ctr.line, line_ctr.column)
        line_ctr.feed(value)
        token.end_line = line_ctr.line
        token.end_column = line_ctr.column
        token.end_pos = line_ctr.char_pos
        lex_state.last_token = token
        return token


# ============================================================================
# PARSER
# ============================================================================

class LarkParserConfig:
    """Configuración del parser Earley.

    Earley tolera las ambigüedades propias de JavaScript (bloque frente a
    objeto literal, punto y coma opcional); las prioridades de la gramática
    deciden. El lexer convierte palabras reservadas en tokens propios.
    """

    START = "start"
    PARSER = "earley"
    LEXER = TemplateLexer
    AMBIGUITY = "resolve"


class TemplateParser:
    """Parser de plantillas basado en Lark (una única instancia por proceso)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._lark = Lark(
                load_grammar(),
                start=LarkParserConfig.START,
                parser=LarkParserConfig.PARSER,
                lexer=LarkParserConfig.LEXER,
                ambiguity=LarkParserConfig.AMBIGUITY,
            )
            cls._instance = instance
        return cls._instance

    def parse(self, source: str):
        """Parsea el texto de una plantilla.

        Args:
            source: Código JavaScript de la plantilla

        Returns:
            Lark Tree

        Raises:
            TemplateSyntaxError: Si la plantilla no es válida
        """
        try:
            return self._lark.parse(source)
        except LarkError as e:
            raise TemplateSyntaxError(f"Error de sintaxis en plantilla: {e}") from e


@lru_cache(maxsize=1)
def get_template_parser() -> TemplateParser:
    return TemplateParser()
