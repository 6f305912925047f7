"""
Infrastructure layer - External dependencies (Lark, compiler subprocess)
"""

from .template_parser import TemplateParser, get_template_parser, load_grammar
from .compiler_process import CompilerProcess

__all__ = ["TemplateParser", "get_template_parser", "load_grammar", "CompilerProcess"]
