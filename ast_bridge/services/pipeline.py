"""
pipeline.py — Pipeline de transformación de un mensaje del compilador
=====================================================================

Recibe un documento ya decodificado (documento de error o AST) y produce el
texto de la respuesta:

    documento de error  → su `message`, sin ejecutar pasadas
    documento AST       → pasadas en orden → generador de código
"""

import logging
from typing import Any, List, Optional, Sequence

from ..domain.ast_models import Node
from ..domain.ast_utils import is_node
from ..domain.errors import CodegenError, FatalTransformError, TransformError
from ..schemas import as_error_document
from .codegen import CodeGenerator
from .passes.base import TransformPass
from .traversal import run_pass

logger = logging.getLogger(__name__)


class TransformPipeline:
    """
    Secuencia ordenada de pasadas seguida de la generación de código.

    Cada pasada recorre el árbol completo que dejó la anterior. Si una pasada
    falla, el mensaje se aborta y nunca se imprime un árbol a medio
    transformar.
    """

    def __init__(self, passes: Sequence[TransformPass], generator: Optional[CodeGenerator] = None):
        self.passes: List[TransformPass] = list(passes)
        self.generator = generator or CodeGenerator()

    @property
    def pass_names(self) -> List[str]:
        return [p.name for p in self.passes]

    def transform(self, tree: Node) -> Node:
        """
        Aplica todas las pasadas a `tree` y devuelve el árbol resultante.

        Raises:
            FatalTransformError: se propaga sin cambios.
            TransformError: cualquier otro fallo, etiquetado con la pasada.
        """
        for transform_pass in self.passes:
            try:
                tree = run_pass(tree, transform_pass)
            except FatalTransformError:
                raise
            except TransformError as e:
                if e.pass_name is None:
                    e.pass_name = transform_pass.name
                raise
            except Exception as e:
                raise TransformError(f"{type(e).__name__}: {e}", transform_pass.name) from e
        return tree

    def run(self, document: Any) -> str:
        """
        Produce el texto de respuesta para un documento del compilador.

        Raises:
            TransformError, FatalTransformError, CodegenError
        """
        error = as_error_document(document)
        if error is not None:
            return error.message

        if not is_node(document):
            raise TransformError(f"El mensaje no es un nodo AST: {str(document)[:200]}")

        tree = self.transform(document)
        try:
            return self.generator.generate(tree)
        except CodegenError:
            raise
        except Exception as e:
            # nodos con campos ausentes o de tipo inesperado, anidamiento excesivo
            raise CodegenError(f"{type(e).__name__}: {e}") from e
