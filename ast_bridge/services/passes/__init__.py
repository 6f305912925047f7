"""Registro de pasadas del pipeline.

Las pasadas se configuran por nombre (setting `TRANSFORM_PASSES`) y se
aplican en el orden indicado.
"""

from typing import Callable, Dict, Iterable, List

from ...domain.errors import StartupError
from .base import TransformPass
from .macro_expander import MacroExpander
from .declaration_dedup import DeclarationDeduplicator
from .do_expressions import DoExpressionLowering
from .shorthand_properties import ShorthandPropertyLowering


PASS_REGISTRY: Dict[str, Callable[[], TransformPass]] = {
    MacroExpander.name: MacroExpander,
    DoExpressionLowering.name: DoExpressionLowering,
    DeclarationDeduplicator.name: DeclarationDeduplicator,
    ShorthandPropertyLowering.name: ShorthandPropertyLowering,
}


def build_passes(names: Iterable[str]) -> List[TransformPass]:
    """
    Instancia las pasadas en el orden pedido.

    Raises:
        StartupError: si algún nombre no está registrado.
    """
    passes = []
    for name in names:
        factory = PASS_REGISTRY.get(name)
        if factory is None:
            raise StartupError(
                f"Pasada desconocida: {name!r} (disponibles: {', '.join(PASS_REGISTRY)})"
            )
        passes.append(factory())
    return passes


__all__ = [
    "TransformPass",
    "MacroExpander",
    "DeclarationDeduplicator",
    "DoExpressionLowering",
    "ShorthandPropertyLowering",
    "PASS_REGISTRY",
    "build_passes",
]
