"""Modelos del AST de Babel usados por las pasadas.

El árbol completo viaja como JSON plano (`dict`); solo los nodos que las
pasadas inspeccionan se validan con Pydantic:
- MacroLiteral: StringLiteral con bandera de macro y argumentos
- VariableDeclarator: elemento de una lista de declaraciones

Los campos no declarados se conservan (`extra="allow"`).
"""

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field as PydField, field_validator


# Nodo genérico del AST (objeto JSON con discriminador `type`)
Node = Dict[str, Any]

# Resultado de un visitante: None (sin cambios), un nodo o una secuencia
Replacement = Union[None, Node, List[Node]]


class BabelNode(BaseModel):
    """Clase base: cualquier nodo con discriminador `type`."""
    model_config = ConfigDict(extra="allow")

    type: str


class MacroLiteral(BabelNode):
    """
    StringLiteral que puede representar una plantilla de código.

    Atributos:
        value (str): texto literal; si `macro` es True, la plantilla.
        macro (bool): marca el literal como plantilla.
        args (List[Node]): sub-árboles ligados a `$0`, `$1`, ...
    """
    type: Literal["StringLiteral"] = "StringLiteral"
    value: str
    macro: bool = False
    args: List[Dict[str, Any]] = PydField(default_factory=list)

    @field_validator("args", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    def bindings(self) -> Dict[str, Node]:
        """Mapa posicional `$i` → i-ésimo argumento."""
        return {f"${i}": arg for i, arg in enumerate(self.args)}


class VariableDeclarator(BabelNode):
    """Un declarador `id = init` dentro de una VariableDeclaration."""
    type: Literal["VariableDeclarator"] = "VariableDeclarator"
    id: Dict[str, Any]
    init: Optional[Dict[str, Any]] = None

    @property
    def binding_name(self) -> Optional[str]:
        """Nombre ligado si `id` es un Identifier simple; None para patrones."""
        if self.id.get("type") == "Identifier" and isinstance(self.id.get("name"), str):
            return self.id["name"]
        return None

