"""Esquemas de los documentos que cruzan la frontera con el compilador.

Define los modelos de:
- `ErrorDocument`: línea de error emitida por el compilador
  (`{"type": "Error", "message": "..."}`)
- `CompilerOptions`: documento de configuración que recibe el compilador
  al arrancar (construido a partir de los argumentos `--clave valor`)

Utiliza Pydantic para validación automática y serialización JSON.
"""

from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError


# DOCUMENTOS DEL PROTOCOLO

class ErrorDocument(BaseModel):
    """
    Documento de error del compilador.

    Atributos:
        type (str): siempre "Error".
        message (str): texto que se devuelve tal cual al llamador.
    """
    model_config = ConfigDict(extra="allow")

    type: Literal["Error"] = "Error"
    message: str


def as_error_document(document: Any) -> Optional[ErrorDocument]:
    """
    Devuelve el documento como `ErrorDocument` si lo es, o None.

    Un documento con `type == "Error"` pero sin `message` de texto no se
    considera documento de error válido.
    """
    if not isinstance(document, dict) or document.get("type") != "Error":
        return None
    try:
        return ErrorDocument.model_validate(document)
    except ValidationError:
        return None


# CONFIGURACIÓN DEL COMPILADOR

class CompilerOptions(BaseModel):
    """
    Configuración pasada al compilador externo al arrancarlo.

    Atributos:
        lib (str): directorio de bibliotecas.
        outDir (str): directorio de salida.
        symbols (list | str): símbolos de compilación condicional.
        watch (bool): modo observación (`--watch` no lleva valor).
        code (Optional[str]): código o ruta a compilar; obligatorio.

    Cualquier otro `--clave valor` se conserva como campo extra.
    """
    model_config = ConfigDict(extra="allow")

    lib: Optional[str] = "."
    outDir: Optional[str] = "."
    symbols: Union[List[str], str, None] = Field(default_factory=list)
    watch: bool = False
    code: Optional[str] = None

    def to_argument(self) -> str:
        """Serializa las opciones como el único argumento JSON del compilador."""
        return self.model_dump_json()