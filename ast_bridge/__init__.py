"""AST Bridge.

Puente HTTP entre llamadores y un compilador externo que emite ASTs de Babel
en formato JSON (una línea por mensaje). Cada AST recibido se reescribe con
una secuencia ordenada de pasadas y se devuelve como código JavaScript.

Arquitectura:
    - api/: FastAPI endpoints (HTTP layer)
    - domain/: Modelos del dominio (AST, errores)
    - infrastructure/: Dependencias externas (Lark, proceso compilador)
    - services/: Framing, pipeline de pasadas, generación de código
    - schemas.py: Documentos del protocolo (Pydantic)

Usage:
    ast-bridge --code src/main.fsx --outDir out
"""

__version__ = "1.0.0"
