"""Services layer - Framing, transform pipeline and code generation."""

from .framer import LineFramer
from .correlation import PendingResponses
from .codegen import CodeGenerator, generate
from .pipeline import TransformPipeline
from .bridge_service import BridgeService, normalize_request

__all__ = [
    "LineFramer",
    "PendingResponses",
    "CodeGenerator",
    "generate",
    "TransformPipeline",
    "BridgeService",
    "normalize_request",
]
