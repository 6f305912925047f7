"""
Módulo de configuración del puente AST.

Utiliza `pydantic-settings` para cargar la configuración desde variables
de entorno y/o archivos `.env`. Todos los atributos definidos en `Settings`
pueden sobreescribirse mediante variables de entorno con el prefijo
`BRIDGE_`.

Ejemplo de `.env`:
    BRIDGE_PORT=5000
    BRIDGE_MAX_BODY_BYTES=1000000
    BRIDGE_COMPILER_COMMAND=mono
    BRIDGE_COMPILER_ARGS=fable/Fable.exe
    BRIDGE_TRANSFORM_PASSES=macro-expressions,do-expressions,remove-duplicated-var-declarators
    BRIDGE_LOG_LEVEL=DEBUG
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PASSES = (
    "macro-expressions,"
    "do-expressions,"
    "remove-duplicated-var-declarators,"
    "shorthand-properties"
)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """
    Configuración central del puente.

    Atributos principales:
        HOST / PORT:
            Dirección de escucha del servidor HTTP.
        MAX_BODY_BYTES:
            Tamaño máximo del cuerpo de una petición; por encima se
            responde 413 sin reenviar nada al compilador.
        MAX_MESSAGE_BYTES:
            Tamaño máximo de un mensaje del compilador (una línea).
        READ_CHUNK_SIZE:
            Tamaño de lectura de la salida del compilador.
        COMPILER_COMMAND / COMPILER_ARGS:
            Ejecutable del compilador y sus argumentos fijos (separados por
            coma). El documento JSON de opciones se añade al final.
        COMPILER_CWD:
            Directorio de trabajo del compilador. Las rutas relativas de
            COMPILER_ARGS (`fable/Fable.exe`) se resuelven contra él; sin
            valor, contra el directorio desde el que se arranca el puente.
        TRANSFORM_PASSES:
            Pasadas del pipeline, en orden, separadas por coma.
        ECHO_REQUEST_IDS:
            Prefija cada línea enviada con `<id>\\t` para que el compilador
            pueda devolver el id en el campo `id` del resultado.
        LOG_LEVEL:
            Nivel del logging estándar.
    """

    APP_NAME: str = "ast_bridge"
    ENV: str = "dev"

    HOST: str = "0.0.0.0"
    PORT: int = 5000

    # 1e6 bytes ~ 1MB
    MAX_BODY_BYTES: int = 1_000_000
    MAX_MESSAGE_BYTES: int = 64 * 1024 * 1024
    READ_CHUNK_SIZE: int = 64 * 1024

    COMPILER_COMMAND: str = "mono"
    COMPILER_ARGS: str = "fable/Fable.exe"
    COMPILER_CWD: str | None = None

    TRANSFORM_PASSES: str = DEFAULT_PASSES
    ECHO_REQUEST_IDS: bool = False

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="BRIDGE_",
        extra="ignore",
    )

    @property
    def compiler_args(self) -> List[str]:
        return _split_csv(self.COMPILER_ARGS)

    @property
    def transform_passes(self) -> List[str]:
        return _split_csv(self.TRANSFORM_PASSES)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Instancia única de configuración usada en el resto de la app."""
    return Settings()
