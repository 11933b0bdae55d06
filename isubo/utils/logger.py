"""
logger.py — Logging de isubo: consola Rich + archivo rotativo.

Cada mensaje va a dos lugares:
- La consola, con el tema de isubo (para quien corre la CLI)
- logs/isubo.log, rotando cada 5 MB (para revisar un deploy fallido)

El directorio del log se puede mover con ISUBO_LOG_DIR.

Uso:
    from isubo.utils.logger import get_logger, console
    logger = get_logger("isubo.deploy")
    logger.info("Desplegando 3 posts")
    logger.success("Issue #12 actualizado")
"""

from __future__ import annotations

import io
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from rich.console import Console
from rich.theme import Theme

_in_pytest = "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ

# La consola de Windows (cp1252) no imprime los símbolos ni títulos CJK.
# Dentro de pytest no se toca: rompe la captura de salida.
if sys.platform == "win32" and not _in_pytest:
    for _nombre in ("stdout", "stderr"):
        _stream = getattr(sys, _nombre)
        if hasattr(_stream, "buffer"):
            setattr(sys, _nombre, io.TextIOWrapper(
                _stream.buffer, encoding="utf-8", errors="replace"
            ))

isubo_theme = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "bold yellow",
    "error": "bold red",
    "step": "bold magenta",
    "muted": "dim",
})

console = Console(theme=isubo_theme)

_UNICODE = "utf" in (getattr(sys.stdout, "encoding", "") or "").lower()

# Prefijo de cada nivel: (unicode, ascii)
_PREFIJOS = {
    "info": ("·", "-"),
    "success": ("✔", "[OK]"),
    "warning": ("⚠", "[!]"),
    "error": ("✘", "[X]"),
}

_file_logger: logging.Logger | None = None


def _prefijo(nivel: str) -> str:
    unicode_, ascii_ = _PREFIJOS[nivel]
    return unicode_ if _UNICODE else ascii_


def _setup_file_logger() -> logging.Logger:
    """Crea (una sola vez) el logger del archivo rotativo."""
    global _file_logger
    if _file_logger is not None:
        return _file_logger

    if _in_pytest:
        _file_logger = logging.getLogger("isubo.null")
        _file_logger.addHandler(logging.NullHandler())
        return _file_logger

    log_dir = Path(os.environ.get("ISUBO_LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    _file_logger = logging.getLogger("isubo.file")
    _file_logger.setLevel(logging.DEBUG)
    _file_logger.propagate = False

    if not _file_logger.handlers:
        handler = RotatingFileHandler(
            log_dir / "isubo.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-7s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        _file_logger.addHandler(handler)

    return _file_logger


class IsuboLogger:
    """
    Logger con nombre (ej: "isubo.publisher") que escribe en consola y archivo.

    debug() solo va al archivo: sirve para detalles que ensuciarían
    la salida de la CLI, como los patches de frontmatter.
    """

    def __init__(self, name: str):
        self._name = name
        self._file = _setup_file_logger()

    def _emit(self, nivel: str, level: int, message: str) -> None:
        console.print(f"[{nivel}]{_prefijo(nivel)} {message}[/{nivel}]")
        self._file.log(level, f"{self._name}: {message}")

    def debug(self, message: str) -> None:
        self._file.debug(f"{self._name}: {message}")

    def info(self, message: str) -> None:
        self._emit("info", logging.INFO, message)

    def success(self, message: str) -> None:
        self._emit("success", logging.INFO, message)

    def warning(self, message: str) -> None:
        self._emit("warning", logging.WARNING, message)

    def error(self, message: str) -> None:
        self._emit("error", logging.ERROR, message)


def get_logger(name: str = "isubo") -> IsuboLogger:
    """Logger de un módulo; el nombre aparece en cada línea del archivo."""
    return IsuboLogger(name)
