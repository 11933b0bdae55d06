"""
clipboard.py — Copia texto al portapapeles del sistema.

No hay API estándar, así que se usa el comando de cada plataforma:
    macOS   → pbcopy
    Windows → clip
    Linux   → wl-copy, xclip o xsel (el primero que exista)
"""

from __future__ import annotations

import shutil
import subprocess
import sys

from isubo.utils.logger import get_logger

logger = get_logger("isubo.clipboard")

LINUX_COMMANDS = [
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
]


def _clipboard_command() -> list[str]:
    """
    Elige el comando de portapapeles disponible.

    Raises:
        RuntimeError: Si no hay ninguno instalado.
    """
    if sys.platform == "darwin":
        return ["pbcopy"]
    if sys.platform == "win32":
        return ["clip"]

    for comando in LINUX_COMMANDS:
        if shutil.which(comando[0]):
            return comando

    raise RuntimeError(
        "No se encontró un comando de portapapeles. "
        "Instala wl-clipboard, xclip o xsel."
    )


def copy_to_clipboard(text: str) -> None:
    """
    Copia `text` al portapapeles.

    Raises:
        RuntimeError: Si no hay comando disponible o el comando falla.
    """
    comando = _clipboard_command()
    try:
        subprocess.run(
            comando,
            input=text,
            text=True,
            encoding="utf-8",
            check=True,
            timeout=10,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired) as e:
        raise RuntimeError(f"No se pudo copiar al portapapeles: {e}") from e

    logger.debug(f"Copiados {len(text)} caracteres con {comando[0]}")
