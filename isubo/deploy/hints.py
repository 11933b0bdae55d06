"""
hints.py — Hints de progreso del despliegue.

Son puramente cosméticos: el orquestador los llama al empezar, terminar
o fallar cada post, pero nunca dependen de ellos sus decisiones. Cada
campo trae un no-op por defecto, así quien los inyecta solo define
los que le interesan.

Uso:
    hints = DeployHints(succ=lambda path: print(f"OK {path}"))
    orchestrator = DeployOrchestrator(..., hints=hints)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from isubo.deploy.models import DeployVerb


def _noop(*_args: Any) -> None:
    return None


@dataclass
class DeployHints:
    """
    Callbacks de progreso por post.

    Attributes:
        start: (verbo, ruta) al empezar el job
        start_update: (verbo, ruta) cuando publish decide create/update
        succ: (ruta) al terminar bien
        fail: (verbo, ruta, {"err_msg", "title"}) al fallar
    """
    start: Callable[[DeployVerb, Path], None] = _noop
    start_update: Callable[[DeployVerb, Path], None] = _noop
    succ: Callable[[Path], None] = _noop
    fail: Callable[[DeployVerb, Path, dict[str, str]], None] = _noop
