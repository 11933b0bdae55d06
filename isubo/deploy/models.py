"""
models.py — Tipos compartidos del despliegue.

- DeployVerb: create, update o publish (decide por post)
- PostJob: un post a desplegar con su verbo
- PublishOutcome: resultado de publish() por post (éxito o el error)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from isubo.publishing.issue_client import IssueResult


class DeployVerb(Enum):
    """Los tres verbos de despliegue."""
    CREATE = "create"
    UPDATE = "update"
    PUBLISH = "publish"


@dataclass(frozen=True)
class PostJob:
    """Un post a desplegar. Vive lo que dura su intento."""
    filepath: Path
    verb: DeployVerb


@dataclass
class PublishOutcome:
    """
    Resultado de publish() para un post.

    A diferencia de create/update, los fallos no se omiten: `result`
    trae la excepción en la posición del post.
    """
    filepath: Path
    verb: DeployVerb
    result: IssueResult | Exception

    @property
    def ok(self) -> bool:
        return not isinstance(self.result, Exception)
