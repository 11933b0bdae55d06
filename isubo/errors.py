"""
errors.py — Excepciones propias de isubo.

Todas heredan de IsuboError y además de la excepción estándar que
mejor describe el problema, así el código que ya atrapa ValueError
o FileNotFoundError sigue funcionando.
"""

from __future__ import annotations


class IsuboError(Exception):
    """Base de todos los errores de isubo."""


class ConfigError(IsuboError, ValueError):
    """La configuración es inválida o está incompleta."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__("Configuración inválida:\n- " + "\n- ".join(problems))


class PostNotFoundError(IsuboError, FileNotFoundError):
    """El post pedido no existe en disco."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        super().__init__(f"No se encontró el post: {filepath}")


class MissingIssueNumberError(IsuboError, ValueError):
    """Se pidió actualizar un post que nunca fue creado como issue."""

    def __init__(self, filepath: str):
        self.filepath = filepath
        super().__init__(
            f"El post no tiene issue_number en su frontmatter: {filepath}\n"
            "Usa 'create' o 'publish' primero."
        )


class AssetRecordError(IsuboError, ValueError):
    """Un registro de assets trae rutas que no son absolutas."""


class JobTimeoutError(IsuboError, TimeoutError):
    """Un job excedió su tiempo máximo dentro del runner."""

    def __init__(self, index: int, timeout: float):
        self.index = index
        self.timeout = timeout
        super().__init__(f"Job #{index} excedió el timeout de {timeout:g}s")


class PushRejectedError(IsuboError, RuntimeError):
    """El remoto rechazó (total o parcialmente) el push."""
