"""
git_ops.py — Las primitivas Git que usa el publicador de assets.

Usa GitPython para interactuar con el repositorio del blog. Cada
método es una operación Git atómica por sí sola; la transacción
(backup, commit, push y rollback) la arma AssetPublisher encima.

Operaciones:
    status()          → RepositoryStatus (staged + todos los cambios)
    latest_commit()   → hash de HEAD (ancla para rollback)
    add(paths)        → git add -- paths
    commit(message)   → hash del commit nuevo
    reset_mixed(ref)  → git reset [ref] (index sí, working tree no)
    undo_initial_commit() → borra el branch si el commit era el primero
    current_branch()  → nombre del branch actual
    push(branch)      → git push <remote> <branch>

Uso:
    from isubo.publishing.git_ops import GitTransport
    git = GitTransport("/ruta/al/blog")
    status = git.status()
    if not status.is_clean:
        git.add(["source/post.md"])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import git as gitpython

from isubo.errors import PushRejectedError
from isubo.utils.logger import get_logger

logger = get_logger("isubo.git")


@dataclass
class FileStatus:
    """
    Un archivo cambiado según git status --porcelain.

    Attributes:
        path: Ruta relativa a la raíz del repo (formato posix)
        index: Estado en el index (X de porcelain)
        working_dir: Estado en el working tree (Y de porcelain)
        orig_path: Ruta original si el cambio es un rename o copia
    """
    path: str
    index: str = " "
    working_dir: str = " "
    orig_path: str = ""

    @property
    def is_staged(self) -> bool:
        return self.index not in (" ", "?", "!")


@dataclass
class RepositoryStatus:
    """
    Foto del working tree en un momento dado.

    No se cachea: cada paso del publicador pide una nueva.
    """
    files: list[FileStatus] = field(default_factory=list)

    @property
    def staged(self) -> list[str]:
        rutas = []
        for f in self.files:
            if not f.is_staged:
                continue
            rutas.append(f.path)
            if f.orig_path:
                rutas.append(f.orig_path)
        return rutas

    @property
    def is_clean(self) -> bool:
        return not self.files


def parse_porcelain(output: str) -> RepositoryStatus:
    """
    Parsea la salida de `git status --porcelain=v1 -z`.

    Con -z cada entrada termina en NUL y los renames traen la ruta
    original como entrada extra.
    """
    archivos = []
    entradas = output.split("\0")
    i = 0
    while i < len(entradas):
        entrada = entradas[i]
        i += 1
        if len(entrada) < 4:
            continue
        x, y, ruta = entrada[0], entrada[1], entrada[3:]
        original = ""
        if x in ("R", "C") and i < len(entradas):
            original = entradas[i]
            i += 1
        archivos.append(FileStatus(path=ruta, index=x, working_dir=y, orig_path=original))
    return RepositoryStatus(files=archivos)


class GitTransport:
    """
    Acceso a un único repositorio local.

    Args:
        repo_path: Cualquier ruta dentro del working tree
        remote: Remoto al que se pushea (default: origin)
    """

    def __init__(self, repo_path: str | Path, remote: str = "origin"):
        self._repo_path = Path(repo_path)
        self._remote = remote
        self._repo: gitpython.Repo | None = None

    def _get_repo(self) -> gitpython.Repo:
        """
        Obtiene o abre el repositorio Git.

        Raises:
            git.InvalidGitRepositoryError: Si la ruta no es un repo Git.
            FileNotFoundError: Si la ruta no existe.
        """
        if self._repo is None:
            if not self._repo_path.exists():
                raise FileNotFoundError(
                    f"No se encontró el repositorio en: {self._repo_path}"
                )
            self._repo = gitpython.Repo(self._repo_path, search_parent_directories=True)
        return self._repo

    @property
    def root(self) -> Path:
        """Raíz del working tree (las rutas de status son relativas a ella)."""
        return Path(self._get_repo().working_tree_dir).resolve()

    def status(self) -> RepositoryStatus:
        salida = self._get_repo().git.status("--porcelain=v1", "-z", "-uall")
        return parse_porcelain(salida)

    def latest_commit(self) -> str:
        repo = self._get_repo()
        if not repo.head.is_valid():
            return ""
        return repo.head.commit.hexsha

    def add(self, paths: list[str | Path]) -> None:
        if not paths:
            return
        self._get_repo().git.add("--", *[str(p) for p in paths])

    def commit(self, message: str) -> str:
        repo = self._get_repo()
        repo.git.commit("-m", message)
        hexsha = repo.head.commit.hexsha
        logger.info(f"Commit creado: {hexsha[:7]} — {message}")
        return hexsha

    def reset_mixed(self, ref: str | None = None) -> None:
        """git reset [ref]: mueve HEAD (si hay ref) y limpia el index, sin tocar archivos."""
        repo = self._get_repo()
        if ref:
            repo.git.reset("--mixed", ref)
        else:
            repo.git.reset("--mixed")

    def undo_initial_commit(self) -> None:
        """
        Deshace el primer commit de un repo que no tenía historia.

        No hay commit al que volver con reset: se borra el branch
        (HEAD queda sin nacer) y se vacía el index. Los archivos quedan.
        """
        repo = self._get_repo()
        repo.git.update_ref("-d", "HEAD")
        repo.git.read_tree("--empty")

    def current_branch(self) -> str:
        return self._get_repo().active_branch.name

    def push(self, branch: str) -> None:
        """
        Pushea el branch al remoto configurado.

        Raises:
            git.GitCommandError: Si git push falla.
            PushRejectedError: Si el remoto rechaza alguna ref.
        """
        remote = self._get_repo().remote(self._remote)
        resultados = remote.push(branch)
        fallo = (
            gitpython.PushInfo.ERROR
            | gitpython.PushInfo.REJECTED
            | gitpython.PushInfo.REMOTE_REJECTED
            | gitpython.PushInfo.REMOTE_FAILURE
        )
        for info in resultados:
            if info.flags & fallo:
                raise PushRejectedError(
                    f"El remoto rechazó {info.local_ref or branch}: {info.summary.strip()}"
                )
        logger.success(f"Push exitoso a {self._remote}/{branch}")

    def push_command(self, branch: str) -> str:
        """El comando equivalente, solo para mostrarlo al usuario."""
        return f"git push {self._remote} {branch}"
