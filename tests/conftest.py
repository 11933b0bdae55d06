"""
conftest.py — Fixtures compartidas.

- FakeTransport: repo Git en memoria con inyección de fallos por paso
- git_blog: repo Git real (GitPython) con un remoto bare para pushear
- run_async: ejecuta una coroutine en un loop temporal
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import pytest

from isubo.config import config_from_dict
from isubo.publishing.git_ops import FileStatus, RepositoryStatus

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git no instalado")


def _run_async(coro):
    """Ejecuta una coroutine en un loop temporal."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class FakeTransport:
    """
    Imita GitTransport sobre un modelo mínimo del repo.

    - changed: rutas relativas con cambios en el working tree
    - index: rutas en stage (siempre subconjunto de changed)
    - commits: sha → (rutas, padre, mensaje)

    `fail_on` mapea el nombre de una operación a la excepción que
    debe lanzar. reset_mixed con ref se llama "reset_to".
    `missing` son rutas que git ya no reconoce: add falla si recibe alguna.
    """

    def __init__(self, root, changed=(), staged=(), head="base"):
        self.root = Path(root).resolve()
        self.changed = set(changed) | set(staged)
        self.index = set(staged)
        self.head = head
        self.commits: dict[str, tuple[set[str], str, str]] = {}
        self.pushed: list[str] = []
        self.calls: list[str] = []
        self.fail_on: dict[str, Exception] = {}
        self.missing: set[str] = set()

    def _step(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_on:
            raise self.fail_on[name]

    def _rel(self, path) -> str:
        ruta = Path(path)
        if ruta.is_absolute():
            return ruta.resolve().relative_to(self.root).as_posix()
        return ruta.as_posix()

    def status(self) -> RepositoryStatus:
        self._step("status")
        return RepositoryStatus(files=[
            FileStatus(path=p, index="M" if p in self.index else " ", working_dir="M")
            for p in sorted(self.changed)
        ])

    def latest_commit(self) -> str:
        self._step("latest_commit")
        return self.head

    def add(self, paths) -> None:
        self._step("add")
        rutas = [self._rel(p) for p in paths]
        faltantes = [r for r in rutas if r in self.missing]
        if faltantes:
            raise RuntimeError(f"pathspec '{faltantes[0]}' did not match any files")
        for p in paths:
            rel = self._rel(p)
            if rel in self.changed:
                self.index.add(rel)

    def commit(self, message: str) -> str:
        self._step("commit")
        sha = f"c{len(self.commits) + 1}"
        self.commits[sha] = (set(self.index), self.head, message)
        self.changed -= self.index
        self.index = set()
        self.head = sha
        return sha

    def reset_mixed(self, ref=None) -> None:
        self._step("reset_to" if ref else "reset_mixed")
        if ref:
            while self.head != ref and self.head in self.commits:
                rutas, padre, _ = self.commits[self.head]
                self.changed |= rutas
                self.head = padre
        self.index = set()

    def undo_initial_commit(self) -> None:
        self._step("undo_initial_commit")
        while self.head in self.commits:
            rutas, padre, _ = self.commits[self.head]
            self.changed |= rutas
            self.head = padre
        self.index = set()

    def current_branch(self) -> str:
        return "master"

    def push(self, branch: str) -> None:
        self._step("push")
        self.pushed.append(self.head)

    def push_command(self, branch: str) -> str:
        return f"git push origin {branch}"


@pytest.fixture
def run_async():
    return _run_async


@pytest.fixture
def make_transport():
    """Devuelve la clase FakeTransport para construirla en cada test."""
    return FakeTransport


@pytest.fixture
def git_blog(tmp_path):
    """
    Repo real del blog con remoto bare y un commit inicial.

    Returns:
        (repo de trabajo, repo bare remoto, IsuboConfig apuntando al repo)
    """
    git = pytest.importorskip("git")
    if shutil.which("git") is None:
        pytest.skip("git no instalado")

    remoto = git.Repo.init(tmp_path / "remote.git", bare=True)
    repo = git.Repo.init(tmp_path / "blog", initial_branch="master")
    with repo.config_writer() as cw:
        cw.set_value("user", "name", "Isubo Test")
        cw.set_value("user", "email", "isubo@example.com")
        cw.set_value("commit", "gpgsign", "false")

    raiz = Path(repo.working_tree_dir)
    (raiz / "source").mkdir()
    (raiz / "README.md").write_text("# blog\n", encoding="utf-8")
    repo.git.add("README.md")
    repo.git.commit("-m", "init")
    repo.create_remote("origin", str(remoto.git_dir))
    repo.git.push("origin", "master")

    config = config_from_dict({
        "github": {"owner": "isaaxite", "repo": "blog", "token": "t0k3n"},
        "posts": {"source_dir": "source"},
    }, root_dir=raiz)
    return repo, remoto, config
