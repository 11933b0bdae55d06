"""
asset_publisher.py — Commit y push transaccional de posts y sus assets.

Después de desplegar los posts como issues, las imágenes referenciadas
(y el markdown, que ahora trae issue_number) tienen que llegar al repo
remoto, porque el body del issue apunta a sus URLs raw.

Git no ofrece una transacción para "commit + push", así que se arma
una saga sobre comandos sueltos:

    CLEAN ─► BACKED_UP ─► COMMITTED ─► PUSHED ─► RESTORED
                 │             │           │
                 └─────────────┴───────────┴─► FAILED ─► ROLLING_BACK ─► ROLLED_BACK

Pasos:
    1. git status. Si está limpio, no hay nada que hacer.
    2. Anotar HEAD (ancla del rollback).
    3. Si el usuario tenía cosas en stage, sacarlas del index
       (git reset) y recordarlas. Encolar "volver a stagearlas".
    4. Elegir solo los archivos que están registrados Y cambiados.
    5. Si no queda ninguno, restaurar el stage y terminar.
    6. git add + git commit. Encolar "git reset <ancla>".
    7. git push <remote> <branch actual>.
    8. Éxito: vaciar la cola y re-stagear lo del usuario que no se pusheó.
    9. Error en cualquier paso: ejecutar la cola al revés (lo último
       primero). Si una compensación falla se reporta y se sigue con
       la siguiente; nunca se relanza.

Si el push falla a medias, el remoto puede haber recibido algo; eso no
se puede deshacer desde aquí, solo se reporta.

Uso:
    from isubo.publishing.asset_publisher import AssetPublisher, AssetRecord
    publisher = AssetPublisher(GitTransport(root), records)
    result = await publisher.push()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable

from isubo.errors import AssetRecordError
from isubo.publishing.git_ops import GitTransport, RepositoryStatus
from isubo.utils.logger import get_logger

logger = get_logger("isubo.publisher")


class PublishState(Enum):
    """Estados de un intento de publicación."""
    CLEAN = "clean"
    BACKED_UP = "backed_up"
    NOTHING_TO_PUSH = "nothing_to_push"
    COMMITTED = "committed"
    PUSHED = "pushed"
    RESTORED = "restored"
    FAILED = "failed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"


class RecoverKind(Enum):
    """Tipos de acción compensatoria que sabe ejecutar el publicador."""
    RESTAGE_PATHS = "restage_paths"
    RESET_TO_COMMIT = "reset_to_commit"


@dataclass(frozen=True)
class RecoverTask:
    """
    Acción compensatoria pendiente.

    Es un descriptor, no un closure: el tipo y sus parámetros bastan
    para ejecutarla (ver AssetPublisher._apply_recover_task).

    Attributes:
        kind: Qué hacer
        name: Identificador corto (para logs y hints)
        hint: Texto legible para el usuario
        paths: Rutas a re-stagear (RESTAGE_PATHS)
        commit_id: Commit al que volver (RESET_TO_COMMIT)
    """
    kind: RecoverKind
    name: str
    hint: str
    paths: tuple[str, ...] = ()
    commit_id: str = ""


@dataclass
class AssetRecord:
    """Un post desplegado y los assets locales que referencia (rutas absolutas)."""
    postpath: Path
    assetpaths: list[Path] = field(default_factory=list)


@dataclass
class PublishResult:
    """
    Resultado de AssetPublisher.push().

    Attributes:
        state: Estado final (CLEAN, NOTHING_TO_PUSH, RESTORED o ROLLED_BACK)
        commit_id: Commit pusheado, si lo hubo
        pushed_paths: Archivos incluidos en el commit
        error: Excepción que disparó el rollback
        recover_failures: Nombres de las compensaciones que fallaron
    """
    state: PublishState
    commit_id: str = ""
    pushed_paths: list[Path] = field(default_factory=list)
    error: Exception | None = None
    recover_failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


class PublisherHints:
    """
    Hints de progreso del publicador. Todo es no-op.

    La CLI hereda de esta clase para pintar spinners y mensajes;
    ningún método puede alterar el flujo.
    """

    def clean_tip(self) -> None:
        pass

    def nothing_to_push(self) -> None:
        pass

    def step_start(self, step: str) -> None:
        pass

    def step_succ(self, step: str) -> None:
        pass

    def step_fail(self, step: str, error: Exception) -> None:
        pass

    def push_start(self, command: str) -> None:
        pass

    def push_end(self) -> None:
        pass

    def error(self, message: str) -> None:
        pass

    def recover_start(self, task: RecoverTask) -> None:
        pass

    def recover_succ(self, task: RecoverTask) -> None:
        pass

    def recover_fail(self, task: RecoverTask, error: Exception) -> None:
        pass


async def _noop(*_args: Any) -> None:
    return None


@dataclass
class PushHooks:
    """
    Puntos de extensión async dentro de push().

    Si un hook lanza una excepción cuenta como paso fallido y
    dispara el rollback.
    """
    before_push: Callable[[], Awaitable[None]] = _noop
    after_backup_prev_staged: Callable[[], Awaitable[None]] = _noop
    after_commit: Callable[[], Awaitable[None]] = _noop
    before_push_commit: Callable[[], Awaitable[None]] = _noop
    after_push: Callable[[str], Awaitable[None]] = _noop
    recovering_task: Callable[[RecoverTask], Awaitable[None]] = _noop


class AssetPublisher:
    """
    Publica los posts registrados y sus assets en un solo commit.

    Cada instancia sirve para un único intento: la lista de registros,
    el backup del stage y la cola de compensaciones le pertenecen.

    Args:
        transport: Acceso al repositorio
        records: Registros acumulados por el orquestador
        hints: Hints de progreso (default: no-op)
        push_hooks: Hooks de extensión (default: no-op)

    Raises:
        AssetRecordError: Si algún registro trae rutas relativas.
    """

    def __init__(
        self,
        transport: GitTransport,
        records: list[AssetRecord],
        hints: PublisherHints | None = None,
        push_hooks: PushHooks | None = None,
    ):
        self._git = transport
        self._hints = hints or PublisherHints()
        self._hooks = push_hooks or PushHooks()
        self._records = self._validate_records(records)

        self._src_postpaths = _unique([r.postpath for r in self._records])
        self._src_assetpaths = _unique(
            [ruta for r in self._records for ruta in r.assetpaths]
        )
        self._src_unpush_paths = _unique(self._src_postpaths + self._src_assetpaths)

        self._state = PublishState.CLEAN
        self._latest_commit_id = ""
        self._staged: list[Path] = []
        self._unpush_paths: list[Path] = []
        self._recover_queue: list[RecoverTask] = []

    @staticmethod
    def _validate_records(records: list[AssetRecord]) -> list[AssetRecord]:
        if not isinstance(records, list):
            raise AssetRecordError("records debe ser una lista")

        normalizados = []
        for record in records:
            postpath = Path(record.postpath)
            assetpaths = [Path(p) for p in record.assetpaths]
            if not postpath.is_absolute():
                raise AssetRecordError(f"postpath debe ser absoluta: {postpath}")
            if not assetpaths or not all(p.is_absolute() for p in assetpaths):
                raise AssetRecordError(
                    f"assetpaths debe ser una lista no vacía de rutas absolutas: {postpath}"
                )
            normalizados.append(AssetRecord(
                postpath=postpath.resolve(),
                assetpaths=[p.resolve() for p in assetpaths],
            ))
        return normalizados

    @property
    def state(self) -> PublishState:
        return self._state

    @property
    def recover_queue(self) -> list[RecoverTask]:
        return list(self._recover_queue)

    # ============================================================
    # API pública
    # ============================================================

    async def push(self) -> PublishResult:
        """
        Ejecuta la saga completa. Nunca lanza: los errores se reportan
        por hints/log y en PublishResult.error.
        """
        try:
            status = await self._run(self._git.status)
            if not status.is_clean:
                self._latest_commit_id = await self._run(self._git.latest_commit)
        except Exception as e:
            # Todavía no se tocó nada: no hay qué compensar
            self._state = PublishState.FAILED
            logger.error(f"No se pudo leer el repositorio: {e}")
            self._hints.error(str(e))
            return PublishResult(state=self._state, error=e)

        if status.is_clean:
            self._hints.clean_tip()
            logger.info("Working tree limpio: nada que pushear")
            return PublishResult(state=PublishState.CLEAN)

        self._recover_queue = []

        try:
            await self._hooks.before_push()
            return await self._push(status)
        except Exception as e:
            self._state = PublishState.FAILED
            logger.error(f"Falló la publicación de assets: {e}")
            self._hints.error(str(e))
            fallidas = await self._exec_recover_tasks()
            return PublishResult(
                state=self._state,
                error=e,
                recover_failures=fallidas,
            )

    async def has_unpushed(self) -> bool:
        """
        ¿Hay algún archivo registrado con cambios sin pushear?

        Saca temporalmente lo que esté en stage para leer un status
        fiel y lo vuelve a stagear al final.
        """
        status = await self._run(self._git.status)
        staged = list(status.staged)
        if not staged:
            return bool(self._get_unpush_paths(status))

        await self._run(self._git.reset_mixed)
        try:
            status = await self._run(self._git.status)
            return bool(self._get_unpush_paths(status))
        finally:
            await self._run(self._restage_each, staged)

    # ============================================================
    # Pasos de la saga
    # ============================================================

    async def _push(self, status: RepositoryStatus) -> PublishResult:
        status = await self._with_hint(
            "backup_prev_staged", self._backup_prev_staged(status)
        )
        self._add_recover_task(RecoverTask(
            kind=RecoverKind.RESTAGE_PATHS,
            name="recover_prev_staged",
            hint="Volver a stagear lo que estaba en stage",
            paths=tuple(str(p) for p in self._staged),
        ))
        await self._hooks.after_backup_prev_staged()

        self._unpush_paths = self._get_unpush_paths(status)
        if not self._unpush_paths:
            self._hints.nothing_to_push()
            logger.info("Ningún post/asset registrado tiene cambios: nada que pushear")
            await self._restore_staged(self._staged)
            self._dump_recover_tasks()
            self._state = PublishState.NOTHING_TO_PUSH
            return PublishResult(state=self._state)

        commit_id = await self._with_hint("commit_post_and_assets", self._commit())
        self._add_recover_task(RecoverTask(
            kind=RecoverKind.RESET_TO_COMMIT,
            name="reset_to_latest_commit",
            hint="Volver al commit previo a la publicación",
            commit_id=self._latest_commit_id,
        ))
        await self._hooks.after_commit()

        await self._push_commit()
        self._dump_recover_tasks()
        await self._hooks.after_push(commit_id)

        restantes = [p for p in self._staged if p not in self._unpush_paths]
        await self._with_hint("recover_as_suc_push", self._restore_staged(restantes))
        self._state = PublishState.RESTORED

        return PublishResult(
            state=self._state,
            commit_id=commit_id,
            pushed_paths=list(self._unpush_paths),
        )

    async def _backup_prev_staged(self, status: RepositoryStatus) -> RepositoryStatus:
        """Paso 3: vacía el index y recuerda qué tenía (rutas absolutas)."""
        if status.staged:
            raiz = self._git.root
            self._staged = [(raiz / p).resolve() for p in status.staged]
            await self._run(self._git.reset_mixed)
            status = await self._run(self._git.status)
            logger.info(f"Stage previo respaldado ({len(self._staged)} archivos)")
        self._state = PublishState.BACKED_UP
        return status

    def _get_unpush_paths(self, status: RepositoryStatus) -> list[Path]:
        """Paso 4: registrado Y cambiado. Lo demás nunca se stagea."""
        raiz = self._git.root
        cambiados = {(raiz / f.path).resolve() for f in status.files}
        return [ruta for ruta in self._src_unpush_paths if ruta in cambiados]

    async def _commit(self) -> str:
        """Paso 6: git add de lo elegible + commit."""
        await self._run(self._git.add, [str(p) for p in self._unpush_paths])
        commit_id = await self._run(self._git.commit, self._commit_message())
        self._state = PublishState.COMMITTED
        return commit_id

    def _commit_message(self) -> str:
        """El plural depende de la cantidad de posts, no de assets."""
        total = len(self._src_postpaths)
        primero = self._src_postpaths[0].stem
        if total > 1:
            return (
                f'Update {total} articles including "{primero}", '
                "and related resources"
            )
        return f'Update "{primero}" article and related resources'

    async def _push_commit(self) -> None:
        """Paso 7: a partir de aquí el remoto ya puede haber cambiado."""
        branch = await self._run(self._git.current_branch)
        await self._hooks.before_push_commit()

        self._hints.push_start(self._git.push_command(branch))
        await self._run(self._git.push, branch)
        self._hints.push_end()
        self._state = PublishState.PUSHED

    async def _restore_staged(self, paths: list[Path]) -> None:
        """Re-stagea lo del usuario. Es limpieza best-effort: solo se reporta."""
        if paths:
            await self._run(self._restage_each, [str(p) for p in paths])

    def _restage_each(self, paths: list[str]) -> list[str]:
        """
        git add de a una ruta: una ruta que ya no existe (stageada y
        luego borrada) no debe impedir re-stagear las demás.

        Returns:
            Las rutas que no se pudieron re-stagear.
        """
        fallidas = []
        for ruta in paths:
            try:
                self._git.add([ruta])
            except Exception as e:
                logger.warning(f"No se pudo volver a stagear {ruta}: {e}")
                fallidas.append(ruta)
        return fallidas

    # ============================================================
    # Cola de compensaciones
    # ============================================================

    def _add_recover_task(self, task: RecoverTask) -> None:
        self._recover_queue.append(task)

    def _dump_recover_tasks(self) -> None:
        self._recover_queue = []

    async def _exec_recover_tasks(self) -> list[str]:
        """
        Ejecuta la cola de atrás hacia adelante.

        Cada compensación se aísla: si falla se reporta y se sigue con
        la siguiente. La cola siempre termina vacía.

        Returns:
            Nombres de las compensaciones que fallaron.
        """
        self._state = PublishState.ROLLING_BACK
        fallidas = []

        while self._recover_queue:
            task = self._recover_queue.pop()
            self._hints.recover_start(task)
            try:
                await self._hooks.recovering_task(task)
                await self._run(self._apply_recover_task, task)
            except Exception as e:
                self._hints.recover_fail(task, e)
                logger.error(f"Compensación '{task.name}' falló: {e}")
                fallidas.append(task.name)
            else:
                self._hints.recover_succ(task)
                logger.info(f"Compensación '{task.name}' aplicada: {task.hint}")

        self._dump_recover_tasks()
        self._state = PublishState.ROLLED_BACK
        return fallidas

    def _apply_recover_task(self, task: RecoverTask) -> None:
        if task.kind is RecoverKind.RESTAGE_PATHS:
            # El index queda exactamente con lo que el usuario tenía
            self._git.reset_mixed()
            fallidas = self._restage_each(list(task.paths))
            if fallidas:
                raise RuntimeError(
                    f"{len(fallidas)} ruta(s) no se pudieron re-stagear: "
                    + ", ".join(fallidas)
                )
        elif task.kind is RecoverKind.RESET_TO_COMMIT:
            if task.commit_id:
                self._git.reset_mixed(task.commit_id)
            else:
                # El repo no tenía commits: no hay ancla, se borra el branch
                self._git.undo_initial_commit()
        else:
            raise ValueError(f"Compensación desconocida: {task.kind}")

    # ============================================================
    # Utilidades
    # ============================================================

    async def _with_hint(self, step: str, awaitable: Awaitable[Any]) -> Any:
        self._hints.step_start(step)
        try:
            resultado = await awaitable
        except Exception as e:
            self._hints.step_fail(step, e)
            raise
        self._hints.step_succ(step)
        return resultado

    @staticmethod
    async def _run(fn: Callable[..., Any], *args: Any) -> Any:
        """Cada comando git corre en un thread para no bloquear el loop."""
        return await asyncio.to_thread(fn, *args)


def _unique(paths: list[Path]) -> list[Path]:
    """Quita duplicados conservando el orden."""
    vistos: list[Path] = []
    for ruta in paths:
        if ruta not in vistos:
            vistos.append(ruta)
    return vistos
