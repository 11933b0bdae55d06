"""
orchestrator.py — Despliega posts como issues y después publica sus assets.

Cada llamada (create, update, publish) tiene dos fases fijas:

    1. Por post, con concurrencia acotada (job_runner):
           hook before_deploy → formatear → crear/actualizar issue
           → registrar assets → (create) inyectar issue_number
       El fallo de un post se reporta con el hint `fail` y no afecta
       a los demás.

    2. Cuando TODOS los posts terminaron (bien o mal), una sola
       ejecución de AssetPublisher con los assets acumulados.

Los registros de assets pertenecen a la llamada: no se comparten
entre create() y un update() posterior.

Uso:
    from isubo.deploy.orchestrator import DeployOrchestrator
    orchestrator = DeployOrchestrator(config)
    issues = await orchestrator.create([Path("/blog/source/post.md")])
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from isubo.config import IsuboConfig
from isubo.deploy.hints import DeployHints
from isubo.deploy.job_runner import JobOutcome, run_jobs
from isubo.deploy.models import DeployVerb, PostJob, PublishOutcome
from isubo.errors import JobTimeoutError, MissingIssueNumberError
from isubo.publishing.asset_publisher import (
    AssetPublisher,
    AssetRecord,
    PublisherHints,
    PublishResult,
    PushHooks,
)
from isubo.publishing.git_ops import GitTransport
from isubo.publishing.issue_client import IssueClient, IssueResult
from isubo.publishing.post_formatter import (
    PostFormatter,
    RenderedPost,
    post_title_from_path,
)
from isubo.utils.clipboard import copy_to_clipboard
from isubo.utils.logger import get_logger

logger = get_logger("isubo.deploy")


async def _noop_before_deploy() -> None:
    return None


def _always_confirm(_records: list[AssetRecord]) -> bool:
    return True


class DeployOrchestrator:
    """
    Coordina el despliegue de posts y el push de sus assets.

    Todas las dependencias se pueden inyectar (tests, embebido);
    si no, se construyen desde la config.

    Args:
        config: Configuración de isubo
        formatter: Formateador de posts
        client: Cliente de issues
        transport: Acceso al repo para el push de assets
        hints: Callbacks de progreso por post
        publisher_hints: Hints del publicador de assets
        push_hooks: Hooks del publicador de assets
        before_deploy: Coroutine sin argumentos que corre antes de cada
            post; si lanza, solo ese post falla
        confirm_push: Se consulta en modo push_asset=prompt
        clipboard: Función que copia texto al portapapeles
    """

    def __init__(
        self,
        config: IsuboConfig,
        formatter: PostFormatter | None = None,
        client: IssueClient | None = None,
        transport: GitTransport | None = None,
        hints: DeployHints | None = None,
        publisher_hints: PublisherHints | None = None,
        push_hooks: PushHooks | None = None,
        before_deploy: Callable[[], Awaitable[None]] | None = None,
        confirm_push: Callable[[list[AssetRecord]], bool] | None = None,
        clipboard: Callable[[str], None] | None = None,
    ):
        self._config = config
        self._formatter = formatter or PostFormatter(config)
        self._client = client or IssueClient(
            owner=config.github.owner,
            repo=config.github.repo,
            token=config.github.token,
            api_base=config.github.api_base,
        )
        self._transport = transport
        self._hints = hints or DeployHints()
        self._publisher_hints = publisher_hints or PublisherHints()
        self._push_hooks = push_hooks or PushHooks()
        self._before_deploy = before_deploy or _noop_before_deploy
        self._confirm_push = confirm_push or _always_confirm
        self._clipboard = clipboard or copy_to_clipboard

        self.last_publish_result: PublishResult | None = None

    # ============================================================
    # API pública
    # ============================================================

    async def create(self, filepaths: Sequence[str | Path]) -> list[IssueResult]:
        """
        Crea un issue por post, aunque el post ya tenga issue_number.

        Returns:
            Los issues creados, en el orden de entrada. Los posts que
            fallaron no aparecen.
        """
        records: list[AssetRecord] = []
        jobs = self._jobs_for(filepaths, DeployVerb.CREATE)
        if not jobs:
            return []

        outcomes = await self._run_jobs(
            jobs, lambda job: self._create_one(self._render(job.filepath), records)
        )
        await self._publish_assets(records)
        return [o.value for o in outcomes if o.ok]

    async def update(self, filepaths: Sequence[str | Path]) -> list[IssueResult]:
        """
        Actualiza el issue de cada post (requiere issue_number).

        Returns:
            Los issues actualizados; los fallidos se omiten.
        """
        records: list[AssetRecord] = []
        jobs = self._jobs_for(filepaths, DeployVerb.UPDATE)
        if not jobs:
            return []

        outcomes = await self._run_jobs(
            jobs, lambda job: self._update_one(self._render(job.filepath), records)
        )
        await self._publish_assets(records)
        return [o.value for o in outcomes if o.ok]

    async def publish(self, filepaths: Sequence[str | Path]) -> list[PublishOutcome]:
        """
        Decide por post: update si ya tiene issue_number, create si no.

        Returns:
            Un PublishOutcome por post. Si falló, `result` es la excepción.
        """
        records: list[AssetRecord] = []
        jobs = self._jobs_for(filepaths, DeployVerb.PUBLISH)
        if not jobs:
            return []

        decididos: dict[Path, DeployVerb] = {}

        async def publicar(job: PostJob) -> IssueResult:
            post = self._render(job.filepath)
            if post.issue_number:
                decididos[job.filepath] = DeployVerb.UPDATE
                self._hints.start_update(DeployVerb.UPDATE, job.filepath)
                return await self._update_one(post, records)
            decididos[job.filepath] = DeployVerb.CREATE
            self._hints.start_update(DeployVerb.CREATE, job.filepath)
            return await self._create_one(post, records)

        outcomes = await self._run_jobs(jobs, publicar)
        await self._publish_assets(records)

        return [
            PublishOutcome(
                filepath=job.filepath,
                verb=decididos.get(job.filepath, DeployVerb.PUBLISH),
                result=outcome.value if outcome.ok else outcome.error,
            )
            for job, outcome in zip(jobs, outcomes)
        ]

    async def write_to_clipboard(
        self, filepaths: Sequence[str | Path]
    ) -> dict[str, Any] | None:
        """
        Formatea el PRIMER post y copia su body al portapapeles.

        No crea issues ni publica assets.
        """
        if not filepaths:
            return None

        post = self._render(Path(filepaths[0]))
        await asyncio.to_thread(self._clipboard, post.body)
        logger.success(f"Body de '{post.title}' copiado al portapapeles")
        return {
            "title": post.title,
            "frontmatter": post.frontmatter,
            "body": post.body,
        }

    # ============================================================
    # Un post
    # ============================================================

    def _render(self, filepath: Path) -> RenderedPost:
        return self._formatter.render(filepath)

    async def _create_one(
        self, post: RenderedPost, records: list[AssetRecord]
    ) -> IssueResult:
        issue = await asyncio.to_thread(
            self._client.create,
            title=post.title,
            body=post.body,
            labels=post.tags or None,
        )
        self._add_asset_record(records, post)

        patch: dict[str, Any] = {"issue_number": issue.number}
        if not post.frontmatter.get("title"):
            patch["title"] = post.title
        self._formatter.inject_frontmatter(post.filepath, patch)

        logger.success(f"Issue #{issue.number} creado: {post.title}")
        return issue

    async def _update_one(
        self, post: RenderedPost, records: list[AssetRecord]
    ) -> IssueResult:
        if not post.issue_number:
            raise MissingIssueNumberError(str(post.filepath))

        issue = await asyncio.to_thread(
            self._client.update,
            number=post.issue_number,
            title=post.title,
            body=post.body,
            labels=post.tags or None,
        )
        self._add_asset_record(records, post)

        logger.success(f"Issue #{issue.number} actualizado: {post.title}")
        return issue

    @staticmethod
    def _add_asset_record(records: list[AssetRecord], post: RenderedPost) -> None:
        """Único punto que modifica `records`. Posts sin assets no se registran."""
        if not post.asset_paths:
            return
        records.append(AssetRecord(
            postpath=post.filepath,
            assetpaths=list(post.asset_paths),
        ))

    # ============================================================
    # Fases
    # ============================================================

    @staticmethod
    def _jobs_for(filepaths: Sequence[str | Path], verb: DeployVerb) -> list[PostJob]:
        return [PostJob(filepath=Path(p).resolve(), verb=verb) for p in filepaths or []]

    async def _run_jobs(
        self,
        jobs: list[PostJob],
        deploy_one: Callable[[PostJob], Awaitable[Any]],
    ) -> list[JobOutcome]:
        """Fase 1: todos los posts, aislando el fallo de cada uno."""

        def envolver(job: PostJob) -> Callable[[], Awaitable[Any]]:
            async def ejecutar() -> Any:
                self._hints.start(job.verb, job.filepath)
                try:
                    await self._before_deploy()
                    resultado = await deploy_one(job)
                except Exception as e:
                    self._report_failure(job, e)
                    raise
                self._hints.succ(job.filepath)
                return resultado
            return ejecutar

        outcomes = await run_jobs(
            [envolver(job) for job in jobs],
            max_concurrency=self._config.deploy.max_concurrency,
            timeout=self._config.deploy.job_timeout,
        )

        # El timeout cancela el job desde afuera, así que su fallo se reporta aquí
        for job, outcome in zip(jobs, outcomes):
            if isinstance(outcome.error, JobTimeoutError):
                self._report_failure(job, outcome.error)

        fallidos = sum(1 for o in outcomes if not o.ok)
        if fallidos:
            logger.warning(f"{fallidos} de {len(jobs)} posts fallaron")
        return outcomes

    def _report_failure(self, job: PostJob, error: BaseException) -> None:
        titulo = post_title_from_path(job.filepath)
        logger.error(f"[{job.verb.value}] {titulo}: {error}")
        self._hints.fail(job.verb, job.filepath, {
            "err_msg": str(error),
            "title": titulo,
        })

    async def _publish_assets(self, records: list[AssetRecord]) -> PublishResult | None:
        """
        Fase 2: una sola publicación de assets por llamada.

        Es un efecto secundario best-effort: sus errores se reportan
        pero no cambian los resultados de los posts.
        """
        self.last_publish_result = None
        modo = self._config.deploy.push_asset

        if modo == "disable":
            logger.info("push_asset=disable: no se publican assets")
            return None
        if modo == "prompt" and records and not self._confirm_push(records):
            logger.info("Publicación de assets cancelada por el usuario")
            return None

        publisher = AssetPublisher(
            self._get_transport(),
            records,
            hints=self._publisher_hints,
            push_hooks=self._push_hooks,
        )
        resultado = await publisher.push()
        self.last_publish_result = resultado
        return resultado

    def _get_transport(self) -> GitTransport:
        if self._transport is None:
            self._transport = GitTransport(
                self._config.root_dir, remote=self._config.deploy.remote
            )
        return self._transport
