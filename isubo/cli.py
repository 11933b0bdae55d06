"""
cli.py — Punto de entrada de isubo.

Comandos disponibles:
    isubo create POSTS...     → Crea un issue nuevo por post
    isubo update POSTS...     → Actualiza el issue de cada post
    isubo publish POSTS...    → create o update según el post
    isubo clipboard POST      → Copia el body formateado al portapapeles
    isubo config --show       → Muestra la configuración
    isubo config --validate   → Valida la configuración

POSTS puede ser un nombre dentro de posts.source_dir (con o sin .md),
una ruta, o un patrón glob ("drafts/*.md").

Uso:
    python -m isubo publish mi-post
    python -m isubo create "*.md" --disable-toc
"""

from __future__ import annotations

import asyncio
import glob
import sys
from pathlib import Path

import click
from rich.panel import Panel
from rich.table import Table

from isubo.config import IsuboConfig, load_config, validate_config
from isubo.deploy.hints import DeployHints
from isubo.deploy.models import DeployVerb, PublishOutcome
from isubo.deploy.orchestrator import DeployOrchestrator
from isubo.errors import ConfigError, PostNotFoundError
from isubo.publishing.asset_publisher import (
    AssetRecord,
    PublisherHints,
    PublishResult,
    RecoverTask,
)
from isubo.publishing.issue_client import IssueResult
from isubo.publishing.post_formatter import PostFormatter
from isubo import __version__
from isubo.utils.logger import get_logger, console as rich_console

logger = get_logger("isubo.cli")

GLOB_CHARS = set("*?[")


# ============================================================
# Hints de consola
# ============================================================

def console_deploy_hints() -> DeployHints:
    """Hints de despliegue que pintan cada post en la consola."""

    def start(verb: DeployVerb, path: Path) -> None:
        rich_console.print(f"[muted]… {verb.value} {path.name}[/muted]")

    def start_update(verb: DeployVerb, path: Path) -> None:
        rich_console.print(f"[muted]  {path.name} → {verb.value}[/muted]")

    def succ(path: Path) -> None:
        rich_console.print(f"[success]✔ {path.name}[/success]")

    def fail(verb: DeployVerb, path: Path, info: dict[str, str]) -> None:
        rich_console.print(
            f"[error]✘ {verb.value} '{info.get('title', path.stem)}': "
            f"{info.get('err_msg', '')}[/error]"
        )

    return DeployHints(start=start, start_update=start_update, succ=succ, fail=fail)


class ConsolePublisherHints(PublisherHints):
    """Hints del publicador de assets en la consola."""

    STEPS = {
        "backup_prev_staged": "Respaldando stage previo",
        "commit_post_and_assets": "Commit de posts y assets",
        "recover_as_suc_push": "Restaurando stage previo",
    }

    def clean_tip(self) -> None:
        rich_console.print("[muted]Working tree limpio, no hay assets que pushear[/muted]")

    def nothing_to_push(self) -> None:
        rich_console.print("[muted]Ningún asset registrado cambió, no hay nada que pushear[/muted]")

    def step_start(self, step: str) -> None:
        rich_console.print(f"[step]» {self.STEPS.get(step, step)}[/step]")

    def step_fail(self, step: str, error: Exception) -> None:
        rich_console.print(f"[error]✘ {self.STEPS.get(step, step)}: {error}[/error]")

    def push_start(self, command: str) -> None:
        rich_console.print(f"[step]» {command}[/step]")

    def push_end(self) -> None:
        rich_console.print("[success]✔ Assets pusheados[/success]")

    def error(self, message: str) -> None:
        rich_console.print(f"[error]Publicación de assets fallida: {message}[/error]")

    def recover_start(self, task: RecoverTask) -> None:
        rich_console.print(f"[warning]↺ {task.hint}[/warning]")

    def recover_fail(self, task: RecoverTask, error: Exception) -> None:
        rich_console.print(f"[error]✘ No se pudo revertir '{task.name}': {error}[/error]")


def _confirm_push(records: list[AssetRecord]) -> bool:
    total = sum(len(r.assetpaths) for r in records)
    return click.confirm(
        f"¿Pushear {len(records)} post(s) con {total} asset(s)?", default=True
    )


# ============================================================
# Comandos
# ============================================================

@click.group()
@click.version_option(version=__version__, prog_name="isubo")
def main():
    """Publica posts markdown como issues de GitHub."""
    pass


def _deploy_options(fn):
    fn = click.argument("posts", nargs=-1, required=True)(fn)
    fn = click.option(
        "--config", "-c", "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="Ruta a isubo.conf.yml (default: se busca hacia arriba)",
    )(fn)
    fn = click.option(
        "--disable-toc", is_flag=True, default=False,
        help="No generar tabla de contenidos",
    )(fn)
    fn = click.option(
        "--disable-back2top", is_flag=True, default=False,
        help="No agregar links 'back to top'",
    )(fn)
    return fn


@main.command()
@_deploy_options
def create(posts, config_path, disable_toc, disable_back2top):
    """Crea un issue nuevo por cada post."""
    _deploy(DeployVerb.CREATE, posts, config_path, disable_toc, disable_back2top)


@main.command()
@_deploy_options
def update(posts, config_path, disable_toc, disable_back2top):
    """Actualiza el issue ya vinculado a cada post."""
    _deploy(DeployVerb.UPDATE, posts, config_path, disable_toc, disable_back2top)


@main.command()
@_deploy_options
def publish(posts, config_path, disable_toc, disable_back2top):
    """Crea o actualiza según si el post ya tiene issue_number."""
    _deploy(DeployVerb.PUBLISH, posts, config_path, disable_toc, disable_back2top)


@main.command()
@_deploy_options
def clipboard(posts, config_path, disable_toc, disable_back2top):
    """Copia el body formateado del primer post al portapapeles."""
    try:
        cfg = load_config(config_path)
        rutas = resolve_post_paths(cfg, posts)
        orchestrator = DeployOrchestrator(
            cfg,
            formatter=PostFormatter(cfg, disable_toc, disable_back2top),
        )
        resultado = asyncio.run(orchestrator.write_to_clipboard(rutas))
    except (PostNotFoundError, RuntimeError) as e:
        logger.error(str(e))
        sys.exit(1)

    if resultado:
        rich_console.print(Panel(
            resultado["body"][:800],
            title=resultado["title"],
            border_style="cyan",
        ))


@main.command()
@click.option("--show", is_flag=True, help="Muestra la configuración actual")
@click.option("--validate", is_flag=True, help="Valida la configuración")
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
)
def config(show: bool, validate: bool, config_path: Path | None):
    """Gestiona la configuración de isubo."""
    cfg = load_config(config_path)

    if show:
        tabla = Table(title="Configuración de isubo")
        tabla.add_column("Parámetro", style="cyan")
        tabla.add_column("Valor", style="green")

        tabla.add_row("Repo", f"{cfg.github.owner}/{cfg.github.repo}")
        tabla.add_row("Branch (assets)", cfg.github.branch)
        tabla.add_row("Token", "✅ Configurado" if cfg.github.token else "❌ Falta")
        tabla.add_row("Source dir", str(cfg.absolute_source_dir))
        tabla.add_row("TOC", "sí" if cfg.posts.toc else "no")
        tabla.add_row("Back to top", "sí" if cfg.posts.back2top else "no")
        tabla.add_row("Push de assets", cfg.deploy.push_asset)
        tabla.add_row("Concurrencia", str(cfg.deploy.max_concurrency))
        tabla.add_row("Timeout por post", f"{cfg.deploy.job_timeout:g}s")

        rich_console.print(tabla)

    if validate:
        problemas = validate_config(cfg)
        if problemas:
            for p in problemas:
                logger.error(p)
            sys.exit(1)
        logger.success("Configuración válida")


# ============================================================
# Funciones auxiliares
# ============================================================

def resolve_post_paths(cfg: IsuboConfig, names: tuple[str, ...] | list[str]) -> list[Path]:
    """
    Convierte los argumentos de la CLI en rutas absolutas de posts.

    Raises:
        PostNotFoundError: Si algún nombre no corresponde a un archivo.
    """
    source = cfg.absolute_source_dir
    rutas: list[Path] = []

    for name in names:
        if GLOB_CHARS & set(name):
            base = name if Path(name).is_absolute() else str(source / name)
            encontrados = sorted(Path(p) for p in glob.glob(base, recursive=True))
            encontrados = [p for p in encontrados if p.suffix == ".md"]
            if not encontrados:
                raise PostNotFoundError(name)
            rutas.extend(encontrados)
            continue

        candidatos = [Path(name), source / name]
        if not name.endswith(".md"):
            candidatos.append(source / f"{name}.md")
        ruta = next((c for c in candidatos if c.is_file()), None)
        if ruta is None:
            raise PostNotFoundError(name)
        rutas.append(ruta)

    # Sin duplicados, conservando orden
    unicas: list[Path] = []
    for ruta in (r.resolve() for r in rutas):
        if ruta not in unicas:
            unicas.append(ruta)
    return unicas


def _deploy(
    verb: DeployVerb,
    posts: tuple[str, ...],
    config_path: Path | None,
    disable_toc: bool,
    disable_back2top: bool,
) -> None:
    try:
        cfg = load_config(config_path)
        problemas = validate_config(cfg)
        if problemas:
            raise ConfigError(problemas)

        rutas = resolve_post_paths(cfg, posts)
        orchestrator = DeployOrchestrator(
            cfg,
            formatter=PostFormatter(cfg, disable_toc, disable_back2top),
            hints=console_deploy_hints(),
            publisher_hints=ConsolePublisherHints(),
            confirm_push=_confirm_push,
        )

        logger.info(f"{verb.value}: {len(rutas)} post(s)")
        if verb is DeployVerb.CREATE:
            resultados = asyncio.run(orchestrator.create(rutas))
        elif verb is DeployVerb.UPDATE:
            resultados = asyncio.run(orchestrator.update(rutas))
        else:
            resultados = asyncio.run(orchestrator.publish(rutas))

    except (ConfigError, PostNotFoundError) as e:
        logger.error(str(e))
        sys.exit(1)

    _show_summary(verb, rutas, resultados, orchestrator.last_publish_result)

    fallidos = _count_failures(verb, rutas, resultados)
    if fallidos:
        sys.exit(1)


def _count_failures(verb: DeployVerb, rutas: list[Path], resultados: list) -> int:
    if verb is DeployVerb.PUBLISH:
        return sum(1 for r in resultados if not r.ok)
    return len(rutas) - len(resultados)


def _show_summary(
    verb: DeployVerb,
    rutas: list[Path],
    resultados: list[IssueResult] | list[PublishOutcome],
    publish_result: PublishResult | None,
) -> None:
    """Tabla final con un renglón por issue y el estado del push."""
    tabla = Table(title=f"isubo {verb.value}")
    tabla.add_column("Post", style="cyan")
    tabla.add_column("Acción")
    tabla.add_column("Issue")
    tabla.add_column("URL / Error")

    if verb is DeployVerb.PUBLISH:
        for outcome in resultados:
            if outcome.ok:
                tabla.add_row(
                    outcome.filepath.name, outcome.verb.value,
                    f"#{outcome.result.number}", outcome.result.url,
                )
            else:
                tabla.add_row(
                    outcome.filepath.name, outcome.verb.value,
                    "—", f"[error]{outcome.result}[/error]",
                )
    else:
        for issue in resultados:
            tabla.add_row(issue.title, verb.value, f"#{issue.number}", issue.url)
        omitidos = len(rutas) - len(resultados)
        if omitidos:
            tabla.add_row(f"[error]{omitidos} fallido(s)[/error]", verb.value, "—", "ver log")

    rich_console.print(tabla)

    if publish_result is not None:
        estado = publish_result.state.value
        if publish_result.ok:
            detalle = f"commit {publish_result.commit_id[:7]}" if publish_result.commit_id else estado
            rich_console.print(f"[success]Assets: {detalle}[/success]")
        else:
            rich_console.print(f"[error]Assets: {estado} — {publish_result.error}[/error]")


if __name__ == "__main__":
    main()
