"""
post_formatter.py — Convierte un post markdown local en el body de un issue.

Un post es un archivo markdown con frontmatter YAML opcional:

    ---
    title: Mi post
    tags: [python, git]
    issue_number: 12
    ---

    ## Intro
    ![diagrama](./mi-post/diagrama.png)

El formateador:
1. Separa el frontmatter del contenido
2. Reescribe los links relativos a archivos locales (imágenes, adjuntos)
   como URLs raw del repo en GitHub, y reporta esos archivos como assets
3. Agrega tabla de contenidos, links "back to top" y la nota de fuente
4. Permite inyectar campos al frontmatter (issue_number, title) después
   de crear el issue

Uso:
    from isubo.publishing.post_formatter import PostFormatter
    formatter = PostFormatter(config)
    post = formatter.render("/blog/source/mi-post.md")
    print(post.body, post.asset_paths)
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import quote, unquote

import yaml

from isubo.config import IsuboConfig
from isubo.errors import PostNotFoundError
from isubo.utils.logger import get_logger

logger = get_logger("isubo.formatter")

# El bloque puede venir vacío: "---\n---\n"
FRONTMATTER_RE = re.compile(r"\A---\s*\n(?:(.*?)\n)??---\s*(?:\n|\Z)", re.DOTALL)

# ![alt](target "title") y [texto](target)
LINK_RE = re.compile(r"(!?\[[^\]]*\]\()\s*([^)\s]+)((?:\s+\"[^\"]*\")?\s*\))")

HEADING_RE = re.compile(r"^(#{2,3})\s+(.+?)\s*#*\s*$")

FENCE_RE = re.compile(r"^\s*(```|~~~)")

RAW_BASE = "https://raw.githubusercontent.com"

TOC_TITLE = "Contents"
BACK2TOP_TEXT = "⬆ back to top"


@dataclass
class RenderedPost:
    """
    Resultado de formatear un post.

    Attributes:
        filepath: Ruta absoluta del markdown
        title: Título (frontmatter o nombre del archivo)
        body: Markdown listo para el issue
        frontmatter: Frontmatter parseado (puede venir vacío)
        asset_paths: Rutas absolutas de los archivos locales referenciados
    """
    filepath: Path
    title: str
    body: str
    frontmatter: dict[str, Any] = field(default_factory=dict)
    asset_paths: list[Path] = field(default_factory=list)

    @property
    def issue_number(self) -> int | None:
        return self.frontmatter.get("issue_number") or None

    @property
    def tags(self) -> list[str]:
        tags = self.frontmatter.get("tags") or []
        if isinstance(tags, str):
            return [tags]
        return [str(t) for t in tags]


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Separa el bloque YAML inicial del resto del markdown.

    Returns:
        (frontmatter, contenido). Si no hay bloque, frontmatter es {}.
    """
    match = FRONTMATTER_RE.match(text)
    if not match:
        return {}, text

    datos = yaml.safe_load(match.group(1) or "") or {}
    if not isinstance(datos, dict):
        datos = {}
    return datos, text[match.end():]


def post_title_from_path(filepath: str | Path) -> str:
    """El título por defecto de un post es el nombre del archivo sin extensión."""
    return Path(filepath).stem


def heading_anchor(text: str) -> str:
    """
    Genera el anchor que GitHub asigna a un heading.

    Minúsculas, sin puntuación (se conservan letras unicode, números,
    guiones y guiones bajos) y espacios convertidos en guiones.
    """
    texto = re.sub(r"[^\w\- ]", "", text.strip().lower())
    return texto.replace(" ", "-")


class PostFormatter:
    """
    Formatea posts locales en bodies de issues de GitHub.

    Args:
        config: Configuración de isubo
        disable_toc: Fuerza a no generar tabla de contenidos
        disable_back2top: Fuerza a no agregar links "back to top"
    """

    def __init__(
        self,
        config: IsuboConfig,
        disable_toc: bool = False,
        disable_back2top: bool = False,
    ):
        self._config = config
        self._toc = config.posts.toc and not disable_toc
        self._back2top = config.posts.back2top and not disable_back2top

    # ============================================================
    # API pública
    # ============================================================

    def render(self, filepath: str | Path) -> RenderedPost:
        """
        Lee y formatea un post.

        Args:
            filepath: Ruta al markdown.

        Returns:
            RenderedPost con body, frontmatter y assets.

        Raises:
            PostNotFoundError: Si el archivo no existe.
        """
        ruta = Path(filepath).resolve()
        if not ruta.is_file():
            raise PostNotFoundError(str(filepath))

        frontmatter, contenido = split_frontmatter(ruta.read_text(encoding="utf-8"))
        title = str(frontmatter.get("title") or post_title_from_path(ruta))

        body, assets = self._rewrite_links(contenido.strip(), ruta.parent)

        if self._back2top:
            body = self._add_back2top(body)
        if self._toc:
            body = self._add_toc(body)
        if self._config.posts.source_statement.enable:
            body = self._add_source_statement(body, title, ruta)

        return RenderedPost(
            filepath=ruta,
            title=title,
            body=body + "\n",
            frontmatter=frontmatter,
            asset_paths=assets,
        )

    def inject_frontmatter(self, filepath: str | Path, patch: dict[str, Any]) -> None:
        """
        Persiste `patch` dentro del frontmatter del post.

        Conserva las keys existentes y el contenido intacto. Si el post
        no tenía frontmatter, se crea el bloque.
        """
        ruta = Path(filepath)
        texto = ruta.read_text(encoding="utf-8")
        frontmatter, contenido = split_frontmatter(texto)
        if not FRONTMATTER_RE.match(texto):
            contenido = "\n" + contenido

        frontmatter.update(patch)
        bloque = yaml.safe_dump(
            frontmatter, allow_unicode=True, sort_keys=False, default_flow_style=False
        )
        ruta.write_text(f"---\n{bloque}---\n{contenido}", encoding="utf-8")
        logger.debug(f"Frontmatter actualizado en {ruta.name}: {patch}")

    # ============================================================
    # Transformaciones del body
    # ============================================================

    def _rewrite_links(self, body: str, post_dir: Path) -> tuple[str, list[Path]]:
        """
        Convierte links relativos a archivos existentes en URLs raw.

        Solo se tocan targets que resuelven a un archivo real; URLs
        absolutas, anchors y links rotos quedan igual.

        Returns:
            (body reescrito, assets referenciados sin duplicados)
        """
        assets: list[Path] = []

        def reemplazar(match: re.Match) -> str:
            target = match.group(2)
            if re.match(r"^[a-zA-Z][\w+.-]*:", target) or target.startswith(("#", "/")):
                return match.group(0)

            ruta = (post_dir / unquote(target.split("#")[0])).resolve()
            if not ruta.is_file() or ruta.suffix.lower() == ".md":
                return match.group(0)

            if ruta not in assets:
                assets.append(ruta)
            return f"{match.group(1)}{self._raw_url(ruta)}{match.group(3)}"

        return LINK_RE.sub(reemplazar, body), assets

    def _raw_url(self, ruta: Path) -> str:
        gh = self._config.github
        relativa = self._relative_to_root(ruta)
        return f"{RAW_BASE}/{gh.owner}/{gh.repo}/{gh.branch}/{quote(relativa)}"

    def _relative_to_root(self, ruta: Path) -> str:
        raiz = Path(self._config.root_dir).resolve()
        try:
            return ruta.relative_to(raiz).as_posix()
        except ValueError:
            return ruta.name

    def _headings(self, body: str) -> list[tuple[int, str]]:
        """Headings ## y ### fuera de bloques de código."""
        headings = []
        en_codigo = False
        for linea in body.splitlines():
            if FENCE_RE.match(linea):
                en_codigo = not en_codigo
                continue
            if en_codigo:
                continue
            match = HEADING_RE.match(linea)
            if match:
                headings.append((len(match.group(1)), match.group(2)))
        return headings

    def _add_toc(self, body: str) -> str:
        headings = self._headings(body)
        if not headings:
            return body

        vistos: dict[str, int] = {}
        lineas = [f"## {TOC_TITLE}", ""]
        for nivel, texto in headings:
            anchor = heading_anchor(texto)
            # GitHub numera los anchors repetidos: intro, intro-1, intro-2
            repeticiones = vistos.get(anchor, 0)
            vistos[anchor] = repeticiones + 1
            if repeticiones:
                anchor = f"{anchor}-{repeticiones}"
            sangria = "  " * (nivel - 2)
            lineas.append(f"{sangria}- [{texto}](#{anchor})")

        return "\n".join(lineas) + "\n\n" + body

    def _add_back2top(self, body: str) -> str:
        """Agrega un link al inicio al final de cada sección ##."""
        destino = heading_anchor(TOC_TITLE) if self._toc else ""
        link = f"[{BACK2TOP_TEXT}](#{destino})"

        salida: list[str] = []
        en_codigo = False
        hay_seccion = False
        for linea in body.splitlines():
            if FENCE_RE.match(linea):
                en_codigo = not en_codigo
            elif not en_codigo and linea.startswith("## "):
                if hay_seccion:
                    salida.extend([link, ""])
                hay_seccion = True
            salida.append(linea)

        if hay_seccion:
            salida.extend(["", link])
        return "\n".join(salida)

    def _add_source_statement(self, body: str, title: str, ruta: Path) -> str:
        gh = self._config.github
        url = (
            f"https://github.com/{gh.owner}/{gh.repo}/blob/{gh.branch}/"
            f"{quote(self._relative_to_root(ruta))}"
        )
        lineas = [
            linea.format(title=title, url=url)
            for linea in self._config.posts.source_statement.content
        ]
        return body + "\n\n" + "\n".join(lineas)
