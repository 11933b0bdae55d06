"""
config.py — Carga y valida la configuración de isubo.

Se encarga de:
1. Cargar isubo.conf.yml (configuración del blog)
2. Cargar .env (secretos: el token de GitHub)
3. Resolver variables de entorno en los valores de config
4. Validar que toda la configuración esté completa

Ejemplo de isubo.conf.yml:

    github:
      owner: isaaxite
      repo: blog
      token: ${GITHUB_TOKEN}
      branch: master
    posts:
      source_dir: source
      toc: true
      back2top: true
    deploy:
      push_asset: auto      # auto | prompt | disable
      max_concurrency: 6
      job_timeout: 10

Uso:
    from isubo.config import load_config
    config = load_config()
    print(config.github.repo)
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

CONFIG_FILENAME = "isubo.conf.yml"

PUSH_ASSET_MODES = ("auto", "prompt", "disable")


# ============================================================
# Dataclasses de configuración
# ============================================================
# Cada sección de isubo.conf.yml tiene su propia dataclass.
# ============================================================

@dataclass
class GitHubConfig:
    """Repositorio donde viven los issues y los assets."""
    owner: str = ""
    repo: str = ""
    token: str = ""
    branch: str = "master"
    api_base: str = "https://api.github.com"


@dataclass
class SourceStatementConfig:
    """Pie de página que enlaza al markdown original."""
    enable: bool = True
    content: list[str] = field(default_factory=lambda: [
        "> Fuente: [{title}]({url})",
    ])


@dataclass
class PostsConfig:
    """Dónde están los posts y cómo se formatean."""
    source_dir: str = "source"
    toc: bool = True
    back2top: bool = True
    source_statement: SourceStatementConfig = field(
        default_factory=SourceStatementConfig
    )


@dataclass
class DeployConfig:
    """Parámetros del despliegue y del push de assets."""
    push_asset: str = "auto"
    remote: str = "origin"
    max_concurrency: int = 6
    job_timeout: float = 10.0


@dataclass
class IsuboConfig:
    """Configuración completa de la aplicación."""
    github: GitHubConfig = field(default_factory=GitHubConfig)
    posts: PostsConfig = field(default_factory=PostsConfig)
    deploy: DeployConfig = field(default_factory=DeployConfig)

    # Directorio donde está isubo.conf.yml (raíz del repo del blog)
    root_dir: Path = field(default_factory=Path.cwd)

    @property
    def absolute_source_dir(self) -> Path:
        """source_dir resuelto contra el directorio de la config."""
        return (self.root_dir / self.posts.source_dir).resolve()


# ============================================================
# Funciones de carga
# ============================================================

def _resolve_env_vars(value: str) -> str:
    """
    Resuelve variables de entorno en un string.

    Ejemplo:
        "${GITHUB_TOKEN}" → "ghp_xxx"

    Si la variable no existe se deja el placeholder tal cual.
    """
    patron = re.compile(r"\$\{(\w+)\}")

    def reemplazar(match: re.Match) -> str:
        nombre_var = match.group(1)
        return os.environ.get(nombre_var, match.group(0))

    return patron.sub(reemplazar, value)


def _resolve_env_recursive(data: Any) -> Any:
    """Resuelve ${VARIABLE} recursivamente en un dict/list."""
    if isinstance(data, str):
        return _resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_recursive(item) for item in data]
    return data


def _dict_to_dataclass(data: dict, cls: type) -> Any:
    """
    Convierte un diccionario a una dataclass, ignorando keys desconocidas.

    El YAML podría tener keys que no existen en la dataclass; en vez
    de explotar, simplemente se ignoran.
    """
    campos_validos = {f.name for f in cls.__dataclass_fields__.values()}
    datos_filtrados = {k: v for k, v in (data or {}).items() if k in campos_validos}
    return cls(**datos_filtrados)


def _find_config_dir() -> Path:
    """
    Encuentra el directorio raíz del blog (donde está isubo.conf.yml).

    Busca hacia arriba desde el directorio actual. Si no lo encuentra,
    usa el directorio actual.
    """
    current = Path.cwd()
    for parent in [current] + list(current.parents):
        if (parent / CONFIG_FILENAME).exists():
            return parent
    return current


def config_from_dict(raw: dict, root_dir: Path | None = None) -> IsuboConfig:
    """
    Construye un IsuboConfig desde un dict ya parseado.

    Útil para tests y para quien embebe isubo sin archivo YAML.
    """
    resuelto = _resolve_env_recursive(raw or {})

    posts_raw = dict(resuelto.get("posts") or {})
    statement = _dict_to_dataclass(
        posts_raw.pop("source_statement", None) or {}, SourceStatementConfig
    )
    posts = _dict_to_dataclass(posts_raw, PostsConfig)
    posts.source_statement = statement

    config = IsuboConfig(
        github=_dict_to_dataclass(resuelto.get("github") or {}, GitHubConfig),
        posts=posts,
        deploy=_dict_to_dataclass(resuelto.get("deploy") or {}, DeployConfig),
        root_dir=Path(root_dir) if root_dir else Path.cwd(),
    )

    if not config.github.token or config.github.token.startswith("${"):
        config.github.token = os.environ.get("GITHUB_TOKEN", "")

    return config


def load_config(config_path: Path | None = None) -> IsuboConfig:
    """
    Carga la configuración completa de isubo.

    Pasos:
    1. Carga .env para tener las variables de entorno disponibles
    2. Lee isubo.conf.yml
    3. Resuelve ${VARIABLES} y convierte cada sección a su dataclass

    Args:
        config_path: Ruta al YAML. Si es None, busca automáticamente.

    Returns:
        IsuboConfig listo para usar.
    """
    if config_path is None:
        proyecto_dir = _find_config_dir()
        config_path = proyecto_dir / CONFIG_FILENAME
    else:
        config_path = Path(config_path).resolve()
        proyecto_dir = config_path.parent

    env_path = proyecto_dir / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    if not config_path.exists():
        # Sin archivo: valores por defecto
        return config_from_dict({}, root_dir=proyecto_dir)

    with open(config_path, "r", encoding="utf-8") as f:
        raw_config = yaml.safe_load(f) or {}

    return config_from_dict(raw_config, root_dir=proyecto_dir)


def validate_config(config: IsuboConfig) -> list[str]:
    """
    Revisa que la configuración alcance para desplegar.

    Returns:
        Lista de problemas legibles. Vacía si todo está bien.
    """
    problemas = []

    if not config.github.owner:
        problemas.append("github.owner es obligatorio")
    if not config.github.repo:
        problemas.append("github.repo es obligatorio")
    if not config.github.token:
        problemas.append("github.token (o GITHUB_TOKEN) es obligatorio")

    if config.deploy.push_asset not in PUSH_ASSET_MODES:
        problemas.append(
            f"deploy.push_asset debe ser uno de {', '.join(PUSH_ASSET_MODES)}, "
            f"no '{config.deploy.push_asset}'"
        )
    if config.deploy.max_concurrency < 1:
        problemas.append("deploy.max_concurrency debe ser >= 1")
    if config.deploy.job_timeout <= 0:
        problemas.append("deploy.job_timeout debe ser > 0")

    if not config.absolute_source_dir.is_dir():
        problemas.append(f"posts.source_dir no existe: {config.absolute_source_dir}")

    return problemas
