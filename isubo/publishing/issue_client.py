"""
issue_client.py — Cliente de la API de issues de GitHub.

Cada post publicado es un issue del repo configurado:
    - create: POST  /repos/{owner}/{repo}/issues
    - update: PATCH /repos/{owner}/{repo}/issues/{number}

Los errores de red o de autenticación NO se envuelven: requests
lanza HTTPError/RequestException y el orquestador los aísla por post.

Uso:
    from isubo.publishing.issue_client import IssueClient
    client = IssueClient(owner, repo, token)
    issue = client.create(title="Mi post", body="...", labels=["python"])
    print(issue.number, issue.url)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from isubo.utils.logger import get_logger

logger = get_logger("isubo.issues")


@dataclass
class IssueResult:
    """
    Issue creado o actualizado.

    Attributes:
        number: Número del issue en GitHub
        title: Título con el que quedó
        url: URL pública (html_url)
        raw: Respuesta JSON completa de la API
    """
    number: int
    title: str
    url: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> IssueResult:
        return cls(
            number=int(data["number"]),
            title=data.get("title", ""),
            url=data.get("html_url", ""),
            raw=data,
        )


class IssueClient:
    """
    Crea y actualiza issues en un repositorio de GitHub.

    Args:
        owner: Dueño del repo (usuario u organización)
        repo: Nombre del repo
        token: Token con permiso issues:write
        api_base: URL base de la API (GitHub Enterprise usa otra)
        timeout: Timeout de cada request en segundos
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str,
        api_base: str = "https://api.github.com",
        timeout: float = 30,
    ):
        self._owner = owner
        self._repo = repo
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        self._token = token
        self._session = requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        })

    @property
    def _issues_url(self) -> str:
        return f"{self._api_base}/repos/{self._owner}/{self._repo}/issues"

    def create(
        self,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        """
        Crea un issue nuevo, siempre.

        No busca si ya existe uno con el mismo título: es un
        force-create.

        Raises:
            requests.HTTPError: Si GitHub responde con error.
        """
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels:
            payload["labels"] = labels

        response = self._session.post(
            self._issues_url, json=payload, timeout=self._timeout
        )
        response.raise_for_status()

        issue = IssueResult.from_response(response.json())
        logger.debug(f"Issue #{issue.number} creado: {title}")
        return issue

    def update(
        self,
        number: int,
        title: str,
        body: str,
        labels: list[str] | None = None,
    ) -> IssueResult:
        """
        Actualiza título, body y labels de un issue existente.

        Raises:
            requests.HTTPError: Si GitHub responde con error.
        """
        payload: dict[str, Any] = {"title": title, "body": body}
        if labels is not None:
            payload["labels"] = labels

        response = self._session.patch(
            f"{self._issues_url}/{number}", json=payload, timeout=self._timeout
        )
        response.raise_for_status()

        issue = IssueResult.from_response(response.json())
        logger.debug(f"Issue #{issue.number} actualizado: {title}")
        return issue
