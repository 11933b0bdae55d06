"""
test_issue_client.py — Tests para el cliente de issues.

La sesión de requests se reemplaza por un MagicMock: no hay
llamadas reales a la API de GitHub.
"""

from unittest.mock import MagicMock

import pytest
import requests

from isubo.publishing.issue_client import IssueClient, IssueResult

API = "https://api.github.com/repos/isaaxite/blog/issues"


def _response(data, status=200):
    response = MagicMock()
    response.json.return_value = data
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status} Error")
    return response


@pytest.fixture
def client():
    cliente = IssueClient("isaaxite", "blog", "t0k3n")
    cliente._session = MagicMock()
    return cliente


class TestIssueResult:

    def test_from_response(self):
        issue = IssueResult.from_response({
            "number": "7", "title": "Hola", "html_url": "https://github.com/x/7",
        })
        assert issue.number == 7
        assert issue.url == "https://github.com/x/7"
        assert issue.raw["title"] == "Hola"


class TestCreate:

    def test_post_con_labels(self, client):
        client._session.post.return_value = _response(
            {"number": 1, "title": "Hola", "html_url": "u"}
        )

        issue = client.create("Hola", "body", labels=["git"])

        assert issue.number == 1
        url = client._session.post.call_args.args[0]
        payload = client._session.post.call_args.kwargs["json"]
        assert url == API
        assert payload == {"title": "Hola", "body": "body", "labels": ["git"]}

    def test_sin_labels_no_se_mandan(self, client):
        client._session.post.return_value = _response({"number": 1, "title": "Hola"})
        client.create("Hola", "body")
        assert "labels" not in client._session.post.call_args.kwargs["json"]

    def test_error_http_se_propaga(self, client):
        client._session.post.return_value = _response({}, status=401)
        with pytest.raises(requests.HTTPError):
            client.create("Hola", "body")


class TestUpdate:

    def test_patch_al_issue(self, client):
        client._session.patch.return_value = _response({"number": 12, "title": "T"})

        issue = client.update(12, "T", "body")

        assert issue.number == 12
        assert client._session.patch.call_args.args[0] == f"{API}/12"
        assert "labels" not in client._session.patch.call_args.kwargs["json"]

    def test_labels_vacios_limpian(self, client):
        client._session.patch.return_value = _response({"number": 12, "title": "T"})
        client.update(12, "T", "body", labels=[])
        assert client._session.patch.call_args.kwargs["json"]["labels"] == []

    def test_404_se_propaga(self, client):
        client._session.patch.return_value = _response({}, status=404)
        with pytest.raises(requests.HTTPError):
            client.update(99, "T", "body")


class TestConfigured:

    def test_headers(self):
        cliente = IssueClient("o", "r", "t0k3n")
        assert cliente._session.headers["Authorization"] == "Bearer t0k3n"

    def test_api_base_enterprise(self):
        cliente = IssueClient("o", "r", "t", api_base="https://ghe.local/api/v3/")
        assert cliente._issues_url == "https://ghe.local/api/v3/repos/o/r/issues"
