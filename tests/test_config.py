"""
test_config.py — Tests para el módulo de configuración.

Verificamos que:
1. La configuración se carga correctamente desde isubo.conf.yml
2. Las variables de entorno se resuelven (también desde .env)
3. Los valores por defecto funcionan cuando no hay archivo
4. validate_config reporta cada problema
"""

import os
from unittest.mock import patch

import pytest

from isubo.config import (
    CONFIG_FILENAME,
    IsuboConfig,
    config_from_dict,
    load_config,
    validate_config,
    _resolve_env_vars,
    _resolve_env_recursive,
)
from isubo.errors import ConfigError


class TestResolveEnvVars:
    """Tests para la resolución de variables de entorno."""

    def test_resuelve_variable_existente(self):
        """Debe reemplazar ${VAR} con el valor de la variable de entorno."""
        with patch.dict("os.environ", {"MI_VAR": "hola"}):
            assert _resolve_env_vars("${MI_VAR}/path") == "hola/path"

    def test_mantiene_variable_inexistente(self):
        """Si la variable no existe, debe mantener el placeholder."""
        assert _resolve_env_vars("${NO_EXISTE_ISUBO}") == "${NO_EXISTE_ISUBO}"

    def test_resuelve_multiples_variables(self):
        with patch.dict("os.environ", {"A": "1", "B": "2"}):
            assert _resolve_env_vars("${A}-${B}") == "1-2"


class TestResolveEnvRecursive:

    def test_resuelve_en_dict_anidado(self):
        with patch.dict("os.environ", {"PATH_VAR": "/mi/path"}):
            resultado = _resolve_env_recursive({"nivel1": {"nivel2": "${PATH_VAR}"}})
            assert resultado["nivel1"]["nivel2"] == "/mi/path"

    def test_resuelve_en_lista(self):
        with patch.dict("os.environ", {"VAL": "ok"}):
            assert _resolve_env_recursive(["${VAL}", "fijo"]) == ["ok", "fijo"]

    def test_no_modifica_numeros(self):
        assert _resolve_env_recursive(42) == 42


class TestIsuboConfig:

    def test_valores_por_defecto(self):
        """IsuboConfig debe tener valores por defecto sensatos."""
        config = IsuboConfig()
        assert config.github.branch == "master"
        assert config.github.api_base == "https://api.github.com"
        assert config.posts.source_dir == "source"
        assert config.posts.toc is True
        assert config.posts.source_statement.enable is True
        assert config.deploy.push_asset == "auto"
        assert config.deploy.remote == "origin"
        assert config.deploy.max_concurrency == 6
        assert config.deploy.job_timeout == 10.0

    def test_absolute_source_dir(self, tmp_path):
        config = config_from_dict({"posts": {"source_dir": "posts"}}, root_dir=tmp_path)
        assert config.absolute_source_dir == (tmp_path / "posts").resolve()


class TestConfigFromDict:

    def test_ignora_keys_desconocidas(self, tmp_path):
        config = config_from_dict(
            {"github": {"owner": "isaaxite", "color": "rojo"}, "extra": 1},
            root_dir=tmp_path,
        )
        assert config.github.owner == "isaaxite"

    def test_source_statement_anidado(self, tmp_path):
        config = config_from_dict({
            "posts": {"source_statement": {"enable": False, "content": ["x"]}},
        }, root_dir=tmp_path)
        assert config.posts.source_statement.enable is False
        assert config.posts.source_statement.content == ["x"]

    def test_token_desde_entorno(self, tmp_path):
        """Un placeholder sin resolver cae a GITHUB_TOKEN."""
        with patch.dict("os.environ", {"GITHUB_TOKEN": "ghp_env"}):
            config = config_from_dict(
                {"github": {"token": "${TOKEN_QUE_NO_EXISTE}"}}, root_dir=tmp_path
            )
        assert config.github.token == "ghp_env"


class TestLoadConfig:

    def test_carga_sin_archivo(self, tmp_path):
        """Si no hay isubo.conf.yml, debe usar valores por defecto."""
        with patch("isubo.config._find_config_dir", return_value=tmp_path):
            config = load_config()
        assert isinstance(config, IsuboConfig)
        assert config.root_dir == tmp_path

    def test_carga_yaml_y_env(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ISUBO_TEST_TOKEN", raising=False)
        (tmp_path / ".env").write_text("ISUBO_TEST_TOKEN=ghp_dotenv\n", encoding="utf-8")
        archivo = tmp_path / CONFIG_FILENAME
        archivo.write_text(
            "github:\n"
            "  owner: isaaxite\n"
            "  repo: blog\n"
            "  token: ${ISUBO_TEST_TOKEN}\n"
            "deploy:\n"
            "  push_asset: prompt\n"
            "  max_concurrency: 2\n",
            encoding="utf-8",
        )

        try:
            config = load_config(archivo)
        finally:
            os.environ.pop("ISUBO_TEST_TOKEN", None)

        assert config.github.token == "ghp_dotenv"
        assert config.deploy.push_asset == "prompt"
        assert config.deploy.max_concurrency == 2
        assert config.root_dir == tmp_path.resolve()

    def test_busca_hacia_arriba(self, tmp_path, monkeypatch):
        (tmp_path / CONFIG_FILENAME).write_text("github:\n  repo: blog\n", encoding="utf-8")
        anidado = tmp_path / "source" / "drafts"
        anidado.mkdir(parents=True)
        monkeypatch.chdir(anidado)

        config = load_config()

        assert config.github.repo == "blog"
        assert config.root_dir.resolve() == tmp_path.resolve()


class TestValidateConfig:

    def _valida(self, tmp_path, **deploy):
        (tmp_path / "source").mkdir(exist_ok=True)
        return config_from_dict({
            "github": {"owner": "isaaxite", "repo": "blog", "token": "t0k3n"},
            "deploy": deploy,
        }, root_dir=tmp_path)

    def test_config_completa(self, tmp_path):
        assert validate_config(self._valida(tmp_path)) == []

    def test_faltan_campos_de_github(self, tmp_path, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        (tmp_path / "source").mkdir()
        problemas = validate_config(config_from_dict({}, root_dir=tmp_path))
        assert len(problemas) == 3
        assert any("github.token" in p for p in problemas)

    @pytest.mark.parametrize("deploy, campo", [
        ({"push_asset": "siempre"}, "deploy.push_asset"),
        ({"max_concurrency": 0}, "deploy.max_concurrency"),
        ({"job_timeout": 0}, "deploy.job_timeout"),
    ])
    def test_deploy_invalido(self, tmp_path, deploy, campo):
        problemas = validate_config(self._valida(tmp_path, **deploy))
        assert len(problemas) == 1
        assert campo in problemas[0]

    def test_source_dir_inexistente(self, tmp_path):
        config = self._valida(tmp_path)
        config.posts.source_dir = "no-existe"
        problemas = validate_config(config)
        assert problemas and "posts.source_dir" in problemas[0]

    def test_config_error_lista_problemas(self):
        error = ConfigError(["a", "b"])
        assert error.problems == ["a", "b"]
        assert isinstance(error, ValueError)
        assert "- a" in str(error)
