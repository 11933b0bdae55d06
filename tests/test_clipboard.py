"""
test_clipboard.py — Tests para la copia al portapapeles.

subprocess.run y shutil.which se mockean: no se toca el
portapapeles real.
"""

import subprocess
from unittest.mock import patch

import pytest

from isubo.utils.clipboard import copy_to_clipboard


class TestCopyToClipboard:

    def test_macos_usa_pbcopy(self):
        with patch("isubo.utils.clipboard.sys.platform", "darwin"), \
             patch("isubo.utils.clipboard.subprocess.run") as run:
            copy_to_clipboard("hola")
        assert run.call_args.args[0] == ["pbcopy"]
        assert run.call_args.kwargs["input"] == "hola"

    def test_linux_elige_el_primero_instalado(self):
        instalados = {"xclip"}
        with patch("isubo.utils.clipboard.sys.platform", "linux"), \
             patch("isubo.utils.clipboard.shutil.which", side_effect=lambda c: c in instalados), \
             patch("isubo.utils.clipboard.subprocess.run") as run:
            copy_to_clipboard("hola")
        assert run.call_args.args[0] == ["xclip", "-selection", "clipboard"]

    def test_sin_comando_disponible(self):
        with patch("isubo.utils.clipboard.sys.platform", "linux"), \
             patch("isubo.utils.clipboard.shutil.which", return_value=None):
            with pytest.raises(RuntimeError):
                copy_to_clipboard("hola")

    def test_comando_que_falla(self):
        error = subprocess.CalledProcessError(1, ["pbcopy"])
        with patch("isubo.utils.clipboard.sys.platform", "darwin"), \
             patch("isubo.utils.clipboard.subprocess.run", side_effect=error):
            with pytest.raises(RuntimeError, match="portapapeles"):
                copy_to_clipboard("hola")
