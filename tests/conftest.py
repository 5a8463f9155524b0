"""
Configuration pytest pour les tests epubtrans.

Ce fichier contient les fixtures communes à tous les tests.
"""

import threading
from pathlib import Path
from typing import Optional

import pytest

from epubtrans.config import Logger_Level, TemplateNames
from epubtrans.errors import BackendError
from epubtrans.llm import Translator
from epubtrans.logger import LogSession


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path, monkeypatch):
    """Redirige les logs de session vers un répertoire temporaire."""
    monkeypatch.setattr(Logger_Level, "log_dir", str(tmp_path / "logs"))
    LogSession.reset()
    yield tmp_path / "logs"
    LogSession.reset()


@pytest.fixture(autouse=True)
def unlocked_config():
    """Déverrouille les singletons de configuration après chaque test."""
    yield
    for settings in (Logger_Level(), TemplateNames()):
        object.__setattr__(settings, "_locked", False)


class UppercaseTranslator(Translator):
    """
    Backend factice : traduit en majuscules.

    Attributes:
        calls: Textes reçus, dans l'ordre des appels
        fail_on: Textes pour lesquels le backend lève BackendError
        kwargs: Arguments nommés reçus par appel
    """

    style_id = "uppercase"

    def __init__(self, fail_on: Optional[set[str]] = None):
        self.calls: list[str] = []
        self.kwargs: list[dict] = []
        self.fail_on = fail_on or set()
        self._lock = threading.Lock()

    def translate(
        self,
        content,
        instructions="",
        source_lang="english",
        target_lang="vietnamese",
        book_context="",
        previous_translation=None,
        cancel_event=None,
    ):
        with self._lock:
            self.calls.append(content)
            self.kwargs.append(
                {
                    "instructions": instructions,
                    "source_lang": source_lang,
                    "target_lang": target_lang,
                    "book_context": book_context,
                    "previous_translation": previous_translation,
                }
            )
        if content in self.fail_on:
            raise BackendError(f"refus du backend pour {content!r}")
        return content.upper()


@pytest.fixture
def uppercase_translator():
    return UppercaseTranslator()


def make_page(body: str, title: str = "Chapitre") -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>\n'
        '<html xmlns="http://www.w3.org/1999/xhtml">'
        f"<head><title>{title}</title></head>"
        f"<body>{body}</body></html>"
    )


@pytest.fixture
def write_page(tmp_path):
    """
    Fixture écrivant un document XHTML dans un répertoire temporaire.

    Returns:
        Fonction (nom, contenu du body) -> Path
    """
    book_dir = tmp_path / "unpackage"
    book_dir.mkdir(exist_ok=True)

    def _write(name: str, body: str) -> Path:
        path = book_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(make_page(body), encoding="utf-8")
        return path

    return _write
