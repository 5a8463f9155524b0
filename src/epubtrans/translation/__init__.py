"""
Orchestration de la traduction des segments d'un EPUB décompressé.

Organisation du module :
- language.py : Énumération des langues proposées
- documents.py : Découverte des documents (X)HTML d'un répertoire
- engine.py : Traduction d'un segment (cache puis backend)
- translator.py : Orchestration d'un lot (BookTranslator)

Exports publics :
    Classes :
        - BookTranslator : Point d'entrée du moteur
        - TranslationEngine : Traduction d'une tâche via cache et backend
        - Language : Langues proposées

    Fonctions :
        - find_documents : Liste les documents d'un répertoire

Usage :
    >>> from epubtrans.translation import BookTranslator, find_documents
    >>>
    >>> translator = BookTranslator(backend, TranslationCache())
    >>> report = translator.run(find_documents("unpackage"), "english", "vietnamese")
"""

from .documents import find_documents
from .engine import TranslationEngine
from .language import Language
from .translator import BookTranslator

__all__ = [
    "BookTranslator",
    "TranslationEngine",
    "Language",
    "find_documents",
]
