"""
Marquage et traduction des segments d'un EPUB décompressé via LLM.

epubtrans travaille directement sur les documents (X)HTML d'un EPUB
décompressé (répertoire `unpackage/` par exemple) :

1. Marque chaque bloc de texte (p, h1-h6, li, ...) avec un identifiant
   stable et insère juste après un emplacement de traduction vide
2. Traduit les segments non traduits via une API compatible OpenAI, en
   parallèle et avec un cache mémoire (TTL)
3. Réécrit chaque document de façon atomique avec les traductions

Fonctionnalités principales :
- Marquage idempotent (un second passage ne change rien)
- Reprise : seuls les segments vides, modifiés ou signalés sont traduits
- Retry avec backoff sur limitation de débit, annulation coopérative
- Rapport détaillé (traduits, depuis le cache, erreurs, ignorés)
- Métadonnées d'usage persistées (appels, modèles, tokens)

Organisation du package :
- config.py : Configuration (variables d'environnement, niveaux de log)
- errors.py : Hiérarchie des exceptions
- logger.py : Logs de session compatibles tqdm
- cache.py : Cache mémoire des traductions
- store.py : Métadonnées d'usage (JSON)
- llm.py : Backend de traduction OpenAI et templates Jinja2
- segment.py : Segments et tâches de traduction
- report.py : Rapport d'exécution
- worker.py : Pool de traduction
- htmlpage/ : Parsing, marquage et écriture des documents
- translation/ : Orchestration (BookTranslator)

Usage minimal :
    >>> from epubtrans import (
    ...     BookTranslator, OpenAITranslator, TranslationCache,
    ...     TranslatorConfig, UsageStore, find_documents,
    ... )
    >>>
    >>> config = TranslatorConfig.from_env()  # requiert API_KEY dans .env
    >>> backend = OpenAITranslator(config, UsageStore(config.metadata_path))
    >>> translator = BookTranslator(backend, TranslationCache(config.cache_ttl))
    >>> report = translator.run(
    ...     find_documents("unpackage"),
    ...     source_lang="english",
    ...     target_lang="vietnamese",
    ...     concurrency=4,
    ... )
    >>> print(report.to_dict())

Configuration :
    Créez un fichier .env :

        API_KEY=sk-votre-cle-ici
        API_URL=https://api.openai.com/v1
        MODEL=gpt-4o-mini

Version: 0.1.0
"""

from .cache import TranslationCache, make_cache_key
from .config import TranslatorConfig
from .errors import (
    BackendError,
    CacheUnavailable,
    ConfigError,
    EpubTransError,
    MaxRetriesExceeded,
    ParseError,
    PersistenceError,
    RateLimited,
    SegmentNotFoundError,
    TranslationCancelled,
)
from .htmlpage import HtmlDocument, SegmentMarker, mark, mark_file, mark_files
from .llm import OpenAITranslator, Translator
from .report import Report, SegmentResult, SegmentStatus
from .segment import Segment, TranslationJob
from .store import UsageMetadata, UsageStore
from .translation import BookTranslator, Language, TranslationEngine, find_documents

# Version du package
__version__ = "0.1.0"

# Exports publics
__all__ = [
    # Version
    "__version__",
    # Orchestration
    "BookTranslator",
    "TranslationEngine",
    "Language",
    "find_documents",
    "Report",
    "SegmentResult",
    "SegmentStatus",
    # Backend
    "Translator",
    "OpenAITranslator",
    "TranslatorConfig",
    # Cache et usage
    "TranslationCache",
    "make_cache_key",
    "UsageStore",
    "UsageMetadata",
    # Documents
    "HtmlDocument",
    "SegmentMarker",
    "Segment",
    "TranslationJob",
    "mark",
    "mark_file",
    "mark_files",
    # Erreurs
    "EpubTransError",
    "ParseError",
    "SegmentNotFoundError",
    "RateLimited",
    "BackendError",
    "MaxRetriesExceeded",
    "TranslationCancelled",
    "CacheUnavailable",
    "PersistenceError",
    "ConfigError",
]
