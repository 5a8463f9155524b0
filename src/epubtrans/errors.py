"""
Exceptions du moteur de marquage et de traduction.

Hiérarchie :
    EpubTransError
    ├── ParseError            document illisible, ignoré pour le reste du lot
    ├── SegmentNotFoundError  identifiant de segment inconnu dans le document
    ├── RateLimited           le backend demande de ralentir (retry avec backoff)
    ├── BackendError          toute autre erreur du backend (pas de retry)
    ├── MaxRetriesExceeded    retries épuisés, enveloppe la dernière erreur
    ├── TranslationCancelled  annulation demandée pendant un appel
    ├── CacheUnavailable      jamais fatal, traité comme un miss
    ├── PersistenceError      métadonnées d'usage, loggé uniquement
    └── ConfigError           configuration incomplète
"""

from pathlib import Path
from typing import Optional


class EpubTransError(Exception):
    """Classe de base de toutes les erreurs du package."""


class ParseError(EpubTransError):
    """
    Le document ne peut pas être transformé en arbre structurel.

    Attributes:
        path: Chemin du document concerné (None pour du contenu en mémoire)
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        if path is not None:
            message = f"{path}: {message}"
        super().__init__(message)


class SegmentNotFoundError(EpubTransError, KeyError):
    def __init__(self, segment_id: str, path: Optional[Path] = None):
        self.segment_id = segment_id
        self.path = path
        super().__init__(f"Segment {segment_id!r} introuvable dans {path or 'le document'}")

    def __str__(self) -> str:
        return self.args[0]


class RateLimited(EpubTransError):
    """Le backend signale une limitation de débit."""


class BackendError(EpubTransError):
    """Erreur non récupérable du backend (auth, requête invalide, panne serveur)."""


class MaxRetriesExceeded(EpubTransError):
    """
    Levée quand toutes les tentatives ont échoué sur une limitation de débit.

    Attributes:
        attempts: Nombre de tentatives effectuées
        last_error: Dernière erreur reçue (aussi disponible via __cause__)
    """

    def __init__(self, attempts: int, last_error: Exception):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Échec après {attempts} tentatives : {last_error}")


class TranslationCancelled(EpubTransError):
    """Annulation demandée par l'appelant."""


class CacheUnavailable(EpubTransError):
    pass


class PersistenceError(EpubTransError):
    pass


class ConfigError(EpubTransError):
    pass
