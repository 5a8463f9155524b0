"""
Modèle des segments traduisibles et des tâches de traduction.

Un segment associe une balise originale (data-content-id) à son emplacement
de traduction (data-translation-id) dans le même document.
"""

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Longueur de l'empreinte stockée dans data-source-hash
HASH_LENGTH = 16


def content_hash(text: str) -> str:
    """Empreinte du texte source, insensible aux espaces de bordure."""
    return hashlib.sha256(text.strip().encode("utf-8")).hexdigest()[:HASH_LENGTH]


@dataclass
class Segment:
    """
    Unité de texte traduisible d'un document.

    Attributes:
        segment_id: Identifiant stable, unique dans le document
        source_text: Contenu HTML interne de la balise originale
        translated_text: Contenu HTML interne de l'emplacement (None si vide
            ou si l'emplacement est absent)
        recorded_hash: Empreinte du source au moment de la dernière traduction
        flagged: L'emplacement est marqué pour retraduction
    """

    segment_id: str
    source_text: str
    translated_text: Optional[str] = None
    recorded_hash: Optional[str] = None
    flagged: bool = False

    @property
    def content_hash(self) -> str:
        return content_hash(self.source_text)

    @property
    def is_translated(self) -> bool:
        return bool(self.translated_text and self.translated_text.strip())

    @property
    def is_stale(self) -> bool:
        """Le source a changé depuis la traduction enregistrée."""
        return (
            self.is_translated
            and self.recorded_hash is not None
            and self.recorded_hash != self.content_hash
        )

    @property
    def needs_translation(self) -> bool:
        return not self.is_translated or self.is_stale or self.flagged


@dataclass(frozen=True)
class TranslationJob:
    """
    Unité de travail soumise au pool de traduction.

    Attributes:
        document: Chemin du document d'origine
        segment_id: Identifiant du segment
        source_text: Texte à traduire
        previous_translation: Traduction existante à affiner (optionnelle)
        instructions: Consignes libres de l'utilisateur
    """

    document: Path
    segment_id: str
    source_text: str
    previous_translation: Optional[str] = None
    instructions: str = ""
