"""
Module pour charger, marquer et réécrire les pages HTML d'un EPUB décompressé.

Organisation du module :
- constants.py : Attributs de marquage, balises de texte et balises ignorées
- page.py : Classe HtmlDocument (parsing, segments, écriture atomique)
- marker.py : Marquage idempotent des segments (SegmentMarker)

Exports publics :
    Classes :
        - HtmlDocument : Document parsé et ses segments
        - SegmentMarker : Parcours et marquage d'un document

    Fonctions :
        - mark : Marque un document en mémoire
        - mark_file / mark_files : Marquent des fichiers sur disque
"""

from .constants import (
    CONTENT_ID_ATTR,
    IGNORED_TAGS,
    INLINE_TAGS,
    RETRANSLATE_ATTR,
    SOURCE_HASH_ATTR,
    TRANSLATION_ID_ATTR,
)
from .page import HtmlDocument
from .marker import SegmentMarker, derive_segment_id, mark, mark_file, mark_files

__all__ = [
    # Constantes
    "CONTENT_ID_ATTR",
    "IGNORED_TAGS",
    "INLINE_TAGS",
    "RETRANSLATE_ATTR",
    "SOURCE_HASH_ATTR",
    "TRANSLATION_ID_ATTR",
    # Classes
    "HtmlDocument",
    "SegmentMarker",
    # Fonctions
    "derive_segment_id",
    "mark",
    "mark_file",
    "mark_files",
]
