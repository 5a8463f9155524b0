"""
Classe principale HtmlDocument pour charger, interroger et réécrire un document.
"""

import os
from pathlib import Path
from typing import Iterator, Optional

from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup
from bs4.element import Tag

from ..errors import ParseError, SegmentNotFoundError
from ..segment import Segment, content_hash
from .constants import (
    CONTENT_ID_ATTR,
    RETRANSLATE_ATTR,
    SOURCE_HASH_ATTR,
    TRANSLATION_ID_ATTR,
)


class HtmlDocument:
    """
    Document (X)HTML d'un EPUB décompressé, parsé avec BeautifulSoup.

    Aucun cache global : chaque chargement produit un nouvel arbre, modifié
    en mémoire puis réécrit sur disque par save().

    Attributes:
        soup: L'arbre BeautifulSoup parsé
        path: Chemin du fichier source (None pour un document en mémoire)
        identity: Identité stable du document, utilisée pour dériver les IDs
    """

    def __init__(
        self,
        soup: BeautifulSoup,
        path: Optional[Path] = None,
        identity: Optional[str] = None,
    ) -> None:
        self.soup = soup
        self.path = path
        self.identity = identity or (path.name if path is not None else "")

        body = soup.find("body")
        if not isinstance(body, Tag):
            raise ParseError("aucun élément <body> : arbre structurel introuvable", path)
        self.body = body

    @classmethod
    def from_bytes(
        cls,
        data: bytes | str,
        path: Optional[Path] = None,
        identity: Optional[str] = None,
    ) -> "HtmlDocument":
        """
        Parse un contenu HTML.

        Raises:
            ParseError: Si le contenu n'est pas décodable ou pas un arbre HTML
        """
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                raise ParseError(f"encodage invalide : {e}", path) from e

        try:
            soup = BeautifulSoup(data, "html.parser")
        except (ParserRejectedMarkup, AssertionError) as e:
            raise ParseError(f"balisage rejeté par le parser : {e}", path) from e

        return cls(soup, path, identity)

    @classmethod
    def load(cls, path: str | Path, identity: Optional[str] = None) -> "HtmlDocument":
        """Charge un document depuis le disque. Les erreurs d'E/S remontent telles quelles."""
        path = Path(path)
        return cls.from_bytes(path.read_bytes(), path, identity)

    def to_bytes(self) -> bytes:
        return self.soup.encode("utf-8")

    def save(self, path: str | Path | None = None) -> Path:
        """
        Réécrit le document de façon atomique (fichier temporaire puis rename).

        Un arrêt brutal pendant l'écriture laisse l'ancien fichier intact.
        """
        target = Path(path) if path is not None else self.path
        if target is None:
            raise ValueError("Aucun chemin de destination pour ce document")

        tmp_path = target.with_name(f".{target.name}.tmp")
        try:
            with open(tmp_path, "wb") as f:
                f.write(self.to_bytes())
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        return target

    # -----------------------------------
    # 🔹 Accès aux segments
    # -----------------------------------
    def sources(self) -> Iterator[Tag]:
        yield from self.body.find_all(attrs={CONTENT_ID_ATTR: True})

    def placeholders(self) -> dict[str, Tag]:
        return {
            str(tag[TRANSLATION_ID_ATTR]): tag
            for tag in self.body.find_all(attrs={TRANSLATION_ID_ATTR: True})
        }

    def find_source(self, segment_id: str) -> Tag:
        tag = self.body.find(attrs={CONTENT_ID_ATTR: segment_id})
        if not isinstance(tag, Tag):
            raise SegmentNotFoundError(segment_id, self.path)
        return tag

    def find_placeholder(self, segment_id: str) -> Tag:
        tag = self.body.find(attrs={TRANSLATION_ID_ATTR: segment_id})
        if not isinstance(tag, Tag):
            raise SegmentNotFoundError(segment_id, self.path)
        return tag

    def segments(self) -> list[Segment]:
        """
        Liste les segments du document dans l'ordre du texte.

        Returns:
            Un Segment par balise originale marquée. translated_text vaut None
            si l'emplacement est vide ou absent.
        """
        placeholders = self.placeholders()
        result: list[Segment] = []
        for source in self.sources():
            segment_id = str(source[CONTENT_ID_ATTR])
            placeholder = placeholders.get(segment_id)
            translated = None
            recorded_hash = None
            flagged = False
            if placeholder is not None:
                inner = placeholder.decode_contents()
                translated = inner if inner.strip() else None
                recorded_hash = placeholder.get(SOURCE_HASH_ATTR)
                flagged = placeholder.has_attr(RETRANSLATE_ATTR)
            result.append(
                Segment(
                    segment_id=segment_id,
                    source_text=source.decode_contents(),
                    translated_text=translated,
                    recorded_hash=str(recorded_hash) if recorded_hash else None,
                    flagged=flagged,
                )
            )
        return result

    def segment(self, segment_id: str) -> Segment:
        for seg in self.segments():
            if seg.segment_id == segment_id:
                return seg
        raise SegmentNotFoundError(segment_id, self.path)

    # -----------------------------------
    # 🔹 Écriture des traductions
    # -----------------------------------
    def fill(self, segment_id: str, translated_html: str) -> None:
        """
        Remplace le contenu de l'emplacement par la traduction.

        L'empreinte du source courant est enregistrée dans data-source-hash et
        le marqueur de retraduction est retiré.

        Raises:
            SegmentNotFoundError: Si le segment ou son emplacement n'existe pas
        """
        source = self.find_source(segment_id)
        placeholder = self.find_placeholder(segment_id)

        placeholder.clear()
        fragment = BeautifulSoup(translated_html, "html.parser")
        for child in list(fragment.contents):
            placeholder.append(child.extract())

        placeholder[SOURCE_HASH_ATTR] = content_hash(source.decode_contents())
        if placeholder.has_attr(RETRANSLATE_ATTR):
            del placeholder[RETRANSLATE_ATTR]

    def flag_for_retranslation(self, segment_id: str) -> None:
        self.find_placeholder(segment_id)[RETRANSLATE_ATTR] = "true"

    def __repr__(self) -> str:
        return f"HtmlDocument({self.path or self.identity})"
