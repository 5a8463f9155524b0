"""
Marquage des segments traduisibles d'un document.

Chaque élément feuille contenant du texte (p, li, div, td, pre, ...) reçoit un
identifiant stable `data-content-id` et un emplacement frère vide portant
`data-translation-id` avec la même valeur :

    Avant:
        <p>Hello</p>
    Après:
        <p class="original" data-content-id="3f9a0c1b2d4e">Hello</p>
        <p class="translation" data-translation-id="3f9a0c1b2d4e"></p>

Le texte libre placé à côté de blocs est regroupé dans un <span> marqué :

    <li>Intro <ul>...</ul></li>
    devient
    <li><span class="original" data-content-id="...">Intro</span><span
        class="translation" data-translation-id="..."></span> <ul>...</ul></li>

Le marquage est idempotent : un bloc déjà marqué n'est jamais renuméroté
et un second passage ne modifie rien.
"""

import hashlib
from pathlib import Path
from typing import Iterable, Optional

from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from ..errors import ParseError
from ..logger import get_logger
from .constants import (
    CONTENT_ID_ATTR,
    IGNORED_TAGS,
    INLINE_TAGS,
    ORIGINAL_CLASS,
    TRANSLATION_CLASS,
    TRANSLATION_ID_ATTR,
)
from .page import HtmlDocument

logger = get_logger(__name__)

ID_LENGTH = 12


def derive_segment_id(identity: str, path: str) -> str:
    """Identifiant déterministe dérivé de (identité du document, position)."""
    digest = hashlib.sha256(f"{identity}\x1f{path}".encode("utf-8"))
    return digest.hexdigest()[:ID_LENGTH]


def _class_list(tag: Tag) -> list[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        return classes.split()
    return list(classes)


def add_class(tag: Tag, name: str) -> None:
    classes = _class_list(tag)
    if name not in classes:
        tag["class"] = classes + [name]


def _is_text(node: PageElement) -> bool:
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _has_text(tag: Tag) -> bool:
    for string in tag.find_all(string=True):
        if not _is_text(string) or not string.strip():
            continue
        if any(parent.name in IGNORED_TAGS for parent in string.parents if parent is not tag):
            continue
        return True
    return False


def _is_marked(tag: Tag) -> bool:
    return tag.has_attr(CONTENT_ID_ATTR) or tag.has_attr(TRANSLATION_ID_ATTR)


def _contains_block(tag: Tag) -> bool:
    """Vrai si `tag` contient une balise autre que de texte, ou un segment déjà marqué."""
    stack = [child for child in tag.children if isinstance(child, Tag)]
    while stack:
        child = stack.pop()
        if child.name in IGNORED_TAGS:
            continue
        if child.name not in INLINE_TAGS or _is_marked(child):
            return True
        stack.extend(c for c in child.children if isinstance(c, Tag))
    return False


def _is_segment(tag: Tag) -> bool:
    return tag.name not in INLINE_TAGS and not _contains_block(tag) and _has_text(tag)


def _joins_run(node: PageElement) -> bool:
    if _is_text(node):
        return True
    return (
        isinstance(node, Tag)
        and node.name in INLINE_TAGS
        and not _is_marked(node)
        and not _contains_block(node)
    )


def _run_has_text(run: list[PageElement]) -> bool:
    for node in run:
        if _is_text(node):
            if node.strip():
                return True
        elif _has_text(node):
            return True
    return False


def _text_runs(node: Tag) -> list[list[PageElement]]:
    """
    Suites de texte libre d'un élément qui contient aussi des blocs.

    Exemple : dans <li>Intro <em>x</em><ul>...</ul> fin</li>, les suites sont
    ["Intro ", <em>x</em>] et [" fin"]. Seules les suites non blanches sont
    retournées.
    """
    runs: list[list[PageElement]] = []
    current: list[PageElement] = []
    for child in list(node.children):
        if _joins_run(child):
            current.append(child)
            continue
        if current:
            runs.append(current)
        current = []
    if current:
        runs.append(current)
    return [run for run in runs if _run_has_text(run)]


class SegmentMarker:
    """
    Parcourt un document et marque ses segments traduisibles.

    Le parcours utilise une pile explicite (pas de récursion) et un ensemble
    des identifiants déjà vus, garantissant l'unicité des IDs.
    """

    def __init__(self, document: HtmlDocument) -> None:
        self.document = document
        self.soup = document.soup

    def mark(self) -> int:
        """
        Marque le document en place.

        Returns:
            Nombre de segments nouvellement marqués
        """
        body = self.document.body
        placeholders = self.document.placeholders()
        visited: set[str] = set(placeholders)
        visited.update(str(tag[CONTENT_ID_ATTR]) for tag in self.document.sources())

        marked = 0
        stack: list[tuple[Tag, str]] = [(body, "body")]
        while stack:
            node, node_path = stack.pop()
            to_visit: list[tuple[Tag, str]] = []

            for child, child_path in self._element_children(node, node_path):
                if child.name in IGNORED_TAGS:
                    continue

                if child.has_attr(CONTENT_ID_ATTR):
                    segment_id = str(child[CONTENT_ID_ATTR])
                    if segment_id not in placeholders:
                        placeholders[segment_id] = self._insert_placeholder(child, segment_id)
                        logger.debug(f"Emplacement recréé pour le segment {segment_id}")
                    continue

                if _is_segment(child):
                    placeholders.update(self._mark_source(child, child_path, visited))
                    marked += 1
                elif _contains_block(child):
                    to_visit.append((child, child_path))

            # Texte libre à côté de blocs : chaque suite devient un <span> marqué
            for index, run in enumerate(_text_runs(node), start=1):
                wrapper = self._wrap_run(run)
                run_path = f"{node_path}/text()[{index}]"
                placeholders.update(self._mark_source(wrapper, run_path, visited))
                marked += 1

            stack.extend(reversed(to_visit))

        if marked:
            logger.info(f"🏷️ {marked} segment(s) marqué(s) dans {self.document}")
        return marked

    def _element_children(self, node: Tag, node_path: str) -> list[tuple[Tag, str]]:
        """
        Enfants balises de `node` avec leur chemin structurel.

        Les emplacements de traduction ne comptent pas dans les positions,
        ce qui rend les chemins indépendants des marquages précédents.
        """
        counters: dict[str, int] = {}
        children: list[tuple[Tag, str]] = []
        for child in node.children:
            if not isinstance(child, Tag) or child.has_attr(TRANSLATION_ID_ATTR):
                continue
            counters[child.name] = counters.get(child.name, 0) + 1
            children.append((child, f"{node_path}/{child.name}[{counters[child.name]}]"))
        return children

    def _mark_source(self, source: Tag, path: str, visited: set[str]) -> dict[str, Tag]:
        segment_id = self._new_id(path, visited)
        source[CONTENT_ID_ATTR] = segment_id
        add_class(source, ORIGINAL_CLASS)
        return {segment_id: self._insert_placeholder(source, segment_id)}

    def _wrap_run(self, run: list[PageElement]) -> Tag:
        """Déplace une suite de texte libre dans un <span>, blancs extrêmes exclus."""
        while _is_text(run[0]) and not run[0].strip():
            run.pop(0)
        while _is_text(run[-1]) and not run[-1].strip():
            run.pop()

        wrapper = self.soup.new_tag("span")
        run[0].insert_before(wrapper)
        for node in run:
            wrapper.append(node.extract())

        first = wrapper.contents[0]
        if _is_text(first) and first != first.lstrip():
            wrapper.insert_before(NavigableString(first[: len(first) - len(first.lstrip())]))
            first.replace_with(NavigableString(first.lstrip()))
        last = wrapper.contents[-1]
        if _is_text(last) and last != last.rstrip():
            wrapper.insert_after(NavigableString(last[len(last.rstrip()):]))
            last.replace_with(NavigableString(last.rstrip()))
        return wrapper

    def _new_id(self, path: str, visited: set[str]) -> str:
        base = derive_segment_id(self.document.identity, path)
        segment_id = base
        suffix = 1
        while segment_id in visited:
            suffix += 1
            segment_id = f"{base}-{suffix}"
        visited.add(segment_id)
        return segment_id

    def _insert_placeholder(self, source: Tag, segment_id: str) -> Tag:
        classes = [c for c in _class_list(source) if c != ORIGINAL_CLASS]
        placeholder = self.soup.new_tag(source.name)
        placeholder["class"] = classes + [TRANSLATION_CLASS]
        placeholder[TRANSLATION_ID_ATTR] = segment_id
        source.insert_after(placeholder)
        return placeholder


def mark(document: HtmlDocument) -> int:
    """Marque `document` en place et retourne le nombre de nouveaux segments."""
    return SegmentMarker(document).mark()


def mark_file(path: str | Path, identity: Optional[str] = None) -> int:
    """
    Marque un fichier et le réécrit seulement s'il a changé.

    Raises:
        ParseError: Si le fichier n'est pas parsable (il reste intact)
    """
    document = HtmlDocument.load(path, identity)
    before = len(document.placeholders())
    marked = mark(document)
    if marked or len(document.placeholders()) != before:
        document.save()
    return marked


def mark_files(paths: Iterable[str | Path]) -> tuple[int, list[ParseError]]:
    """
    Marque plusieurs fichiers en continuant après une erreur de parsing.

    Returns:
        Tuple (nombre total de segments marqués, erreurs rencontrées)
    """
    total = 0
    errors: list[ParseError] = []
    for path in paths:
        try:
            total += mark_file(path)
        except ParseError as e:
            logger.error(f"❌ Document ignoré : {e}")
            errors.append(e)
    return total, errors
