"""
Orchestration de la traduction d'un lot de documents.

Ce module fournit BookTranslator, point d'entrée du moteur :
- run() : marque puis traduit un lot de documents (pool borné, cache, rapport)
- translate_one() : variante synchrone pour un seul segment (serveur d'aperçu)
- update_translation() : enregistre une traduction éditée à la main
"""

import threading
import time
from pathlib import Path
from typing import Iterable, Optional, TYPE_CHECKING

from ..errors import ParseError
from ..htmlpage import HtmlDocument, mark
from ..logger import get_logger
from ..report import Report, SegmentResult
from ..segment import TranslationJob
from ..worker import DocumentBatch, TranslationWorker
from .engine import TranslationEngine
from .language import Language

if TYPE_CHECKING:
    from ..cache import TranslationCache
    from ..llm import Translator

logger = get_logger(__name__)


def _language_name(language: Language | str) -> str:
    return language.value if isinstance(language, Language) else language


class BookTranslator:
    """
    Orchestrateur principal : documents -> segments -> backend -> documents.

    Le backend et le cache sont injectés ; plusieurs orchestrateurs peuvent
    coexister avec des configurations différentes.

    Example:
        >>> translator = BookTranslator(OpenAITranslator(config), TranslationCache())
        >>> report = translator.run(paths, "english", "vietnamese", concurrency=4)
        >>> print(report.to_dict())
    """

    def __init__(
        self,
        translator: "Translator",
        cache: Optional["TranslationCache"] = None,
        show_progress: bool = True,
    ):
        self.translator = translator
        self.cache = cache
        self.show_progress = show_progress

    def run(
        self,
        documents: Iterable[str | Path],
        source_lang: Language | str,
        target_lang: Language | str,
        concurrency: int = 1,
        *,
        book_context: str = "",
        instructions: str = "",
        retranslate: Optional[Iterable[str]] = None,
        cancel_event: Optional[threading.Event] = None,
        mark_documents: bool = True,
    ) -> Report:
        """
        Traduit tous les segments non traduits d'un lot de documents.

        Un segment est traduit si son emplacement est vide, si son texte source
        a changé depuis la traduction enregistrée, si son emplacement porte
        data-retranslate ou si son identifiant figure dans `retranslate`.

        Args:
            documents: Chemins des documents (X)HTML
            source_lang: Langue source
            target_lang: Langue cible
            concurrency: Nombre maximum d'appels simultanés au backend
            book_context: Titre ou contexte du livre transmis aux consignes
            instructions: Consignes libres ajoutées à chaque requête
            retranslate: Identifiants de segments à retraduire de force
            cancel_event: Signal d'annulation ; les segments déjà traduits
                sont conservés et le rapport partiel est retourné
            mark_documents: Marque les documents avant de les parcourir

        Returns:
            Report du lot. Une erreur sur un segment ou un document n'interrompt
            jamais le lot.
        """
        if concurrency < 1:
            raise ValueError("concurrency doit être >= 1")
        started = time.monotonic()
        cancel_event = cancel_event or threading.Event()
        forced = set(retranslate or ())
        report = Report()

        batches: list[DocumentBatch] = []
        for path in documents:
            path = Path(path)
            try:
                document = HtmlDocument.load(path)
            except (ParseError, OSError) as e:
                logger.error(f"❌ Document ignoré ({path}): {e}")
                report.add_document_failure(path, e)
                continue

            changed = False
            if mark_documents:
                before = len(document.placeholders())
                changed = bool(mark(document)) or len(document.placeholders()) != before
            jobs = self.collect_jobs(document, instructions, forced)
            if jobs:
                # Les nouveaux marquages sont écrits même si toutes les tâches échouent
                batches.append(DocumentBatch(document, jobs, dirty=changed))

        engine = TranslationEngine(
            self.translator,
            self.cache,
            _language_name(source_lang),
            _language_name(target_lang),
            book_context=book_context,
            cancel_event=cancel_event,
        )
        worker = TranslationWorker(engine, concurrency, show_progress=self.show_progress)
        logger.info(
            f"🔄 Début de la traduction : {sum(len(b.jobs) for b in batches)} segment(s), "
            f"{len(batches)} document(s), max {concurrency} traduction(s) parallèle(s)"
        )
        worker.run(batches, report)

        report.elapsed = time.monotonic() - started
        report.cancelled = cancel_event.is_set()
        for line in report.summary_lines():
            logger.info(line)
        return report

    @staticmethod
    def collect_jobs(
        document: HtmlDocument,
        instructions: str = "",
        retranslate: Optional[set[str]] = None,
    ) -> list[TranslationJob]:
        """Construit les tâches des segments à (re)traduire d'un document."""
        retranslate = retranslate or set()
        jobs: list[TranslationJob] = []
        for segment in document.segments():
            if not (segment.needs_translation or segment.segment_id in retranslate):
                continue
            if not segment.source_text.strip():
                continue
            jobs.append(
                TranslationJob(
                    document=document.path or Path(document.identity),
                    segment_id=segment.segment_id,
                    source_text=segment.source_text,
                    previous_translation=segment.translated_text,
                    instructions=instructions,
                )
            )
        return jobs

    def translate_one(
        self,
        path: str | Path,
        segment_id: str,
        source_lang: Language | str,
        target_lang: Language | str,
        *,
        instructions: str = "",
        book_context: str = "",
        write: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> SegmentResult:
        """
        Traduit un seul segment, de façon synchrone.

        La traduction actuelle de l'emplacement sert de traduction précédente,
        afin que le modèle l'affine selon `instructions`.

        Args:
            write: Écrit la traduction dans le document en cas de succès

        Raises:
            ParseError: Document illisible
            SegmentNotFoundError: Identifiant inconnu dans le document
        """
        path = Path(path)
        document = HtmlDocument.load(path)
        segment = document.segment(segment_id)

        engine = TranslationEngine(
            self.translator,
            self.cache,
            _language_name(source_lang),
            _language_name(target_lang),
            book_context=book_context,
            cancel_event=cancel_event,
        )
        result = engine.translate_job(
            TranslationJob(
                document=path,
                segment_id=segment_id,
                source_text=segment.source_text,
                previous_translation=segment.translated_text,
                instructions=instructions,
            )
        )

        if write and result.ok and result.translated_text is not None:
            document.fill(segment_id, result.translated_text)
            document.save()
        return result

    @staticmethod
    def update_translation(path: str | Path, segment_id: str, translated_html: str) -> None:
        """
        Remplace la traduction d'un segment par un contenu édité à la main.

        Raises:
            ParseError: Document illisible
            SegmentNotFoundError: Aucun emplacement avec cet identifiant
        """
        document = HtmlDocument.load(path)
        document.fill(segment_id, translated_html)
        document.save()
        logger.info(f"✏️ Traduction du segment {segment_id} mise à jour ({path})")

