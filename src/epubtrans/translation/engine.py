"""
Moteur de traduction d'un segment.

Pour chaque tâche : lecture du cache, appel du backend en cas de miss, puis
écriture du cache. Le moteur ne touche jamais aux documents : il retourne un
SegmentResult que le worker applique.
"""

import threading
from typing import Optional, TYPE_CHECKING

from ..cache import make_cache_key
from ..errors import CacheUnavailable, EpubTransError, TranslationCancelled
from ..llm import build_instructions
from ..logger import get_logger
from ..report import SegmentResult, SegmentStatus

if TYPE_CHECKING:
    from ..cache import TranslationCache
    from ..llm import Translator
    from ..segment import TranslationJob

logger = get_logger(__name__)


class TranslationEngine:
    """
    Traduit des TranslationJob via le cache puis le backend.

    Attributes:
        translator: Backend de traduction
        cache: Cache partagé (None = cache désactivé)
        source_lang / target_lang: Paire de langues du lot
        book_context: Titre ou contexte du livre passé aux consignes
        cancel_event: Signal d'annulation partagé avec le worker
    """

    def __init__(
        self,
        translator: "Translator",
        cache: Optional["TranslationCache"],
        source_lang: str,
        target_lang: str,
        book_context: str = "",
        cancel_event: Optional[threading.Event] = None,
    ):
        self.translator = translator
        self.cache = cache
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.book_context = book_context
        self.cancel_event = cancel_event or threading.Event()

    def cache_key(self, job: "TranslationJob") -> str:
        return make_cache_key(
            job.source_text,
            build_instructions(job.instructions, job.previous_translation),
            self.source_lang,
            self.target_lang,
            style=getattr(self.translator, "style_id", ""),
            book_context=self.book_context,
        )

    def translate_job(self, job: "TranslationJob") -> SegmentResult:
        """
        Traduit une tâche.

        Les erreurs du backend sont converties en résultat FAILED (raison = nom
        de la classe d'erreur) ; seules les erreurs inattendues remontent.
        """
        if self.cancel_event.is_set():
            return self._result(job, SegmentStatus.SKIPPED, reason="TranslationCancelled")

        key = self.cache_key(job)
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug(f"💾 Cache hit pour le segment {job.segment_id}")
            return self._result(job, SegmentStatus.CACHED, translated_text=cached)

        try:
            translated = self.translator.translate(
                job.source_text,
                instructions=job.instructions,
                source_lang=self.source_lang,
                target_lang=self.target_lang,
                book_context=self.book_context,
                previous_translation=job.previous_translation,
                cancel_event=self.cancel_event,
            )
        except TranslationCancelled as e:
            return self._result(
                job, SegmentStatus.SKIPPED, reason=type(e).__name__, detail=str(e)
            )
        except EpubTransError as e:
            logger.error(f"❌ Segment {job.segment_id} ({job.document.name}) : {e}")
            return self._result(
                job, SegmentStatus.FAILED, reason=type(e).__name__, detail=str(e)
            )

        self._cache_set(key, translated)
        return self._result(job, SegmentStatus.SUCCEEDED, translated_text=translated)

    def _cache_get(self, key: str) -> Optional[str]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except Exception as e:
            logger.warning(f"⚠️ {CacheUnavailable.__name__}: lecture impossible ({e})")
            return None

    def _cache_set(self, key: str, value: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set_with_ttl(key, value)
        except Exception as e:
            logger.warning(f"⚠️ {CacheUnavailable.__name__}: écriture impossible ({e})")

    @staticmethod
    def _result(
        job: "TranslationJob",
        status: SegmentStatus,
        translated_text: Optional[str] = None,
        reason: Optional[str] = None,
        detail: Optional[str] = None,
    ) -> SegmentResult:
        return SegmentResult(
            document=job.document,
            segment_id=job.segment_id,
            status=status,
            translated_text=translated_text,
            reason=reason,
            detail=detail,
        )
