from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tqdm import tqdm

from .errors import EpubTransError
from .htmlpage import HtmlDocument
from .logger import get_logger
from .report import Report, SegmentResult, SegmentStatus
from .segment import TranslationJob

if TYPE_CHECKING:
    from .translation.engine import TranslationEngine

logger = get_logger(__name__)


@dataclass
class DocumentBatch:
    """Document chargé et tâches restant à traduire."""

    document: HtmlDocument
    jobs: list[TranslationJob]
    dirty: bool = False
    pending: int = field(init=False)

    def __post_init__(self):
        self.pending = len(self.jobs)


class TranslationWorker:
    """
    Exécute les tâches dans un pool de threads de taille fixe.

    Les workers ne font que traduire ; les résultats sont appliqués aux
    documents par le thread appelant, un emplacement n'est donc écrit qu'une
    fois et par un seul thread. Chaque document est réécrit dès que toutes
    ses tâches sont terminées.
    """

    def __init__(
        self,
        engine: "TranslationEngine",
        max_threads_count: int = 1,
        show_progress: bool = True,
    ):
        if max_threads_count < 1:
            raise ValueError("max_threads_count doit être >= 1")
        self.engine = engine
        self.max_threads_count = max_threads_count
        self.show_progress = show_progress

    def run(self, batches: list[DocumentBatch], report: Report) -> None:
        """Soumet toutes les traductions et attend les résultats."""
        total_jobs = sum(len(b.jobs) for b in batches)

        with tqdm(
            total=total_jobs,
            desc="Traduction des segments",
            unit="segment",
            ncols=100,
            bar_format="{l_bar}{bar}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            disable=not self.show_progress,
        ) as pbar:
            executor = ThreadPoolExecutor(max_workers=self.max_threads_count)
            futures: dict[Future, tuple[DocumentBatch, TranslationJob]] = {}
            try:
                for batch in batches:
                    for job in batch.jobs:
                        future = executor.submit(self.engine.translate_job, job)
                        futures[future] = (batch, job)

                for future in as_completed(futures):
                    batch, job = futures.pop(future)
                    self._handle(future, batch, job, report)
                    pbar.update(1)

            except KeyboardInterrupt:
                pbar.write("\n❌ Traduction interrompue par l'utilisateur")
                self.engine.cancel_event.set()
                executor.shutdown(wait=True, cancel_futures=True)
                for future, (batch, job) in futures.items():
                    self._handle(future, batch, job, report)
            finally:
                executor.shutdown(wait=True)

        for batch in batches:
            if batch.pending and batch.dirty:
                # Documents restés incomplets après une interruption
                write_document(batch, report)

    def _handle(
        self,
        future: Future,
        batch: DocumentBatch,
        job: TranslationJob,
        report: Report,
    ) -> None:
        if future.cancelled():
            result = SegmentResult(
                job.document, job.segment_id, SegmentStatus.SKIPPED,
                reason="TranslationCancelled",
            )
        else:
            try:
                result = future.result()
            except Exception as e:
                logger.exception(f"Erreur inattendue : {e}")
                result = SegmentResult(
                    job.document, job.segment_id, SegmentStatus.FAILED,
                    reason=type(e).__name__, detail=str(e),
                )

        if result.ok and result.translated_text is not None:
            try:
                batch.document.fill(job.segment_id, result.translated_text)
                batch.dirty = True
            except EpubTransError as e:
                result = SegmentResult(
                    job.document, job.segment_id, SegmentStatus.FAILED,
                    reason=type(e).__name__, detail=str(e),
                )

        report.add(result)
        batch.pending -= 1
        if batch.pending == 0 and batch.dirty:
            write_document(batch, report)


def write_document(batch: DocumentBatch, report: Report) -> None:
    """Réécrit le document d'un lot ; un échec est consigné dans le rapport."""
    document = batch.document
    try:
        path = document.save()
    except OSError as e:
        logger.error(f"❌ Écriture impossible de {document.path}: {e}")
        report.add_document_failure(document.path or document.identity, e)
        return
    batch.dirty = False
    report.written_documents.append(path)
    logger.info(f"💾 Document écrit : {path}")
