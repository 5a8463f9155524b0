"""
Rapport d'exécution d'un lot de traduction.

Le rapport distingue, pour chaque segment, une traduction obtenue du backend
("succeeded"), une réponse servie par le cache ("cached"), un échec avec sa
raison ("failed") et un segment non traité suite à une annulation ("skipped").
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class SegmentStatus(Enum):
    SUCCEEDED = "succeeded"
    CACHED = "cached"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SegmentResult:
    document: Path
    segment_id: str
    status: SegmentStatus
    translated_text: Optional[str] = None
    reason: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status in (SegmentStatus.SUCCEEDED, SegmentStatus.CACHED)


@dataclass
class Report:
    """
    Agrégat des résultats d'un appel à BookTranslator.run().

    Attributes:
        results: Résultat de chaque segment traité (ou ignoré)
        failed_documents: {chemin: raison} des documents non traités
        written_documents: Documents réécrits sur disque
        elapsed: Durée totale en secondes
        cancelled: L'exécution a été annulée avant la fin
    """

    results: list[SegmentResult] = field(default_factory=list)
    failed_documents: dict[str, str] = field(default_factory=dict)
    written_documents: list[Path] = field(default_factory=list)
    elapsed: float = 0.0
    cancelled: bool = False

    def add(self, result: SegmentResult) -> None:
        self.results.append(result)

    def add_document_failure(self, path: str | Path, error: BaseException) -> None:
        self.failed_documents[str(path)] = f"{type(error).__name__}: {error}"

    def _count(self, status: SegmentStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(SegmentStatus.SUCCEEDED)

    @property
    def cached(self) -> int:
        return self._count(SegmentStatus.CACHED)

    @property
    def failed(self) -> int:
        return self._count(SegmentStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(SegmentStatus.SKIPPED)

    @property
    def attempted(self) -> int:
        return self.succeeded + self.cached + self.failed

    @property
    def failures(self) -> list[SegmentResult]:
        return [r for r in self.results if r.status is SegmentStatus.FAILED]

    def to_dict(self) -> dict[str, Any]:
        """Représentation sérialisable en JSON, pour l'appelant (CLI, serveur)."""
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "cached": self.cached,
            "failed": self.failed,
            "skipped": self.skipped,
            "elapsed": round(self.elapsed, 3),
            "cancelled": self.cancelled,
            "failures": [
                {
                    "document": str(r.document),
                    "segment_id": r.segment_id,
                    "reason": r.reason,
                    "detail": r.detail,
                }
                for r in self.failures
            ],
            "failed_documents": dict(self.failed_documents),
            "written_documents": [str(p) for p in self.written_documents],
        }

    def summary_lines(self) -> list[str]:
        lines = [
            "📊 Résumé de la traduction:",
            f"   ✅ Traduits: {self.succeeded}",
            f"   💾 Depuis le cache: {self.cached}",
            f"   ❌ Erreurs: {self.failed}",
        ]
        if self.skipped:
            lines.append(f"   ⏭️  Segments ignorés (annulation): {self.skipped}")
        if self.failed_documents:
            lines.append(f"   📄 Documents ignorés: {len(self.failed_documents)}")
        lines.append(f"   ⏱️ Durée: {self.elapsed:.1f}s")
        if self.failed or self.failed_documents:
            lines.append("   📁 Consultez les logs dans 'logs/' pour plus de détails")
        return lines
