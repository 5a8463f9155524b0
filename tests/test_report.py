"""
Tests du rapport d'exécution.
"""

from pathlib import Path

from epubtrans.report import Report, SegmentResult, SegmentStatus


def result(status: SegmentStatus, segment_id: str = "s1", **kwargs) -> SegmentResult:
    return SegmentResult(Path("chapter1.xhtml"), segment_id, status, **kwargs)


class TestReport:
    def test_counters(self):
        report = Report()
        report.add(result(SegmentStatus.SUCCEEDED, translated_text="A"))
        report.add(result(SegmentStatus.CACHED, translated_text="B"))
        report.add(result(SegmentStatus.FAILED, reason="BackendError"))
        report.add(result(SegmentStatus.SKIPPED, reason="TranslationCancelled"))

        assert report.succeeded == 1
        assert report.cached == 1
        assert report.failed == 1
        assert report.skipped == 1
        assert report.attempted == 3
        assert [r.reason for r in report.failures] == ["BackendError"]

    def test_document_failure(self):
        report = Report()

        report.add_document_failure(Path("broken.xhtml"), ValueError("illisible"))

        assert report.failed_documents == {"broken.xhtml": "ValueError: illisible"}

    def test_summary_lines(self):
        report = Report(elapsed=2.34)
        report.add(result(SegmentStatus.SUCCEEDED))
        report.add(result(SegmentStatus.FAILED, reason="BackendError"))

        lines = report.summary_lines()

        assert "✅ Traduits: 1" in lines[1]
        assert any("❌ Erreurs: 1" in line for line in lines)
        assert any("2.3s" in line for line in lines)
        assert not any("annulation" in line for line in lines)

    def test_to_dict_is_json_ready(self):
        report = Report(elapsed=1.23456, cancelled=True)
        report.add(result(SegmentStatus.FAILED, reason="MaxRetriesExceeded", detail="429"))

        data = report.to_dict()

        assert data["elapsed"] == 1.235
        assert data["cancelled"] is True
        assert data["failures"] == [
            {
                "document": "chapter1.xhtml",
                "segment_id": "s1",
                "reason": "MaxRetriesExceeded",
                "detail": "429",
            }
        ]
