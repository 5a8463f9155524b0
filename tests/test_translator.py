"""
Tests d'intégration de BookTranslator sur des documents réels.

Le backend est remplacé par UppercaseTranslator (traduction = majuscules).
"""

import threading
from concurrent.futures import as_completed

import pytest

from epubtrans.cache import TranslationCache
from epubtrans.errors import SegmentNotFoundError, TranslationCancelled
from epubtrans.htmlpage import HtmlDocument
from epubtrans.report import SegmentStatus
from epubtrans.translation import BookTranslator, Language

from conftest import UppercaseTranslator


def translations(path) -> dict[str, str | None]:
    document = HtmlDocument.load(path)
    return {s.source_text: s.translated_text for s in document.segments()}


class CancellingTranslator(UppercaseTranslator):
    """Active l'annulation après la première traduction."""

    def __init__(self, event: threading.Event):
        super().__init__()
        self.event = event

    def translate(self, content, **kwargs):
        result = super().translate(content, **kwargs)
        self.event.set()
        return result


class BlockingTranslator(UppercaseTranslator):
    """Traduit "a" immédiatement ; les autres textes attendent l'annulation."""

    def translate(self, content, cancel_event=None, **kwargs):
        if content == "a":
            return super().translate(content, **kwargs)
        if cancel_event is not None and cancel_event.wait(5):
            raise TranslationCancelled("annulé pendant la traduction")
        return super().translate(content, **kwargs)


def interrupt_after_first(futures):
    """as_completed qui simule un Ctrl+C après le premier résultat."""
    completed = as_completed(futures)
    yield next(completed)
    raise KeyboardInterrupt


class TestRun:
    """Traduction d'un lot de documents."""

    def test_translates_every_segment(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p><p>c</p>")
        translator = BookTranslator(uppercase_translator, TranslationCache(), show_progress=False)

        report = translator.run([path], "english", "vietnamese", concurrency=2)

        assert report.succeeded == 3
        assert report.failed == 0
        assert report.attempted == 3
        assert translations(path) == {"a": "A", "b": "B", "c": "C"}
        assert report.written_documents == [path]
        assert sorted(uppercase_translator.calls) == ["a", "b", "c"]

    def test_failed_segment_does_not_stop_batch(self, write_page):
        backend = UppercaseTranslator(fail_on={"b"})
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p><p>c</p>")
        translator = BookTranslator(backend, TranslationCache(), show_progress=False)

        report = translator.run([path], "english", "vietnamese", concurrency=2)

        assert report.succeeded == 2
        assert report.failed == 1
        failure = report.failures[0]
        assert failure.reason == "BackendError"
        assert failure.document == path
        assert translations(path) == {"a": "A", "b": None, "c": "C"}

    def test_second_run_only_translates_missing(self, write_page):
        """Reprise : seuls les emplacements vides sont retraduits."""
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p><p>c</p>")
        BookTranslator(
            UppercaseTranslator(fail_on={"b"}), show_progress=False
        ).run([path], "english", "vietnamese")

        backend = UppercaseTranslator()
        report = BookTranslator(backend, show_progress=False).run(
            [path], "english", "vietnamese"
        )

        assert backend.calls == ["b"]
        assert report.succeeded == 1
        assert translations(path) == {"a": "A", "b": "B", "c": "C"}

    def test_fully_translated_document_is_untouched(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p>")
        translator = BookTranslator(uppercase_translator, show_progress=False)
        translator.run([path], "english", "vietnamese")
        content = path.read_bytes()

        report = translator.run([path], "english", "vietnamese")

        assert report.attempted == 0
        assert report.written_documents == []
        assert path.read_bytes() == content

    def test_cache_shared_between_documents(self, write_page, uppercase_translator):
        first = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        second = write_page("chapter2.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(uppercase_translator, TranslationCache(), show_progress=False)

        translator.run([first], "english", "vietnamese")
        report = translator.run([second], "english", "vietnamese")

        assert report.cached == 2
        assert report.succeeded == 0
        assert len(uppercase_translator.calls) == 2
        assert translations(second) == {"a": "A", "b": "B"}

    def test_unparsable_document_is_isolated(self, write_page, uppercase_translator):
        good = write_page("chapter1.xhtml", "<p>a</p>")
        broken = write_page("broken.xhtml", "")
        broken.write_bytes(b"\xff\xfe pas du html")
        missing = good.parent / "absent.xhtml"
        translator = BookTranslator(uppercase_translator, show_progress=False)

        report = translator.run([broken, missing, good], "english", "vietnamese")

        assert report.succeeded == 1
        assert set(report.failed_documents) == {str(broken), str(missing)}
        assert "ParseError" in report.failed_documents[str(broken)]
        assert broken.read_bytes() == b"\xff\xfe pas du html"

    def test_marks_written_even_if_every_segment_fails(self, write_page):
        """Les identifiants attribués restent stables d'une exécution à l'autre."""
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(UppercaseTranslator(fail_on={"a", "b"}), show_progress=False)

        report = translator.run([path], "english", "vietnamese")

        assert report.failed == 2
        assert report.written_documents == [path]
        assert translations(path) == {"a": None, "b": None}

    def test_document_without_text_is_not_written(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", '<div><img src="cover.png"/></div>')
        content = path.read_bytes()

        report = BookTranslator(uppercase_translator, show_progress=False).run(
            [path], "english", "vietnamese"
        )

        assert report.attempted == 0
        assert report.written_documents == []
        assert path.read_bytes() == content

    def test_stale_segment_is_retranslated(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(uppercase_translator, show_progress=False)
        translator.run([path], "english", "vietnamese")

        document = HtmlDocument.load(path)
        segment_id = document.segments()[0].segment_id
        document.find_source(segment_id).string = "a2"
        document.save()

        report = translator.run([path], "english", "vietnamese")

        assert report.succeeded == 1
        assert uppercase_translator.calls[-1] == "a2"
        assert uppercase_translator.kwargs[-1]["previous_translation"] == "A"
        assert translations(path) == {"a2": "A2", "b": "B"}

    def test_forced_retranslation(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(uppercase_translator, show_progress=False)
        translator.run([path], "english", "vietnamese")
        segment_id = HtmlDocument.load(path).segments()[1].segment_id

        report = translator.run(
            [path], "english", "vietnamese", retranslate=[segment_id], instructions="x"
        )

        assert report.succeeded == 1
        assert uppercase_translator.calls[-1] == "b"
        assert uppercase_translator.kwargs[-1]["instructions"] == "x"

    def test_cancellation_returns_partial_report(self, write_page):
        event = threading.Event()
        backend = CancellingTranslator(event)
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p><p>c</p>")
        translator = BookTranslator(backend, show_progress=False)

        report = translator.run([path], "english", "vietnamese", cancel_event=event)

        assert report.cancelled
        assert report.succeeded == 1
        assert report.skipped == 2
        assert translations(path) == {"a": "A", "b": None, "c": None}

    def test_keyboard_interrupt_writes_partial_document(self, write_page, monkeypatch):
        """Ctrl+C : les tâches en attente sont annulées, le document partiel est écrit."""
        monkeypatch.setattr("epubtrans.worker.as_completed", interrupt_after_first)
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p><p>c</p>")
        translator = BookTranslator(BlockingTranslator(), show_progress=False)

        report = translator.run([path], "english", "vietnamese", concurrency=1)

        assert report.cancelled
        assert report.succeeded == 1
        assert report.skipped == 2
        assert {r.reason for r in report.results if r.status is SegmentStatus.SKIPPED} == {
            "TranslationCancelled"
        }
        assert report.written_documents == [path]
        assert translations(path) == {"a": "A", "b": None, "c": None}

    def test_report_to_dict(self, write_page):
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(UppercaseTranslator(fail_on={"b"}), show_progress=False)

        data = translator.run([path], "english", "vietnamese").to_dict()

        assert data["attempted"] == 2
        assert data["succeeded"] == 1
        assert data["failed"] == 1
        assert data["failures"][0]["reason"] == "BackendError"
        assert data["written_documents"] == [str(path)]

    def test_language_enum_accepted(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p>")

        BookTranslator(uppercase_translator, show_progress=False).run(
            [path], Language.ENGLISH, Language.FRENCH
        )

        assert uppercase_translator.kwargs[0]["source_lang"] == "english"
        assert uppercase_translator.kwargs[0]["target_lang"] == "french"

    def test_invalid_concurrency(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p>")

        with pytest.raises(ValueError):
            BookTranslator(uppercase_translator, show_progress=False).run(
                [path], "english", "vietnamese", concurrency=0
            )


class TestSingleSegment:
    """translate_one et update_translation."""

    def test_translate_one_refines_existing_translation(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p><p>b</p>")
        translator = BookTranslator(uppercase_translator, show_progress=False)
        translator.run([path], "english", "vietnamese")
        segment_id = HtmlDocument.load(path).segments()[0].segment_id
        content = path.read_bytes()

        result = translator.translate_one(
            path, segment_id, "english", "vietnamese", instructions="Plus formel"
        )

        assert result.status is SegmentStatus.SUCCEEDED
        assert result.translated_text == "A"
        assert uppercase_translator.kwargs[-1]["previous_translation"] == "A"
        assert uppercase_translator.kwargs[-1]["instructions"] == "Plus formel"
        assert path.read_bytes() == content

    def test_translate_one_with_write(self, write_page):
        path = write_page("chapter1.xhtml", "<p>a</p>")
        translator = BookTranslator(UppercaseTranslator(), show_progress=False)
        translator.run([path], "english", "vietnamese")
        segment_id = HtmlDocument.load(path).segments()[0].segment_id

        class Exclaiming(UppercaseTranslator):
            def translate(self, content, **kwargs):
                return super().translate(content, **kwargs) + "!"

        BookTranslator(Exclaiming(), show_progress=False).translate_one(
            path, segment_id, "english", "vietnamese", write=True
        )

        assert translations(path) == {"a": "A!"}

    def test_translate_one_unknown_segment(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p>")
        translator = BookTranslator(uppercase_translator, show_progress=False)

        with pytest.raises(SegmentNotFoundError):
            translator.translate_one(path, "inconnu", "english", "vietnamese")

    def test_update_translation(self, write_page, uppercase_translator):
        path = write_page("chapter1.xhtml", "<p>a</p>")
        BookTranslator(uppercase_translator, show_progress=False).run(
            [path], "english", "vietnamese"
        )
        segment_id = HtmlDocument.load(path).segments()[0].segment_id

        BookTranslator.update_translation(path, segment_id, "<em>Édité</em>")

        assert translations(path) == {"a": "<em>Édité</em>"}

    def test_update_translation_unknown_segment(self, write_page):
        path = write_page("chapter1.xhtml", "<p>a</p>")

        with pytest.raises(SegmentNotFoundError):
            BookTranslator.update_translation(path, "inconnu", "x")
