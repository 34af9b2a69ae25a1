"""End-to-end tests: OCR pages through run_book to rendered output."""

import logging

import pytest

from bookscan.booktypes import BookTypeRegistry, load_book_manifest
from bookscan.config import BookTypeConfigError, StructureConfig
from bookscan.export.report import render_markdown
from bookscan.headers.matcher import HeaderSequenceError
from bookscan.pipeline import BookRunError, SkipReason, run_book

from conftest import (
    BOOK_TYPE_DEFINITION,
    make_centered_line,
    make_footnote_line,
    make_line,
    make_page,
)

MANIFEST = {
    "textBeforeFirstChapter": "INHALT",
    "textAfterLastChapter": "NACHWORT",
    "ocrMisreadings": [{"pattern": "Goetbe", "replacement": "Goethe"}],
}


def _book_pages():
    return [
        make_page([make_line("Titelseite", 100)], index=0),
        make_page([make_centered_line("INHALT"), make_line("I Die Entstehung 5", 100, y0=200)], index=1),
        make_page(
            [
                make_centered_line("I DIE ENTSTEHUNG", y0=100),
                make_line("Goetbe schrieb iiber die Pflan-", 100, y0=200),
                make_line("zen und ihre Gestalt3 im", 100, y0=250),
                make_line("Jahre 1790.", 100, y0=300),
                make_footnote_line("3", "Vgl. Metamorphose.", 70, y0=3000),
            ],
            index=2,
        ),
        make_page(
            [
                make_line("Er fuhr fort mit der Ent-", 100, y0=100),
                make_line("wicklung der Lehre.", 100, y0=150),
                make_line("1. Die Urpflanze", 100, y0=200),
                make_line("Text im Abschnitt.", 100, y0=250),
            ],
            index=3,
        ),
        make_page([make_centered_line("NACHWORT"), make_line("Schluss", 100, y0=200)], index=4),
        make_page([make_line("Register", 100)], index=5),
    ]


@pytest.fixture
def registry():
    return BookTypeRegistry({"lectures": BOOK_TYPE_DEFINITION})


@pytest.fixture
def manifest():
    return load_book_manifest(MANIFEST)


EXPECTED_TEXT = (
    "\n\n# I DIE ENTSTEHUNG\n\n"
    "Goethe schrieb über die Pflanzen und ihre Gestalt[3] im Jahre 1790."
    " Er fuhr fort mit der Entwicklung der Lehre."
    "\n\n## 1. Die Urpflanze\n\nText im Abschnitt."
)


class TestRunBook:
    def test_full_book(self, registry, manifest):
        result = run_book(_book_pages(), "lectures", registry, manifest)
        assert result.text_with_headers == EXPECTED_TEXT
        assert result.footnote_text == "\n\n[3]: Vgl. Metamorphose."
        assert result.level_indices == {1: 1, 2: 1, 3: 0}
        assert result.corrections == 2
        assert result.headers() == [(1, "I DIE ENTSTEHUNG"), (2, "1. Die Urpflanze")]
        assert result.total_footnotes() == 1

    def test_skip_reasons(self, registry, manifest):
        result = run_book(_book_pages(), "lectures", registry, manifest)
        assert [p.skip_reason for p in result.pages] == [
            SkipReason.before_start_marker,
            SkipReason.start_marker_page,
            None,
            None,
            SkipReason.after_end_marker,
            SkipReason.after_end_marker,
        ]
        assert [p.page for p in result.processed_pages] == [2, 3]

    def test_compiled_config_accepted(self, book_config, manifest):
        result = run_book(_book_pages(), book_config, manifest=manifest)
        assert result.book_type == "lectures"
        assert result.text_with_headers == EXPECTED_TEXT

    def test_without_manifest_every_page_is_processed(self, registry):
        pages = _book_pages()[2:4]
        result = run_book(pages, "lectures", registry)
        assert len(result.processed_pages) == 2
        assert result.corrections == 1  # umlaut only; no manifest misreadings
        assert result.text_with_headers.startswith("\n\n# I DIE ENTSTEHUNG\n\nGoetbe schrieb über")

    def test_skip_start_marker_flag(self, registry, manifest):
        cfg = StructureConfig(skip_start_marker=True)
        result = run_book(_book_pages()[2:], "lectures", registry, manifest, cfg)
        assert result.pages[0].processed is True

    def test_start_marker_never_found(self, registry, caplog):
        m = load_book_manifest({"textBeforeFirstChapter": "GIBT ES NICHT"})
        with caplog.at_level(logging.WARNING, logger="bookscan.pipeline"):
            result = run_book(_book_pages(), "lectures", registry, m)
        assert result.processed_pages == []
        assert result.text_with_headers == ""
        assert "never found" in caplog.text

    def test_umlaut_corrections_can_be_disabled(self, registry, manifest):
        cfg = StructureConfig(apply_umlaut_corrections=False)
        result = run_book(_book_pages(), "lectures", registry, manifest, cfg)
        assert "iiber" in result.text_with_headers
        assert result.corrections == 1

    def test_summary_dict(self, registry, manifest):
        d = run_book(_book_pages(), "lectures", registry, manifest).to_summary_dict()
        assert d["book_type"] == "lectures"
        assert d["pages_total"] == 6
        assert d["pages_processed"] == 2
        assert d["headers"] == 2
        assert d["footnotes"] == 1
        assert d["level_indices"] == {"1": 1, "2": 1, "3": 0}
        assert d["pages"][0]["skip_reason"] == "before_start_marker"


class TestRunBookErrors:
    def test_unknown_book_type(self, registry):
        with pytest.raises(BookRunError) as exc_info:
            run_book(_book_pages(), "novel", registry)
        err = exc_info.value
        assert err.page_index is None
        assert isinstance(err.cause, BookTypeConfigError)
        assert "setup" in str(err)

    def test_key_without_registry(self):
        with pytest.raises(BookRunError, match="no registry"):
            run_book(_book_pages(), "lectures")

    def test_sequence_gap_aborts_run(self, registry, caplog):
        pages = [
            make_page([make_line("III DAS ENDE", 100), make_line("Text", 100, y0=150)], index=7)
        ]
        with caplog.at_level(logging.ERROR, logger="bookscan.pipeline"):
            with pytest.raises(BookRunError) as exc_info:
                run_book(pages, "lectures", registry)
        err = exc_info.value
        assert err.page_index == 7
        assert isinstance(err.cause, HeaderSequenceError)
        assert "page 7" in str(err)
        assert "page 7 failed" in caplog.text

    def test_missing_metrics_aborts_run(self):
        reg = BookTypeRegistry({"bare": {"headerTypes": {}}})
        with pytest.raises(BookRunError) as exc_info:
            run_book([make_page([make_line("x", 100)], index=0)], "bare", reg)
        assert isinstance(exc_info.value.cause, BookTypeConfigError)
        assert exc_info.value.page_index == 0

    def test_skip_policy_completes_run(self, registry):
        pages = [make_page([make_line("III DAS ENDE", 100), make_line("Text", 100, y0=150)])]
        cfg = StructureConfig(sequence_policy="skip")
        result = run_book(pages, "lectures", registry, cfg=cfg)
        assert result.text_with_headers == "III DAS ENDE Text"
        assert result.headers() == []


def test_markdown_of_full_book(registry, manifest):
    md = render_markdown(run_book(_book_pages(), "lectures", registry, manifest))
    assert md.startswith("# I DIE ENTSTEHUNG\n\nGoethe schrieb")
    assert "\n\n## 1. Die Urpflanze\n\n" in md
    assert md.endswith("# FUSSNOTEN\n\n[3]: Vgl. Metamorphose.\n")


class TestParagraphEndMarkers:
    DEFINITION = {
        "headerTypes": {
            "level1": {"formats": [{"pattern": "KAPITEL {no-paragraph-end-marker}"}]}
        },
        "metrics": {"paragraph-start": 40},
    }

    def _pages(self):
        return [
            make_page(
                [
                    make_line("KAPITEL ANFANG:", 100, y0=100),
                    make_line("Text hier.", 100, y0=150),
                    make_line("Noch mehr.", 100, y0=200),
                ]
            )
        ]

    def test_default_markers_accept_colon_heading(self):
        reg = BookTypeRegistry({"kapitel": self.DEFINITION})
        result = run_book(self._pages(), "kapitel", reg)
        assert result.text_with_headers == "\n\n# KAPITEL ANFANG:\n\nText hier. Noch mehr."

    def test_configured_marker_rejects_heading(self):
        reg = BookTypeRegistry({"kapitel": self.DEFINITION})
        cfg = StructureConfig(paragraph_end_markers=(".", "!", "?", ":"))
        result = run_book(self._pages(), "kapitel", reg, cfg=cfg)
        assert result.headers() == []
        assert result.text_with_headers == "KAPITEL ANFANG: Text hier. Noch mehr."
