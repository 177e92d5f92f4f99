"""
Unit tests for the chunker
"""
import pytest

from smartnotes.services.chunking import chunk_text


def reassemble(text, chunks):
    return "".join(text[c.start:c.end] for c in chunks)


class TestChunkBasics:
    def test_empty_text_has_no_chunks(self):
        assert chunk_text("") == []

    def test_short_text_is_one_chunk(self):
        chunks = chunk_text("  The Mauryan empire was founded in 322 BCE.  ")
        assert len(chunks) == 1
        assert chunks[0].text == "The Mauryan empire was founded in 322 BCE."
        assert chunks[0].index == 0

    def test_non_positive_length_rejected(self):
        with pytest.raises(ValueError):
            chunk_text("abc", max_length=0)


class TestChunkBoundaries:
    def test_hard_cut_without_break_points(self):
        """9000 characters with no newline or sentence end: 4000/4000/1000"""
        text = "1" * 4000 + "2" * 4000 + "3" * 1000
        chunks = chunk_text(text, max_length=4000)
        assert [len(c.text) for c in chunks] == [4000, 4000, 1000]
        assert [c.index for c in chunks] == [0, 1, 2]
        assert chunks[1].text == "2" * 4000

    def test_prefers_newline_past_threshold(self):
        text = "a" * 80 + "\n" + "b" * 50
        chunks = chunk_text(text, max_length=100)
        assert chunks[0].text == "a" * 80
        assert chunks[0].end == 80
        # the newline starts the next slice and is trimmed away
        assert chunks[1].start == 80
        assert chunks[1].text == "b" * 50

    def test_ignores_newline_before_threshold(self):
        text = "a" * 30 + "\n" + "b" * 150
        chunks = chunk_text(text, max_length=100)
        assert chunks[0].end == 100

    def test_cuts_after_sentence_end(self):
        text = "x" * 70 + ". " + "y" * 60
        chunks = chunk_text(text, max_length=100)
        assert chunks[0].text == "x" * 70 + "."
        assert chunks[1].text == "y" * 60

    def test_chunks_never_exceed_max_length(self):
        text = ("Sentence number one is here. " * 40 + "\n") * 5
        for c in chunk_text(text, max_length=250):
            assert c.end - c.start <= 250


class TestChunkCoverage:
    @pytest.mark.parametrize("text,max_length", [
        ("1" * 9000, 4000),
        ("line one\nline two\n" * 300, 500),
        ("First. Second sentence. Third one here. " * 200, 333),
        ("mixed\n\n text. with   spaces \n" * 120, 64),
    ])
    def test_slices_reconstruct_source(self, text, max_length):
        chunks = chunk_text(text, max_length=max_length)
        assert reassemble(text, chunks) == text
        for previous, current in zip(chunks, chunks[1:]):
            assert previous.end == current.start
        assert chunks[0].start == 0
        assert chunks[-1].end == len(text)

    def test_chunk_text_is_trimmed_slice(self):
        text = "alpha beta\n  gamma delta. epsilon\n" * 50
        for c in chunk_text(text, max_length=120):
            assert c.text == text[c.start:c.end].strip()
