"""Tests for domain value types and the result type."""
import pytest

from scripture_gateway.domain import ScoreResult, VerseReference
from scripture_gateway.exceptions import RateLimitedError
from scripture_gateway.result import Failure, Success


class TestVerseReference:
    def test_parse_single_verse(self):
        ref = VerseReference.parse("John 3:16")
        assert ref == VerseReference("John", 3, 16, 16)
        assert ref.is_single_verse
        assert str(ref) == "John 3:16"

    def test_parse_numbered_book_range(self):
        ref = VerseReference.parse("1 John 1:8-10")
        assert ref.book == "1 John"
        assert (ref.chapter, ref.start_verse, ref.end_verse) == (1, 8, 10)
        assert str(ref) == "1 John 1:8-10"

    def test_passage_query_always_has_range(self):
        assert VerseReference("John", 3, 16, 16).passage_query() == "John 3:16-16"

    @pytest.mark.parametrize("text", ["John", "John 3", "3:16", "", "John 3:x"])
    def test_parse_rejects_non_references(self, text):
        with pytest.raises(ValueError):
            VerseReference.parse(text)

    @pytest.mark.parametrize(
        "args",
        [
            ("", 1, 1, 1),
            ("John", 0, 1, 1),
            ("John", 3, 0, 1),
            ("John", 3, 16, 15),
        ],
    )
    def test_invalid_ranges_rejected(self, args):
        with pytest.raises(ValueError):
            VerseReference(*args)


class TestScoreResult:
    def test_score_is_clamped(self):
        assert ScoreResult(140, "x").context_score == 100
        assert ScoreResult(-3, "x").context_score == 0


class TestOperationResult:
    def test_success(self):
        result = Success([])
        assert result.ok
        assert result.value == []

    def test_failure_error_type(self):
        failure = Failure("quota", cause=RateLimitedError("quota"))
        assert not failure.ok
        assert failure.error_type == "RateLimitedError"
        assert Failure("plain").error_type == "Failure"

    def test_failure_from_exception(self):
        failure = Failure.from_exception(RateLimitedError("slow down"), prefix="Gemini AI")
        assert failure.message == "Gemini AI: slow down"
        assert isinstance(failure.cause, RateLimitedError)


class TestErrorBody:
    def test_to_dict_omits_vendor_details(self):
        error = RateLimitedError("HTTP 429: slow down", details="raw vendor body")
        assert error.to_dict() == {"detail": "HTTP 429: slow down", "error_type": "RateLimitedError"}
