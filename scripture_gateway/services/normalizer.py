"""
Response normalizer.

Turns raw completion text into typed values. Generative backends are told to
answer with bare JSON but routinely wrap it in Markdown fences, surround it
with chatter, or embed unescaped quotation marks inside prose fields. All of
the repair heuristics for that live here, as pure functions, so providers and
the orchestrator never deal with raw text.

Decoding always tries the text as-is first. Prose-field repair is only
applied when strict decoding fails.
"""
from __future__ import annotations

import json
import re
from typing import Any, Iterable

from scripture_gateway.config import get_logger
from scripture_gateway.domain import ScoreResult, VerseReference, VerseText
from scripture_gateway.exceptions import MalformedResponseError
from scripture_gateway.result import Failure, OperationResult, Success
from scripture_gateway.utils import truncate_text

logger = get_logger("normalizer")

# Fields that carry free text and may be repaired
PROSE_FIELDS: tuple[str, ...] = (
    "verse_string",
    "ContextExplanation",
    "ApplicationFeedback",
    "DirectQuoteExplanation",
)

SCORE_PLACEHOLDER = "The evaluation could not be read from the AI response."

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*")
_LABEL_RE = re.compile(r"\*\*(?:JSON|Response):\*\*", re.IGNORECASE)
_VALUE_END_RE = re.compile(r'(?=\s*,\s*"\w+"\s*:|\s*\}|\s*\])')
_CLOSING_QUOTE_RE = re.compile(r'"(?=\s*,\s*"\w+"\s*:|\s*\}|\s*\])')
_INVALID_ESCAPE_RE = re.compile(r'\\(?![\\/bfnrt]|u[0-9a-fA-F]{4})')
_NUMBERED_VERSE_RE = re.compile(r"\[(\d+)\]\s*([^\[]+?)(?=\s*\[\d+\]|$)", re.DOTALL)
_LEADING_NUMBER_RE = re.compile(r"^(\d+)\.?\s*(.+)", re.DOTALL)
_MARKER_START_RE = re.compile(r"\[\d+\]")
_WHITESPACE_RE = re.compile(r"\s+")

_PAIRS = {"[": "]", "{": "}"}


def _malformed(message: str, raw: str | None = None) -> Failure:
    if raw is not None:
        logger.debug("%s: %s", message, truncate_text(raw))
    return Failure(message, cause=MalformedResponseError(message))


# =============================================================================
# Text Cleanup
# =============================================================================

def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences and ``**JSON:**`` style labels."""
    if not text:
        return ""
    text = _FENCE_RE.sub("", text)
    text = _LABEL_RE.sub("", text)
    return text.strip()


def extract_json_span(text: str, openers: str = "[{") -> str | None:
    """
    Locate the JSON value embedded in ``text``.

    Scans from the first opener, tracking string literals so brackets inside
    prose do not count. When the brackets never balance (typically because a
    prose field contains a stray quote) the span runs from the first opener to
    the last matching closer instead.

    Args:
        text: Text possibly containing a JSON value
        openers: Characters accepted as the start of the value

    Returns:
        The candidate JSON text, or None when there is no opener/closer pair.
    """
    positions = [text.find(ch) for ch in openers if ch in text]
    if not positions:
        return None
    start = min(positions)
    closer = _PAIRS[text[start]]

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        ch = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    end = text.rfind(closer)
    if end > start:
        return text[start:end + 1]
    return None


def _clean_prose(value: str) -> str:
    value = value.replace('\\"', "")
    for quote in ('"', "“", "”"):
        value = value.replace(quote, "")
    value = value.replace("‘", "'").replace("’", "'")
    value = _INVALID_ESCAPE_RE.sub("", value)
    return value.rstrip("\\")


def repair_free_text_fields(text: str, fields: Iterable[str] = PROSE_FIELDS) -> str:
    """
    Repair the string values of prose fields so the text decodes.

    For each occurrence of a prose field the value is taken to end at the
    first double quote followed by another key, ``}`` or ``]``. Interior
    double quotes (straight and typographic) are removed, typographic single
    quotes become ``'``, and a missing closing quote is inserted.
    """
    for field in fields:
        field_re = re.compile(r'"%s"\s*:\s*"' % re.escape(field), re.IGNORECASE)
        pieces: list[str] = []
        cursor = 0
        for match in field_re.finditer(text):
            value_start = match.end()
            if value_start < cursor:
                continue
            closing = _CLOSING_QUOTE_RE.search(text, value_start)
            if closing:
                value_end, resume = closing.start(), closing.end()
            else:
                boundary = _VALUE_END_RE.search(text, value_start)
                value_end = boundary.start() if boundary else len(text)
                resume = value_end
            pieces.append(text[cursor:value_start])
            pieces.append(_clean_prose(text[value_start:value_end]))
            pieces.append('"')
            cursor = resume
        pieces.append(text[cursor:])
        text = "".join(pieces)
    return text


def _decode(text: str, openers: str = "[{") -> Any:
    """
    Decode the JSON value inside ``text``.

    Raises:
        ValueError: No span found or every candidate failed to decode
    """
    span = extract_json_span(text, openers)
    if span is None:
        raise ValueError("No JSON value found")

    candidates = [span]
    start = min(text.find(ch) for ch in openers if ch in text)
    end = text.rfind(_PAIRS[text[start]])
    if end > start and text[start:end + 1] != span:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass
    for candidate in candidates:
        try:
            return json.loads(repair_free_text_fields(candidate), strict=False)
        except json.JSONDecodeError:
            pass
    raise ValueError("JSON could not be decoded after repair")


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip().rstrip("%")))
        except ValueError:
            return None
    return None


def _lookup(item: dict, *names: str) -> Any:
    lowered = {str(key).lower(): value for key, value in item.items()}
    for name in names:
        if name.lower() in lowered:
            return lowered[name.lower()]
    return None


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _looks_like_json(text: str) -> bool:
    """An object anywhere, or a leading array that is not a ``[n]`` verse marker."""
    if "{" in text:
        return True
    return text.startswith("[") and not _MARKER_START_RE.match(text)


# =============================================================================
# Typed Parsers
# =============================================================================

def parse_verses(raw: str, ref: VerseReference) -> OperationResult[list[VerseText]]:
    """
    Parse a scripture reply into verses.

    Accepts a JSON array of ``{verse_num, verse_string}`` objects (or a single
    object). A reply that does not look like JSON at all is treated as
    prose: ``[n]`` markers are honoured, otherwise the whole text becomes the
    requested start verse. JSON without usable verse objects is a failure.
    """
    text = strip_code_fences(raw)
    if not text:
        return _malformed("Received empty response from AI")

    if not _looks_like_json(text):
        return parse_numbered_passage(text, ref)

    try:
        data = _decode(text)
    except ValueError as e:
        return _malformed(f"Could not parse scripture response: {e}", raw)

    if isinstance(data, dict):
        nested = _lookup(data, "verses")
        data = nested if isinstance(nested, list) else [data]
    if not isinstance(data, list):
        return _malformed("Scripture response is not a list of verses", raw)

    verses: list[VerseText] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        number = _as_int(_lookup(item, "verse_num", "verse_number", "verse"))
        content = _lookup(item, "verse_string", "text")
        if number is None or number < 1 or not isinstance(content, str):
            continue
        content = _collapse(content)
        if content:
            verses.append(VerseText(number, content))

    if not verses:
        return _malformed("Scripture response contained no usable verses", raw)
    return Success(verses)


def parse_score(raw: str) -> OperationResult[ScoreResult]:
    """
    Parse a score reply.

    A decodable object with missing or invalid fields yields a conservative
    result (score 0 and placeholder text) instead of a failure.
    """
    text = strip_code_fences(raw)
    try:
        data = _decode(text, openers="{")
    except ValueError as e:
        return _malformed(f"Could not parse score response: {e}", raw)
    if not isinstance(data, dict):
        return _malformed("Score response is not a JSON object", raw)

    score = _as_int(_lookup(data, "ContextScore", "context_score", "score"))
    explanation = _lookup(data, "ContextExplanation", "context_explanation", "explanation")
    feedback = _lookup(data, "ApplicationFeedback", "application_feedback")

    if score is None:
        logger.warning("Score response missing a numeric ContextScore, using 0")
        score = 0
    if not isinstance(explanation, str) or not explanation.strip():
        explanation = SCORE_PLACEHOLDER

    return Success(ScoreResult(
        context_score=score,
        context_explanation=explanation.strip(),
        application_feedback=feedback.strip() if isinstance(feedback, str) else "",
    ))


def parse_verse_references(raw: str) -> OperationResult[list[VerseReference]]:
    """
    Parse a verse search reply.

    A valid empty array is a successful empty result. A non-empty array in
    which every entry is invalid is a failure.
    """
    text = strip_code_fences(raw)
    try:
        data = _decode(text)
    except ValueError as e:
        return _malformed(f"Could not parse verse search response: {e}", raw)

    if isinstance(data, dict):
        nested = _lookup(data, "verses", "references", "results")
        data = nested if isinstance(nested, list) else [data]
    if not isinstance(data, list):
        return _malformed("Verse search response is not a list", raw)
    if not data:
        return Success([])

    references: list[VerseReference] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        book = _lookup(item, "book")
        chapter = _as_int(_lookup(item, "chapter"))
        start = _as_int(_lookup(item, "startVerse", "start_verse", "verse"))
        end = _as_int(_lookup(item, "endVerse", "end_verse"))
        if not isinstance(book, str) or chapter is None or start is None:
            continue
        try:
            references.append(VerseReference(book.strip(), chapter, start, end if end is not None else start))
        except ValueError as e:
            logger.debug("Dropping invalid verse reference %r: %s", item, e)

    if not references:
        return _malformed("Verse search response contained no valid references", raw)
    return Success(references)


def parse_boolean(raw: str) -> OperationResult[bool]:
    """Read a true/false verdict from the start of the reply."""
    text = strip_code_fences(raw).strip().strip("\"'`*. ").lower()
    if text.startswith(("true", "yes")):
        return Success(True)
    if text.startswith(("false", "no")):
        return Success(False)
    return _malformed("Validation response was neither true nor false", raw)


def parse_takeaway(raw: str) -> OperationResult[str]:
    text = strip_code_fences(raw)
    if not text:
        return _malformed("Received empty response from AI")
    return Success(text)


def parse_numbered_passage(text: str, ref: VerseReference) -> OperationResult[list[VerseText]]:
    """
    Split passage text annotated with ``[n]`` verse markers.

    Falls back to a leading ``n.`` number, then to the whole passage as the
    requested start verse.
    """
    text = (text or "").strip()
    if text.endswith("(ESV)"):
        text = text[: -len("(ESV)")].rstrip()
    if not text:
        return _malformed("Passage text is empty")

    verses = [
        VerseText(int(number), _collapse(body))
        for number, body in _NUMBERED_VERSE_RE.findall(text)
        if _collapse(body)
    ]
    if verses:
        return Success(verses)

    match = _LEADING_NUMBER_RE.match(text)
    if match and _collapse(match.group(2)):
        return Success([VerseText(int(match.group(1)), _collapse(match.group(2)))])

    return Success([VerseText(ref.start_verse, _collapse(text))])
