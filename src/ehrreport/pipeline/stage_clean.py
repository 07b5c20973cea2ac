"""Text Cleaning Stage - Strip RTF syntax and decode legacy codepage escapes.

This is the first stage of the pipeline. It turns the raw export of the
legacy EHR (RTF fragments with Windows-1252 hex escapes, mixed line
endings, escaped literal newlines) into plain Unicode text:

1. Literal escape sequences (\\r\\n, \\n, \\r, \\t) become real characters
2. Font tables, color tables, style sheets, info and \\* groups are removed
3. Control-word runs and braces are stripped
4. \\'XX hex escapes are decoded through a fixed codepage table
5. Text is NFKC-normalized and control characters are removed
6. Stray backslashes and braces are dropped
7. Whitespace is collapsed and empty lines are dropped
8. Font-table artifacts (ARIAL, Wingdings, ...) are removed until none remain

Only the escape subset the source EHR emits is handled. Unknown syntax
passes through best-effort and is reported in the log.
"""

import logging
import re
import unicodedata
from typing import Optional

logger = logging.getLogger(__name__)


# Windows-1252 assignments for 0x80-0x9F. 0x81, 0x8D, 0x8F, 0x90 and 0x9D
# are undefined in the codepage.
_CP1252_C1 = {
    0x80: "\u20ac",  # euro sign
    0x82: "\u201a",
    0x83: "\u0192",
    0x84: "\u201e",
    0x85: "\u2026",  # ellipsis
    0x86: "\u2020",
    0x87: "\u2021",
    0x88: "\u02c6",
    0x89: "\u2030",
    0x8A: "\u0160",
    0x8B: "\u2039",
    0x8C: "\u0152",
    0x8E: "\u017d",
    0x91: "\u2018",  # left single quote
    0x92: "\u2019",  # right single quote
    0x93: "\u201c",  # left double quote
    0x94: "\u201d",  # right double quote
    0x95: "\u2022",  # bullet
    0x96: "\u2013",  # en dash
    0x97: "\u2014",  # em dash
    0x98: "\u02dc",
    0x99: "\u2122",
    0x9A: "\u0161",
    0x9B: "\u203a",
    0x9C: "\u0153",
    0x9E: "\u017e",
    0x9F: "\u0178",
}

# Index 0 is byte 0x80, index 127 is byte 0xFF. 0xA0-0xFF match Latin-1.
CP1252_TABLE: tuple[Optional[str], ...] = tuple(
    _CP1252_C1.get(code) if code < 0xA0 else chr(code)
    for code in range(0x80, 0x100)
)

# RTF control words that start with n, r or t. A literal "\n" directly
# followed by one of these is part of the control word, not a newline.
_RTF_WORDS_AFTER_N = (
    r"owidctlpar|osupersub|oproof|oline|ocolbal|onshppict|owrap|osectexpand"
    r"|ocwrap|ostylesp|otabind|ocxsptable"
)
_RTF_WORDS_AFTER_R = r"tlch|tlpar|tlmark|quote|dblquote|i|ow|tf|ed|in|sid[a-z]*"
_RTF_WORDS_AFTER_T = r"ab|x|rowd|rleft|rgaph|rhdr|ql|qr|qc|qdec|itlepg|b"

# Any lowercase run that runs into a numeric parameter, the next control
# symbol or a group boundary is a control word whatever its name.
_DELIMITED_WORD = r"[a-z]+(?:-?\d|[\\{}])"


def _literal_escape(letter: str, known_words: str) -> re.Pattern:
    return re.compile(rf"\\{letter}(?!(?:{known_words})(?![a-z])|{_DELIMITED_WORD})")


LITERAL_ESCAPES = [
    (re.compile(r"\\r\\n"), "\n"),
    (_literal_escape("n", _RTF_WORDS_AFTER_N), "\n"),
    (_literal_escape("r", _RTF_WORDS_AFTER_R), "\n"),
    (_literal_escape("t", _RTF_WORDS_AFTER_T), "\t"),
]

# Groups whose content is never document text
DESTINATION_GROUP = re.compile(
    r"\{\\(?:fonttbl|colortbl|stylesheet|info|\*)", re.IGNORECASE
)

# Control-word runs emitted by the source EHR around every text run
CONTROL_WORD_RUNS = [
    re.compile(r"\\loch\\af\d+\\dbch\\af\d+\\hich\\f\d+", re.IGNORECASE),
    re.compile(
        r"\\rtlch\\af\d+\\afs\d+\\alang\d+\\ab?\\ltrch\\f\d+\\fs\d+\\lang\d+"
        r"\\langnp\d+\\langfe\d+\\langfenp\d+(?:\\b)?",
        re.IGNORECASE,
    ),
    re.compile(r"\\loch\\f\d+\\hich\\f\d+", re.IGNORECASE),
    re.compile(r"\\plain\\f\d+\\fs\d+(?:\\b)?", re.IGNORECASE),
]

PARAGRAPH_MARK = re.compile(r"\\(?:par|line)(?![a-z]) ?", re.IGNORECASE)
TAB_MARK = re.compile(r"\\tab(?![a-z]) ?", re.IGNORECASE)
CONTROL_WORD = re.compile(r"\\[a-z]+-?\d* ?", re.IGNORECASE)
HEX_ESCAPE = re.compile(r"\\'([0-9a-fA-F]{2})")

FONT_MARKERS = re.compile(
    r"\b(?:ARIAL|Wingdings|Symbol|Times New Roman)\b[ \t]*;?[ \t]*",
    re.IGNORECASE,
)

KEPT_CONTROL_CHARS = {"\n", "\r", "\t"}


def _matching_brace(text: str, start: int) -> Optional[int]:
    """Index just past the brace closing the group opened at `start`.

    Escaped characters (\\{, \\}, \\\\) do not count. Returns None when the
    group is never closed.
    """
    depth = 0
    i = start
    length = len(text)
    while i < length:
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return None


def remove_destination_groups(text: str) -> str:
    """Remove font/color tables, style sheets, info and \\* groups."""
    out: list[str] = []
    pos = 0
    while True:
        match = DESTINATION_GROUP.search(text, pos)
        if match is None:
            out.append(text[pos:])
            break
        out.append(text[pos:match.start()])
        end = _matching_brace(text, match.start())
        if end is None:
            logger.warning(
                f"Unbalanced RTF group at offset {match.start()}; dropping opener only"
            )
            end = match.end()
        pos = end
    return "".join(out)


def remove_control_words(text: str) -> str:
    """Strip control-word runs, keeping paragraph and tab marks as whitespace."""
    for pattern in CONTROL_WORD_RUNS:
        text = pattern.sub("", text)
    text = PARAGRAPH_MARK.sub("\n", text)
    text = TAB_MARK.sub("\t", text)
    text = CONTROL_WORD.sub("", text)
    return re.sub(r"[{}]", "", text)


def _decode_hex(match: re.Match) -> str:
    code = int(match.group(1), 16)
    if code >= 0x80:
        mapped = CP1252_TABLE[code - 0x80]
        if mapped is not None:
            return mapped
    return chr(code)


def decode_hex_escapes(text: str) -> str:
    """Decode \\'XX escapes through CP1252_TABLE.

    Codes without a table entry fall back to the raw byte value as a
    code point.
    """
    return HEX_ESCAPE.sub(_decode_hex, text)


def normalize_unicode(text: str) -> str:
    """NFKC-normalize and drop control characters other than \\n, \\r, \\t."""
    text = unicodedata.normalize("NFKC", text)
    return "".join(
        ch
        for ch in text
        if ch in KEPT_CONTROL_CHARS or unicodedata.category(ch) != "Cc"
    )


def normalize_whitespace(text: str) -> str:
    """Collapse horizontal whitespace, trim lines and drop empty ones."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    lines = (line.strip() for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def remove_font_markers(text: str) -> str:
    """Drop font-table names from whitespace-normalized text.

    Removing one marker can join its neighbours into another
    ("Times New ARIAL Roman"), so the pass repeats until nothing changes.
    """
    while True:
        stripped = normalize_whitespace(FONT_MARKERS.sub("", text))
        if stripped == text:
            return text
        text = stripped


class RtfCleaner:
    """Turns raw legacy EHR exports into CleanedText.

    Stateless: the same input always yields the same output, and cleaning
    already-cleaned text is a no-op.
    """

    def clean(self, raw: str) -> str:
        """Clean a raw record.

        Args:
            raw: Raw export text, possibly empty.

        Returns:
            Plain Unicode text with one non-empty, trimmed line per row.
        """
        if not raw or not raw.strip():
            return ""

        text = raw
        for pattern, replacement in LITERAL_ESCAPES:
            text = pattern.sub(replacement, text)
        logger.debug("Literal escapes normalized")

        text = remove_destination_groups(text)
        text = remove_control_words(text)
        logger.debug("RTF groups and control words removed")

        text = decode_hex_escapes(text)
        logger.debug("Hex escapes decoded")

        # NFKC can fold fullwidth forms into backslashes, braces or font names,
        # so residue is stripped from the normalized text.
        text = normalize_unicode(text)

        residue = text.count("\\")
        if residue:
            logger.warning(
                f"{residue} unrecognized RTF escape(s) left after cleaning; stripping backslashes"
            )
            text = text.replace("\\", "")
        text = text.replace("{", "").replace("}", "")

        text = normalize_whitespace(text)
        text = remove_font_markers(text)
        logger.debug(f"Cleaned text: {len(raw)} -> {len(text)} characters")
        return text


def clean_text(raw: str) -> str:
    """Clean a raw record with a default RtfCleaner."""
    return RtfCleaner().clean(raw)
