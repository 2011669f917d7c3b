import re

_MARKUP_RE = re.compile(r"[*_`~]")
_HEADING_RE = re.compile(r"^[ \t]*#{1,6}[ \t]*", re.MULTILINE)
_BULLET_RE = re.compile(r"^[ \t]*[-•][ \t]+", re.MULTILINE)
_PARAGRAPH_RE = re.compile(r"[ \t]*\n(?:[ \t]*\n)+[ \t]*")
_LINE_RE = re.compile(r"[ \t]*\n[ \t]*")
_SPACES_RE = re.compile(r"[ \t]{2,}")

SENTENCE_END = ".!?।"
CLAUSE_MARKS = ",;:"
CLAUSE_END = SENTENCE_END + CLAUSE_MARKS


def _join(parts: list[str], mark: str, already_closed: str) -> str:
    joined = ""
    for part in parts:
        part = part.strip()
        if not part:
            continue
        if joined:
            if joined[-1] not in already_closed:
                # a dangling clause mark gives way to the stronger one
                joined = joined.rstrip(CLAUSE_MARKS) + mark
            joined += " "
        joined += part
    return joined


def normalize_for_speech(text: str) -> str:
    """
    Flatten a markdown-ish answer into one speakable line: paragraph breaks
    end a sentence, single line breaks become commas, emphasis and heading
    markers are dropped.
    """
    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = _HEADING_RE.sub("", cleaned)
    cleaned = _BULLET_RE.sub("", cleaned)
    cleaned = _MARKUP_RE.sub("", cleaned)

    paragraphs = []
    for paragraph in _PARAGRAPH_RE.split(cleaned):
        paragraphs.append(_join(_LINE_RE.split(paragraph), ",", CLAUSE_END))
    spoken = _join(paragraphs, ".", SENTENCE_END)
    return _SPACES_RE.sub(" ", spoken).strip()
