import logging
import re
from typing import Dict

from errors import ParseError

logger = logging.getLogger('site-parser')

# Filenames are restricted to word characters, dots and hyphens: no path
# separators and no whitespace.
FILENAME_CHARS = r'[\w.\-]+'

# A segment body runs lazily until the next marker or the end of the text.
SEGMENT_RE = re.compile(
    r'---\s*(' + FILENAME_CHARS + r')\s*---\s*\n(.*?)(?=---\s*' + FILENAME_CHARS + r'\s*---|\Z)',
    re.S,
)

_NAME_RE = re.compile(FILENAME_CHARS)
_WORD_RE = re.compile(r'\w')
_FENCE_OPEN_RE = re.compile(r'^```[a-z]*\n?', re.I)
_FENCE_CLOSE_RE = re.compile(r'```$')


def is_safe_name(name: str) -> bool:
    """True when ``name`` is a single path component made of allowed characters.

    Names without a single word character (".", "..", "-----") are refused,
    so nothing resolves outside the project directory and horizontal rules
    are never taken for files.
    """
    if not name or not _NAME_RE.fullmatch(name):
        return False
    return _WORD_RE.search(name) is not None


def strip_fence(body: str) -> str:
    body = body.strip()
    if body.startswith('```'):
        body = _FENCE_OPEN_RE.sub('', body, count=1)
        body = _FENCE_CLOSE_RE.sub('', body, count=1)
        body = body.strip()
    return body


def parse_files(raw_text: str) -> Dict[str, str]:
    """Split model output into ``{filename: content}``.

    The output is expected to look like::

        --- index.html ---
        <html>...</html>
        --- style.css ---
        body { ... }

    Each body may also be wrapped in a fenced code block with an optional
    language tag. A filename seen twice keeps its last body. Text before the
    first marker, and markers whose filename has characters outside the
    allowed set, are not matched. Never raises; an unusable input simply
    yields an empty mapping.
    """
    files: Dict[str, str] = {}
    if not raw_text:
        return files
    for match in SEGMENT_RE.finditer(raw_text):
        filename = match.group(1).strip()
        if not is_safe_name(filename):
            logger.warning('Ignoring unsafe filename in model output: %r', filename)
            continue
        if filename in files:
            logger.info('Duplicate segment for %s; keeping the later one', filename)
        files[filename] = strip_fence(match.group(2))
    return files


def extract_files(raw_text: str) -> Dict[str, str]:
    """Like :func:`parse_files` but an empty result is a failure."""
    files = parse_files(raw_text)
    if not files:
        logger.error('No file markers found in model output (%d chars)', len(raw_text or ''))
        raise ParseError('No files found in generated output')
    return files
