"""Strip invisible and steganographic Unicode before detection.

Zero-width characters can split an email or a card number so the regex
layer no longer sees one token, and the tag block (U+E0000–U+E007F) can
carry a hidden ASCII payload inside otherwise normal text.
"""

from __future__ import annotations
import re

INVISIBLE_CHARS = (
    "\u00ad"              # soft hyphen
    "\u034f"              # combining grapheme joiner
    "\u061c"              # arabic letter mark
    "\u115f\u1160"        # hangul choseong / jungseong fillers
    "\u17b4\u17b5"        # khmer inherent vowels
    "\u180e"              # mongolian vowel separator
    "\u200b\u200c\u200d"  # zero-width space / non-joiner / joiner
    "\u2060-\u2064"       # word joiner, invisible operators
    "\u2800"              # braille pattern blank
    "\u3000"              # ideographic space
    "\u3164"              # hangul filler
    "\ufeff"              # byte-order mark
    "\uffa0"              # halfwidth hangul filler
)

_INVISIBLE_RE = re.compile("[" + INVISIBLE_CHARS + "\U000e0000-\U000e007f]")


def sanitize(text: str) -> str:
    """Remove invisible code points, leaving every other character as is."""
    if not text:
        return text
    return _INVISIBLE_RE.sub("", text)


def contains_invisible(text: str) -> bool:
    return bool(text) and _INVISIBLE_RE.search(text) is not None
