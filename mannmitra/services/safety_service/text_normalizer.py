"""Text normalization for risk assessment.

Messages mix English, Hindi (Devanagari) and romanised Hinglish, typed on
phone keyboards with inconsistent spelling. Indicator phrases and messages
go through the same normalize() so matching is insensitive to case,
Latin diacritics, styled Unicode letters and common Hinglish spellings.

Normalization must keep relative order of characters: indicator positions
are reported as offsets in the normalized text.
"""
import logging
import re
import unicodedata
from typing import Dict, FrozenSet

logger = logging.getLogger(__name__)


# Characters to strip (zero-width, invisible)
STRIP_CHARS: FrozenSet[str] = frozenset({
    "\u200b",  # Zero-width space
    "\u200c",  # Zero-width non-joiner
    "\u200d",  # Zero-width joiner
    "\ufeff",  # Byte order mark
    "\u00ad",  # Soft hyphen
    "\u2060",  # Word joiner
})

# Typographic punctuation from mobile keyboards
PUNCTUATION_MAP: Dict[str, str] = {
    "\u2018": "'",
    "\u2019": "'",
    "\u02bc": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",
    "\u2014": "-",
}

# Romanised Hindi spelling variants -> canonical spelling.
# Applied to whole words only, after lowercasing.
TRANSLITERATION_MAP: Dict[str, str] = {
    "nahin": "nahi",
    "nhi": "nahi",
    "nahee": "nahi",
    "hu": "hoon",
    "hun": "hoon",
    "hoo": "hoon",
    "jina": "jeena",
    "jeene": "jeena",
    "jindagi": "zindagi",
    "zindagee": "zindagi",
    "chahata": "chahta",
    "chahati": "chahti",
    "jaana": "jana",
    "kuchh": "kuch",
    "ummeed": "umeed",
    "umid": "umeed",
    "bekaar": "bekar",
    "akelaa": "akela",
    "pareshaan": "pareshan",
    "nuksaan": "nuksan",
    "nuqsan": "nuksan",
    "khudkhushi": "khudkushi",
    "atmahatya": "aatmahatya",
    "aatmhatya": "aatmahatya",
    "sharaab": "sharab",
    "gya": "gaya",
    "gyi": "gayi",
}


class TextNormalizer:
    """Normalizes text for indicator matching.

    Handles:
    - Zero-width characters
    - Styled Unicode letters (ⓚⓘⓛⓛ, 𝐤𝐢𝐥𝐥, ｋｉｌｌ) via NFKD
    - Latin diacritics (é -> e); Devanagari is left intact
    - Curly quotes and dashes
    - Mixed case
    - Runs of whitespace
    - Hinglish spelling variants (nahin -> nahi)
    """

    def __init__(self, transliterations: Dict[str, str] = None):
        """Initialize the normalizer with precompiled patterns.

        Args:
            transliterations: Word-level spelling folds, defaults to
                TRANSLITERATION_MAP
        """
        self.transliterations = dict(
            TRANSLITERATION_MAP if transliterations is None else transliterations
        )
        # Longest first so overlapping variants resolve predictably
        words = sorted(self.transliterations, key=lambda w: (-len(w), w))
        self._word_pattern = (
            re.compile(r"(?<![a-z0-9])(" + "|".join(map(re.escape, words)) + r")(?![a-z0-9])")
            if words else None
        )

        logger.debug(
            "TEXT_NORMALIZER_INITIALIZED",
            extra={"transliteration_count": len(self.transliterations)}
        )

    def normalize(self, text: str) -> str:
        """Normalize text for pattern matching.

        Applies normalization in order:
        1. Strip zero-width/invisible characters
        2. Fold Unicode compatibility forms and Latin diacritics
        3. Map typographic punctuation
        4. Lowercase
        5. Collapse whitespace
        6. Fold transliteration variants

        Args:
            text: Raw input text

        Returns:
            Normalized text; empty string for empty/whitespace input
        """
        if not text:
            return ""

        result = self._strip_invisible(text)
        result = self._fold_unicode(result)
        result = "".join(PUNCTUATION_MAP.get(c, c) for c in result)
        result = result.lower()
        result = " ".join(result.split())
        result = self._fold_transliterations(result)
        return result

    def _strip_invisible(self, text: str) -> str:
        return "".join(c for c in text if c not in STRIP_CHARS)

    def _fold_unicode(self, text: str) -> str:
        """Map each character to its ASCII form where one exists.

        Characters whose compatibility decomposition has no ASCII part
        (Devanagari letters and signs among them) are kept unchanged.
        """
        result = []
        for char in unicodedata.normalize("NFC", text):
            if ord(char) < 128:
                result.append(char)
                continue
            decomposed = unicodedata.normalize("NFKD", char)
            ascii_only = "".join(
                c for c in decomposed
                if unicodedata.category(c) != "Mn" and ord(c) < 128
            )
            result.append(ascii_only if ascii_only else char)
        return "".join(result)

    def _fold_transliterations(self, text: str) -> str:
        if self._word_pattern is None:
            return text
        return self._word_pattern.sub(
            lambda m: self.transliterations[m.group(1)], text
        )


def normalize_text(text: str) -> str:
    """Normalize text with the default transliteration table."""
    return TextNormalizer().normalize(text)
