"""
Identity helpers: company prefix abbreviation, tracking ids and phone keys.
"""

import random
import re
import string

DEFAULT_PREFIX = "AWB"
TRACKING_DIGITS = 9
VOWELS = set("aeiouyAEIOUY")

_NON_ALPHA = re.compile(r"[^a-zA-Z]")
_LEADING_DIGITS = re.compile(r"^(\d+)")


def split_syllables(word: str) -> list[str]:
    """
    Approximate phonetic syllables of a word.

    VCV splits as V-CV and VCCV as VC-CV. A trailing single letter is merged
    back into the previous syllable.
    """
    clean = _NON_ALPHA.sub("", word.strip())
    if not clean:
        return []
    if len(clean) <= 3:
        return [clean]

    syllables = []
    start = 0
    i = 0
    while i < len(clean):
        if clean[i] in VOWELS and i + 1 < len(clean) and clean[i + 1] not in VOWELS:
            has_more_vowels = any(c in VOWELS for c in clean[i + 1 :])
            if has_more_vowels:
                if i + 2 < len(clean) and clean[i + 2] not in VOWELS:
                    syllables.append(clean[start : i + 2])
                    start = i + 2
                    i += 1
                else:
                    syllables.append(clean[start : i + 1])
                    start = i + 1
        i += 1

    if start < len(clean):
        syllables.append(clean[start:])

    if len(syllables) > 1 and len(syllables[-1]) < 2:
        last = syllables.pop()
        syllables[-1] += last

    return syllables


def abbreviate(name: str) -> str:
    """Derive the three-character company prefix from a company name."""
    clean = _NON_ALPHA.sub("", name.strip())
    if not clean:
        return DEFAULT_PREFIX

    syllables = split_syllables(clean)
    if len(syllables) == 1:
        syllable = syllables[0]
        if len(syllable) <= 3:
            abbr = syllable
        else:
            abbr = syllable[0] + syllable[len(syllable) // 2] + syllable[-1]
    elif len(syllables) == 2:
        abbr = syllables[0][:2] + syllables[1][0]
    else:
        abbr = "".join(s[0] for s in syllables[:3])

    abbr = abbr.upper()[:3]
    return abbr.ljust(3, "X")


def generate_tracking_id(prefix: str = DEFAULT_PREFIX) -> str:
    digits = "".join(random.choices(string.digits, k=TRACKING_DIGITS))
    return f"{prefix or DEFAULT_PREFIX}-{digits}"


def bare_phone(jid: str) -> str:
    """Leading digit run of a chat identity ("2348012:12@s.whatsapp.net" -> "2348012")."""
    if not jid:
        return ""
    match = _LEADING_DIGITS.match(jid)
    return match.group(1) if match else ""


def clean_phone(value: str) -> str:
    return value.strip().replace("+", "").replace("-", "").replace(" ", "")
