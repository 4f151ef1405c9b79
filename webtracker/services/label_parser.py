"""
Deterministic, line-aware manifest extractor.

Each line is matched against `<family><sub-label><separator><value>` where the
family says whose field it is (receiver or sender) and the sub-label says which
field. The value is the rest of the line. Detection is case-insensitive; values
keep their original case.
"""

import re

from webtracker.models.domain.manifest_domain import Manifest

RECEIVER_FAMILY = (
    "receiver",
    "reciever",
    "reciver",
    "recever",
    "resiver",
    "receive",
    "recieve",
    "recipient",
    "consignee",
    "rcvr",
    "to",
)
SENDER_FAMILY = ("sender", "sendr", "shipper", "shippr", "sent by", "origin", "from")

# sub-label -> manifest field suffix
SUB_LABELS: dict[str, tuple[str, ...]] = {
    "name": ("name", "names", "fullname", "full name"),
    "phone": (
        "telephone",
        "whatsapp",
        "contact",
        "number",
        "mobile",
        "mobil",
        "phone",
        "cell",
        "tel",
        "num",
        "ph",
    ),
    "address": ("address", "addres", "addrs", "addr", "street", "location", "direction", "dir"),
    "country": ("country", "nation", "destination", "dest", "state", "city", "pais", "land"),
    "email": ("e-mail", "email", "mail"),
    "id": (
        "identification",
        "identity",
        "passport",
        "nin",
        "ssn",
        "tin",
        "id",
    ),
    "cargo": ("commodity", "description", "content", "contents", "package", "cargo", "item", "type"),
}

# Family word used without a sub-label: which field it names.
FAMILY_DEFAULT_SUB = {"origin": "country"}

RECEIVER_FIELDS = {
    "name": "receiver_name",
    "phone": "receiver_phone",
    "address": "receiver_address",
    "country": "receiver_country",
    "email": "receiver_email",
    "id": "receiver_id",
    "cargo": "cargo_type",
}
SENDER_FIELDS = {
    "name": "sender_name",
    "country": "sender_country",
    "cargo": "cargo_type",
}

SENDER_MENTION = re.compile(r"\b(?:sender|origin|from)", re.IGNORECASE)


def _alternation(words) -> str:
    ordered = sorted(words, key=len, reverse=True)
    return "|".join(re.escape(w).replace(r"\ ", r"\s+") for w in ordered)


_SUB_LOOKUP = {word.replace(" ", ""): sub for sub, words in SUB_LABELS.items() for word in words}
_ALL_SUB_WORDS = [word for words in SUB_LABELS.values() for word in words]

_LEADER = r"^[\s*_•·>\-–—]*(?:\d+[.)]\s*)?[\s*_]*"
# "Phone Number:", "ID No.", only directly after a sub-label
_QUALIFIER = r"(?(sub)(?:(?:number|num|no|nr)\.?(?![a-z]))?)"

LINE_PATTERN = re.compile(
    _LEADER
    + r"(?:(?P<family>"
    + _alternation(RECEIVER_FAMILY + SENDER_FAMILY)
    + r")[s'’]*(?![a-z]))?"
    + r"(?P<sep1>[\s:'’*_.\-=]*)"
    + r"(?:(?P<sub>"
    + _alternation(_ALL_SUB_WORDS)
    + r")[s'’]*(?![a-z]))?"
    + r"(?P<sep2>[\s'’*_.#\-]*)"
    + _QUALIFIER
    + r"(?P<sep3>[\s:'’*_=\-]*)"
    + r"(?P<value>.*)$",
    re.IGNORECASE,
)
EXPLICIT_SEPARATORS = set(":=-")

# Pre-filter keyword classes
KEYWORD_CLASSES: dict[str, re.Pattern] = {
    "sender": re.compile(r"\b(?:sender|sendr|shipper|shippr|origin|from)", re.IGNORECASE),
    "receiver": re.compile(
        r"\b(?:receiv|reciev|reciv|recev|resiv|recipient|consignee|rcvr)", re.IGNORECASE
    ),
    "phone": re.compile(
        r"\b(?:phone|telephone|tel|mobile|mobil|cell|whatsapp|number|num|contact)", re.IGNORECASE
    ),
    "name": re.compile(r"\bnames?\b", re.IGNORECASE),
}


def clean_text(text: str) -> str:
    """Normalise line endings."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def validate_email(email: str) -> bool:
    return "@" in email and "." in email


def validate_phone(phone: str) -> bool:
    return sum(ch.isdigit() for ch in phone) >= 5


def keyword_classes(text: str) -> set[str]:
    """Which of the four manifest keyword classes appear in the text."""
    folded = text.casefold()
    return {name for name, pattern in KEYWORD_CLASSES.items() if pattern.search(folded)}


def _strip_value(value: str) -> str:
    return value.rstrip().strip("*_ \t").rstrip()


def _resolve_line(line: str) -> tuple[str, str] | None:
    """Return (manifest field, value) for one line, or None if it carries no label."""
    match = LINE_PATTERN.match(line)
    if not match:
        return None

    family = (match.group("family") or "").lower()
    sub_word = (match.group("sub") or "").lower()
    value = _strip_value(match.group("value"))
    if not value or (not family and not sub_word):
        return None

    # A lone label word needs an explicit separator ("From: Alice", not "from Lagos")
    separators = match.group("sep1") + match.group("sep2") + match.group("sep3")
    if not (family and sub_word) and not EXPLICIT_SEPARATORS & set(separators):
        return None

    family_key = re.sub(r"\s+", " ", family)
    sub = _SUB_LOOKUP.get(re.sub(r"\s+", "", sub_word)) if sub_word else None
    if sub is None:
        sub = FAMILY_DEFAULT_SUB.get(family_key, "name")

    if family_key in SENDER_FAMILY:
        fields = SENDER_FIELDS
    elif family_key:
        fields = RECEIVER_FIELDS
    elif SENDER_MENTION.search(line):
        fields = SENDER_FIELDS
    else:
        fields = RECEIVER_FIELDS

    field = fields.get(sub)
    if field is None:
        return None
    return field, value


def parse_labels(text: str) -> Manifest:
    """Extract a manifest from labelled lines. The first value seen for a field wins."""
    manifest = Manifest()
    for line in clean_text(text).split("\n"):
        if not line.strip():
            continue
        resolved = _resolve_line(line)
        if resolved is None:
            continue
        field, value = resolved
        if not getattr(manifest, field):
            setattr(manifest, field, value)

    manifest.check_required()
    return manifest
