"""Helper functions and compiled regex patterns for key-field normalization.

The upstream normalizer delivers cleaned records; these helpers derive the
comparison forms (case-folded, accent-free, suffix-stripped) that fingerprints,
blockers and comparators share.
"""

import re
import unicodedata
from urllib.parse import urlsplit

# Pre-compiled regex patterns
NON_ALNUM_RE = re.compile(r"[^0-9a-z]+")
DIGITS_RE = re.compile(r"\D+")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Trailing tokens removed from organization names ("Acme (Pty) Ltd" -> "acme")
LEGAL_SUFFIXES = frozenset(
    {
        "pty",
        "ltd",
        "limited",
        "inc",
        "incorporated",
        "llc",
        "llp",
        "lp",
        "corp",
        "corporation",
        "co",
        "company",
        "plc",
        "gmbh",
        "sa",
        "cc",
        "npc",
        "soc",
        "bv",
        "ag",
        "holdings",
        "group",
    }
)

REMOTE_SYNONYMS = frozenset(
    {
        "remote",
        "work from home",
        "wfh",
        "anywhere",
        "fully remote",
        "remote first",
        "telecommute",
    }
)

PROVINCE_ALIASES = {
    "wc": "western cape",
    "w cape": "western cape",
    "ec": "eastern cape",
    "e cape": "eastern cape",
    "nc": "northern cape",
    "n cape": "northern cape",
    "gp": "gauteng",
    "gauteng province": "gauteng",
    "kzn": "kwazulu natal",
    "kwazulu": "kwazulu natal",
    "fs": "free state",
    "lp": "limpopo",
    "mp": "mpumalanga",
    "nw": "north west",
}

# Second-level public suffixes where the registrable domain has three labels
SECOND_LEVEL_SUFFIXES = frozenset(
    {
        "co.za",
        "org.za",
        "gov.za",
        "ac.za",
        "co.uk",
        "org.uk",
        "ac.uk",
        "com.au",
        "net.au",
        "org.au",
        "co.nz",
        "com.br",
        "co.in",
    }
)

PHONE_SIGNIFICANT_DIGITS = 9


# ---------------------------------------------------------------------------
# Text normalization functions
# ---------------------------------------------------------------------------


def strip_accents(text: str) -> str:
    """Remove diacritical marks for cross-locale matching.

    Parameters
    ----------
    text : str
        Input text with potential diacritics.

    Returns
    -------
    str
        Text with diacritical marks removed.
    """
    nfd = unicodedata.normalize("NFD", text)
    stripped = "".join(c for c in nfd if unicodedata.category(c) != "Mn")
    return unicodedata.normalize("NFC", stripped)


def normalize_text(text: str | None) -> str:
    """Full text normalization for dedup matching.

    Applies NFKC, casefold, accent stripping, replaces every run of
    non-alphanumeric characters with a space and collapses whitespace.

    Parameters
    ----------
    text : str | None
        Raw text to normalize.

    Returns
    -------
    str
        Normalized text ready for matching ('' for missing input).
    """
    if not text:
        return ""
    text = unicodedata.normalize("NFKC", text)
    text = strip_accents(text.casefold())
    text = NON_ALNUM_RE.sub(" ", text)
    return " ".join(text.split())


def tokenize(text: str | None) -> list[str]:
    """Split normalized text into tokens."""
    return normalize_text(text).split()


def strip_legal_suffixes(name: str | None) -> str:
    """Normalize an organization name and drop trailing legal-form tokens.

    Parameters
    ----------
    name : str | None
        Organization name as displayed by the source.

    Returns
    -------
    str
        Normalized name without legal suffixes. A name made only of
        suffix tokens is returned normalized but unstripped.
    """
    tokens = tokenize(name)
    end = len(tokens)
    while end > 0 and tokens[end - 1] in LEGAL_SUFFIXES:
        end -= 1
    if end == 0:
        return " ".join(tokens)
    return " ".join(tokens[:end])


def normalize_title(title: str | None, organization: str | None = None) -> str:
    """Normalize a job title, removing the hiring organization's name.

    Sources often decorate titles as "Engineer at Acme" or "Acme - Engineer".

    Parameters
    ----------
    title : str | None
        Posting title.
    organization : str | None
        Organization name to remove from the title.

    Returns
    -------
    str
        Normalized title.
    """
    title_norm = normalize_text(title)
    org_norm = strip_legal_suffixes(organization)
    if not org_norm or not title_norm:
        return title_norm

    padded = f" {title_norm} "
    padded = padded.replace(f" {org_norm} ", " ")
    tokens = padded.split()
    # Dangling connectors left after removing "at Acme"
    while tokens and tokens[-1] in {"at", "for", "with"}:
        tokens.pop()
    return " ".join(tokens) if tokens else title_norm


def normalize_location(city: str | None) -> str:
    """Normalize a city name, folding remote-work synonyms to 'remote'."""
    city_norm = normalize_text(city)
    if city_norm in REMOTE_SYNONYMS:
        return "remote"
    return city_norm


def normalize_province(province: str | None) -> str:
    """Normalize a province, expanding common abbreviations."""
    province_norm = normalize_text(province)
    return PROVINCE_ALIASES.get(province_norm, province_norm)


def registrable_domain(website: str | None) -> str:
    """Extract the registrable domain from a URL or bare host.

    Parameters
    ----------
    website : str | None
        URL ('https://www.acme.co.za/careers') or bare host ('acme.co.za').

    Returns
    -------
    str
        Registrable domain ('acme.co.za'), or '' when none can be derived.
    """
    if not website:
        return ""
    value = website.strip().lower()
    if "://" not in value:
        value = f"//{value}"
    host = urlsplit(value).hostname or ""
    labels = [label for label in host.split(".") if label]
    if len(labels) < 2:
        return ""
    if labels[0] == "www":
        labels = labels[1:]
    keep = 3 if ".".join(labels[-2:]) in SECOND_LEVEL_SUFFIXES else 2
    return ".".join(labels[-keep:]) if len(labels) >= keep else ""


def normalize_email(email: str | None) -> str:
    """Lowercase and validate an e-mail address ('' when malformed)."""
    if not email:
        return ""
    value = email.strip().lower()
    return value if EMAIL_RE.match(value) else ""


def normalize_phone(phone: str | None) -> str:
    """Reduce a phone number to its significant trailing digits.

    '+27 21 555 0100' and '021 555 0100' both become '215550100'.
    """
    if not phone:
        return ""
    digits = DIGITS_RE.sub("", phone)
    if len(digits) < PHONE_SIGNIFICANT_DIGITS:
        return ""
    return digits[-PHONE_SIGNIFICANT_DIGITS:]
