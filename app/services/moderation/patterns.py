"""
Moderation pattern table.

Regexes that spot contact details users try to exchange in chat to take
work off-platform. Grouped by category; each group maps to a violation
type (and optionally a pattern name) in ``PATTERN_GROUPS``.

All patterns are compiled with re.ASCII so ``\\d``, ``\\w`` and ``\\b`` only
match ASCII; Unicode look-alikes are handled by normalization and the
evasion heuristics instead.
"""

import re

from app.models.enums import ViolationType


_FLAGS = re.IGNORECASE | re.ASCII

# Characters never part of a URL
_URL_CHARS = r"[^\s<>\"{}|\\^`\[\]]+"


def _compile(*patterns: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, _FLAGS) for p in patterns)


PHONE_PATTERNS = _compile(
    # International with country code
    r"\+\d{1,4}[\s.-]?\(?\d{1,4}\)?[\s.-]?\d{1,4}[\s.-]?\d{1,4}[\s.-]?\d{1,4}",
    # Indian mobiles: optional +91/0, 10 digits starting 6-9
    r"(?:\+91|0)?[\s.-]?[6-9]\d{4}[\s.-]?\d{5}",
    r"(?:\+91|0)?[\s.-]?[6-9]\d{9}",
    # US/Canada (XXX) XXX-XXXX
    r"\(?[2-9]\d{2}\)?[\s.-]?\d{3}[\s.-]?\d{4}",
    # UK
    r"(?:\+44|0)[\s.-]?\d{4}[\s.-]?\d{6}",
    # 10+ consecutive digits
    r"\d{10,14}",
    # Ten digits with separators
    r"\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d[\s.-]?\d",
    # "call me at 98..."
    r"\b(?:call|contact|whatsapp|phone|mobile|number|msg|text|dial|reach)[\s:]*"
    r"(?:me\s*(?:at|on)?\s*)?[+]?\d[\d\s.-]{7,}",
    # "my number is 98..."
    r"\b(?:my|the)\s*(?:phone|mobile|cell|contact)?\s*(?:number|no\.?|#)?\s*"
    r"(?:is|:)?\s*[+]?\d[\d\s.-]{7,}",
)

EMAIL_PATTERNS = _compile(
    r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
    # user [at] domain [dot] com
    r"[a-zA-Z0-9._%+-]+\s*(?:\[at\]|\(at\)|\bat\b)\s*[a-zA-Z0-9.-]+\s*"
    r"(?:\[dot\]|\(dot\)|\bdot\b)\s*[a-zA-Z]{2,}",
    # user @ domain . com
    r"[a-zA-Z0-9._%+-]+\s*@\s*[a-zA-Z0-9.-]+\s*\.\s*[a-zA-Z]{2,}",
    r"\b(?:my|the)\s*(?:email|mail|e-mail)\s*(?:id|address)?\s*(?:is|:)?\s*"
    r"[a-zA-Z0-9._%+-]+\s*[@]\s*[a-zA-Z0-9.-]+",
)

SOCIAL_MEDIA_PATTERNS = _compile(
    # @mentions
    r"@[a-zA-Z0-9_]{3,30}",
    # "dm me at handle", "ping handle"
    r"\b(?:follow|dm|message|ping|add)\b\s*(?:me)?\s*(?:at|on)?\s*@?[a-zA-Z0-9_]{3,30}",
    r"\b(?:my|the)\s*(?:handle|username|user\s*name|insta|twitter|ig)\b\s*"
    r"(?:is|:)?\s*@?[a-zA-Z0-9_]{3,30}",
)

WHATSAPP_PATTERNS = _compile(
    r"whatsapp",
    r"whats\s*app",
    r"wa\.me/?\d*",
    r"api\.whatsapp\.com",
    r"\bwa\b",
    r"\bwapp\b",
    r"\b(?:msg|message|text|ping|call|contact)\s*(?:me\s*)?(?:on\s*)?(?:whatsapp|wa|wapp)\b",
)

INSTAGRAM_PATTERNS = _compile(
    r"instagram",
    r"\binsta\b",
    r"\big:",
    r"instagram\.com/[a-zA-Z0-9_.]+",
    r"\b(?:follow|dm|check)\s*(?:me\s*)?(?:on\s*)?(?:instagram|insta|ig)\b",
    r"\b(?:my|the)\s*(?:instagram|insta|ig)\b\s*(?:is|:)?\s*@?[a-zA-Z0-9_.]+",
)

TELEGRAM_PATTERNS = _compile(
    r"telegram",
    r"t\.me/[a-zA-Z0-9_]+",
    r"\b(?:msg|message|text|ping)\s*(?:me\s*)?(?:on\s*)?telegram",
    r"\b(?:my|the)\s*telegram\s*(?:is|:)?\s*@?[a-zA-Z0-9_]+",
)

MESSAGING_APP_PATTERNS = _compile(
    r"snapchat",
    r"\bsnap\b",
    r"snapchat\.com/add/[a-zA-Z0-9_]+",
    r"discord",
    r"discord\.gg/[a-zA-Z0-9]+",
    # Discord tag user#1234
    r"[a-zA-Z0-9_]+#\d{4}",
    r"\bsignal\s*(?:app)?\b",
    r"(?:facebook|fb)\s*messenger",
    r"m\.me/[a-zA-Z0-9.]+",
    r"linkedin\.com/in/[a-zA-Z0-9-]+",
    r"\blinkedin\b",
)

LINK_PATTERNS = _compile(
    r"https?://" + _URL_CHARS,
    r"www\." + _URL_CHARS,
    r"[a-zA-Z0-9-]+\.(?:com|org|net|io|co|in|edu|gov|info|biz|me|app|dev|xyz|online"
    r"|site|tech|cloud|store|shop|blog|link|click|live|us|uk|ca|au)\b[^\s]*",
    # Shorteners
    r"(?:bit\.ly|goo\.gl|t\.co|tinyurl\.com|ow\.ly|is\.gd|buff\.ly|cutt\.ly|rb\.gy"
    r"|short\.io|tr\.im|v\.gd)/[\w-]+",
    r"(?:instagram|facebook|twitter|linkedin|telegram|discord|snapchat|tiktok"
    r"|youtube|whatsapp)\.(?:com|me)/[\w./-]*",
    r"(?:docs|drive|meet)\.google\.com/[\w./?=&-]*",
    r"(?:zoom\.us|teams\.microsoft\.com|teams\.live\.com)/[\w./?=&-]*",
)

ADDRESS_PATTERNS = _compile(
    # Indian PIN code
    r"\b\d{6}\b",
    # US ZIP
    r"\b\d{5}(?:-\d{4})?\b",
    # Street indicator followed by a number
    r"\b(?:house|flat|apt|apartment|building|floor|block|sector|plot|street|road"
    r"|lane|nagar|colony|society|enclave|extension|phase|avenue|boulevard|drive"
    r"|court|way|place|circle|marg|path|gali)\b[\s,]*(?:#?\d+|no\.?\s*\d+)",
    r"\b(?:h\.?no\.?|house\s*no\.?|flat\s*no\.?|door\s*no\.?|plot\s*no\.?)\s*[:\-]?\s*\d+",
    # "12, MG Road"
    r"\d+[\s,/]+[\w\s]{1,60}?(?:street|road|lane|avenue|nagar|colony|sector)\b",
    r"\b(?:my|the)\s*(?:address|location|place|home)\s*(?:is|:)\s*[A-Za-z0-9\s,.-]{15,}",
    r"\b(?:near|opposite|behind|next\s+to|adjacent\s+to|beside|opp\.?)\s+[\w\s]{5,}",
    r"\b(?:i\s+)?(?:stay|live|reside|residing|located)\s+(?:at|in|near)\s+[\w\s,.-]{10,}",
)


# (patterns, violation type, pattern name) in evaluation order
PATTERN_GROUPS: tuple[tuple[tuple[re.Pattern, ...], ViolationType, str | None], ...] = (
    (PHONE_PATTERNS, ViolationType.PHONE, None),
    (EMAIL_PATTERNS, ViolationType.EMAIL, None),
    (WHATSAPP_PATTERNS, ViolationType.MESSAGING_APP, "whatsapp"),
    (INSTAGRAM_PATTERNS, ViolationType.SOCIAL_MEDIA, "instagram"),
    (TELEGRAM_PATTERNS, ViolationType.MESSAGING_APP, "telegram"),
    (SOCIAL_MEDIA_PATTERNS, ViolationType.SOCIAL_MEDIA, None),
    (MESSAGING_APP_PATTERNS, ViolationType.MESSAGING_APP, None),
    (LINK_PATTERNS, ViolationType.LINK, None),
    (ADDRESS_PATTERNS, ViolationType.ADDRESS, None),
)


# User-facing names per violation type
VIOLATION_LABELS = {
    ViolationType.PHONE: "phone numbers",
    ViolationType.EMAIL: "email addresses",
    ViolationType.SOCIAL_MEDIA: "social media handles",
    ViolationType.MESSAGING_APP: "messaging app references",
    ViolationType.LINK: "external links",
    ViolationType.ADDRESS: "physical addresses",
}


# Evasion heuristics
SPACED_DIGITS_PATTERN = re.compile(r"\d\s+\d\s+\d\s+\d\s+\d", re.ASCII)
CYRILLIC_PATTERN = re.compile("[\u0430-\u044f\u0410-\u042f]")
OBFUSCATED_EMAIL_PATTERN = re.compile(
    "[a-zA-Z0-9._%+-]+\\s*[@\u0430]\\s*[a-zA-Z0-9.-]+", re.IGNORECASE
)

ZERO_WIDTH_PATTERN = re.compile("[\u200b-\u200d\ufeff]")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Cyrillic look-alikes mapped to ASCII
LOOKALIKE_TRANSLATION = str.maketrans({
    "\u0430": "a", "\u0435": "e", "\u043e": "o", "\u0440": "p",
    "\u0441": "c", "\u0443": "y", "\u0445": "x", "\u0410": "A",
    "\u0415": "E", "\u041e": "O", "\u0420": "P", "\u0421": "C",
})
