"""
Content moderation detector.

Pure functions: no I/O, safe to call on every keystroke.
"""

from dataclasses import asdict, dataclass, field
from typing import Any

from app.config.constants import MODERATION_MIN_MATCH_LENGTH
from app.models.enums import ModerationSeverity, ViolationType

from .patterns import (
    CYRILLIC_PATTERN,
    LOOKALIKE_TRANSLATION,
    OBFUSCATED_EMAIL_PATTERN,
    PATTERN_GROUPS,
    SPACED_DIGITS_PATTERN,
    VIOLATION_LABELS,
    WHITESPACE_PATTERN,
    ZERO_WIDTH_PATTERN,
)


EVASION_MESSAGE = (
    "Your message appears to contain hidden personal information. "
    "Please rephrase."
)


@dataclass(frozen=True)
class ViolationMatch:
    """One detected piece of contact information."""

    type: ViolationType
    matched: str
    position: int
    end_position: int
    pattern: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


@dataclass
class ModerationResult:
    """Outcome of moderating one piece of text."""

    allowed: bool
    violations: list[ViolationMatch] = field(default_factory=list)
    message: str = ""
    severity: ModerationSeverity = ModerationSeverity.LOW
    sanitized_content: str = ""
    evasion_detected: bool = False

    @property
    def violation_types(self) -> list[ViolationType]:
        """Distinct violation types in order of first appearance."""
        seen: list[ViolationType] = []
        for violation in self.violations:
            if violation.type not in seen:
                seen.append(violation.type)
        return seen

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "violations": [v.to_dict() for v in self.violations],
            "violation_types": [t.value for t in self.violation_types],
            "message": self.message,
            "severity": self.severity.value,
            "evasion_detected": self.evasion_detected,
        }


def _severity_for(count: int) -> ModerationSeverity:
    if count >= 4:
        return ModerationSeverity.HIGH
    if count >= 2:
        return ModerationSeverity.MEDIUM
    return ModerationSeverity.LOW


def build_violation_message(types: list[ViolationType]) -> str:
    """
    User-facing explanation listing the violated categories.

    Examples:
        >>> build_violation_message([ViolationType.PHONE, ViolationType.LINK])
        'For your safety, sharing phone numbers, external links is not allowed. Please use the in-app communication features.'
    """
    if not types:
        return ""
    detected = ", ".join(VIOLATION_LABELS[t] for t in types)
    return (
        f"For your safety, sharing {detected} is not allowed. "
        "Please use the in-app communication features."
    )


def moderate_content(content: Any) -> ModerationResult:
    """
    Scan text for contact details.

    Matches shorter than 3 characters are ignored. Violations are
    de-duplicated by (position, type) and sorted by position.

    Args:
        content: Message text (non-strings are allowed unchanged)

    Returns:
        ModerationResult
    """
    if not content or not isinstance(content, str):
        return ModerationResult(
            allowed=True,
            sanitized_content=content if isinstance(content, str) else "",
        )

    text = content.strip()
    sanitized = text
    violations: list[ViolationMatch] = []
    seen: set[tuple[int, ViolationType]] = set()

    for patterns, violation_type, pattern_name in PATTERN_GROUPS:
        for regex in patterns:
            for match in regex.finditer(text):
                matched = match.group(0)
                if len(matched) < MODERATION_MIN_MATCH_LENGTH:
                    continue

                sanitized = sanitized.replace(
                    matched, f"[{violation_type.value.upper()} REDACTED]", 1
                )

                key = (match.start(), violation_type)
                if key in seen:
                    continue
                seen.add(key)
                violations.append(
                    ViolationMatch(
                        type=violation_type,
                        matched=matched,
                        position=match.start(),
                        end_position=match.end(),
                        pattern=pattern_name,
                    )
                )

    violations.sort(key=lambda v: v.position)

    result = ModerationResult(
        allowed=not violations,
        violations=violations,
        severity=_severity_for(len(violations)),
        sanitized_content=sanitized,
    )
    result.message = build_violation_message(result.violation_types)
    return result


def normalize_for_detection(content: str) -> str:
    """
    Undo common evasion tricks before matching.

    Strips zero-width characters, maps Cyrillic look-alikes to ASCII and
    collapses whitespace runs to a single space.
    """
    normalized = ZERO_WIDTH_PATTERN.sub("", content)
    normalized = normalized.translate(LOOKALIKE_TRANSLATION)
    return WHITESPACE_PATTERN.sub(" ", normalized)


def detect_evasion_attempt(content: str) -> bool:
    """Spaced-out digits, Cyrillic characters or an obfuscated e-mail."""
    if not content or not isinstance(content, str):
        return False
    return bool(
        SPACED_DIGITS_PATTERN.search(content)
        or CYRILLIC_PATTERN.search(content)
        or OBFUSCATED_EMAIL_PATTERN.search(content)
    )


def moderate_content_enhanced(content: Any) -> ModerationResult:
    """
    Moderate normalized text and add evasion detection.

    When evasion is detected but no pattern matched, the message is still
    blocked with medium severity.
    """
    if not content or not isinstance(content, str):
        return moderate_content(content)

    result = moderate_content(normalize_for_detection(content))
    evasion = detect_evasion_attempt(content)
    result.evasion_detected = evasion

    if evasion and result.allowed:
        result.allowed = False
        result.message = EVASION_MESSAGE
        result.severity = ModerationSeverity.MEDIUM

    return result
