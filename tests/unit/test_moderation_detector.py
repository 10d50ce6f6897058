"""Unit tests for contact-information detection."""

import pytest

from app.models.enums import ModerationSeverity, ViolationType
from app.services.moderation import (
    build_violation_message,
    detect_evasion_attempt,
    moderate_content,
    moderate_content_enhanced,
    normalize_for_detection,
)
from app.services.moderation.detector import EVASION_MESSAGE


class TestModerateContent:
    """Tests for the base detector."""

    def test_clean_message_is_allowed(self):
        result = moderate_content("Please review chapter two before the deadline.")

        assert result.allowed is True
        assert result.violations == []
        assert result.message == ""
        assert result.severity == ModerationSeverity.LOW

    @pytest.mark.parametrize("content", [None, "", 42])
    def test_empty_or_non_text_is_allowed(self, content):
        assert moderate_content(content).allowed is True

    def test_phone_number_is_blocked_and_redacted(self):
        result = moderate_content("Call me at 9876543210")

        assert result.allowed is False
        assert ViolationType.PHONE in result.violation_types
        assert "[PHONE REDACTED]" in result.sanitized_content
        assert "9876543210" not in result.sanitized_content
        assert "phone numbers" in result.message

    def test_email_address(self):
        result = moderate_content("mail me at john.doe@example.com")

        assert result.allowed is False
        assert ViolationType.EMAIL in result.violation_types

    def test_external_link(self):
        result = moderate_content("see https://drive.google.com/file/abc")

        assert ViolationType.LINK in result.violation_types

    def test_whatsapp_reference_names_the_pattern(self):
        result = moderate_content("message me on whatsapp")

        assert ViolationType.MESSAGING_APP in result.violation_types
        assert any(v.pattern == "whatsapp" for v in result.violations)

    def test_instagram_reference(self):
        result = moderate_content("follow me on instagram")

        assert ViolationType.SOCIAL_MEDIA in result.violation_types

    @pytest.mark.parametrize(
        "content",
        ["dm johnny_b99", "ping johnny_b99 later", "add me on johnny_b99"],
    )
    def test_bare_handle_after_contact_verb(self, content):
        result = moderate_content(content)

        assert result.allowed is False
        assert ViolationType.SOCIAL_MEDIA in result.violation_types

    def test_contact_verb_inside_word_is_not_a_handle(self):
        result = moderate_content("Please check the address format in section two")

        assert ViolationType.SOCIAL_MEDIA not in result.violation_types

    @pytest.mark.parametrize(
        "content", ["lets move this to signal", "use the Signal app instead"]
    )
    def test_signal_mention(self, content):
        result = moderate_content(content)

        assert ViolationType.MESSAGING_APP in result.violation_types

    def test_street_word_without_number_is_allowed(self):
        assert moderate_content("the road is closed").allowed is True

    def test_street_word_with_number_is_an_address(self):
        result = moderate_content("I stay on road 14, come by")

        assert ViolationType.ADDRESS in result.violation_types

    def test_short_matches_are_ignored(self):
        assert moderate_content("ok wa ok").allowed is True

    def test_violations_sorted_and_unique(self):
        result = moderate_content(
            "Call 9876543210 or mail john@example.com or whatsapp"
        )

        positions = [v.position for v in result.violations]
        assert positions == sorted(positions)
        keys = [(v.position, v.type) for v in result.violations]
        assert len(keys) == len(set(keys))

    def test_many_violations_are_high_severity(self):
        result = moderate_content(
            "Call 9876543210 or mail john@example.com, "
            "whatsapp works too, or https://example.io/me"
        )

        assert len(result.violations) >= 4
        assert result.severity == ModerationSeverity.HIGH

    def test_to_dict_uses_plain_values(self):
        data = moderate_content("Call me at 9876543210").to_dict()

        assert data["allowed"] is False
        assert "phone" in data["violation_types"]
        assert data["severity"] in {"low", "medium", "high"}
        assert all(isinstance(v["type"], str) for v in data["violations"])


class TestViolationMessage:
    def test_lists_categories(self):
        message = build_violation_message(
            [ViolationType.PHONE, ViolationType.LINK]
        )
        assert "phone numbers, external links" in message
        assert message.endswith("Please use the in-app communication features.")

    def test_no_types_no_message(self):
        assert build_violation_message([]) == ""


class TestEvasion:
    """Tests for normalization and evasion heuristics."""

    def test_normalize_strips_zero_width_and_collapses_spaces(self):
        assert normalize_for_detection("a\u200bb   c\n\td") == "ab c d"

    def test_normalize_maps_cyrillic_lookalikes(self):
        assert normalize_for_detection("сар") == "cap"

    def test_zero_width_split_phone_is_caught(self):
        result = moderate_content_enhanced("call 98765\u200b43210")

        assert result.allowed is False
        assert ViolationType.PHONE in result.violation_types

    @pytest.mark.parametrize(
        "content",
        ["9 8 7 6 5", "Привет", "john а mail"],
    )
    def test_evasion_heuristics(self, content):
        assert detect_evasion_attempt(content) is True

    def test_plain_text_is_not_evasion(self):
        assert detect_evasion_attempt("Thanks, the outline looks good") is False

    def test_evasion_without_pattern_match_is_blocked(self):
        result = moderate_content_enhanced(
            "Привет друг"
        )

        assert result.allowed is False
        assert result.evasion_detected is True
        assert result.severity == ModerationSeverity.MEDIUM
        assert result.message == EVASION_MESSAGE

    def test_clean_text_passes_enhanced(self):
        result = moderate_content_enhanced("Thanks, the outline looks good")

        assert result.allowed is True
        assert result.evasion_detected is False
