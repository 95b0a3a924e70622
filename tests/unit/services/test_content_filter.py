"""
Unit tests for services.content_filter module.

Tests:
- Default denylist
- Case-insensitive substring matching
- Rejection counting
"""

from prometheus_client import REGISTRY

from nostrchat.services.content_filter import ContentValidator


def filtered_total() -> float:
    return REGISTRY.get_sample_value("nostrchat_events_total", {"outcome": "filtered"}) or 0.0


class TestContentValidator:
    def test_default_denylist(self) -> None:
        validator = ContentValidator()
        assert validator.patterns == ("tracking strings detected and removed",)
        assert not validator.is_acceptable("[tracking strings detected and removed] buy now")

    def test_accepts_clean_content(self) -> None:
        assert ContentValidator().is_acceptable("gm nostr")

    def test_case_insensitive(self) -> None:
        validator = ContentValidator(["Spam Link"])
        assert not validator.is_acceptable("click this SPAM LINK now")
        assert not validator.is_acceptable("spam link")

    def test_empty_denylist(self) -> None:
        validator = ContentValidator([])
        assert validator.is_acceptable("anything at all")

    def test_blank_patterns_ignored(self) -> None:
        assert ContentValidator(["", "bad"]).patterns == ("bad",)

    def test_empty_content(self) -> None:
        assert ContentValidator(["bad"]).is_acceptable("")

    def test_rejections_counted(self) -> None:
        validator = ContentValidator(["bad"])
        before = filtered_total()
        validator.is_acceptable("bad")
        validator.is_acceptable("good")
        validator.is_acceptable("BAD")
        assert validator.rejected_count == 2
        assert filtered_total() == before + 2
