"""Tests for the pure counter → state / digest mappings."""

from __future__ import annotations

from review_counter.core.config import DigestConfig, StateConfig
from review_counter.core.types import Severity, StateUpdate
from review_counter.monitor.digest import build_digest, build_state_update, severity_for


def _state(**kw: object) -> StateConfig:
    defaults: dict[str, object] = {
        "key": "gh_reviews",
        "title": "Pending reviews",
        "link": "https://github.com/pulls/review-requested",
        "metrics": ["reviews"],
    }
    defaults.update(kw)
    return StateConfig(**defaults)  # type: ignore[arg-type]


def _blocker(title: str, value: int, link: str = "") -> StateUpdate:
    return StateUpdate(
        key=title.lower().replace(" ", "_"),
        title=title,
        value=value,
        severity=Severity.WARNING if value else Severity.NORMAL,
        link=link,
    )


# ── severity_for ────────────────────────────────────────────────


class TestSeverity:
    def test_zero_is_normal(self) -> None:
        assert severity_for(0, _state()) == Severity.NORMAL

    def test_positive_is_warning(self) -> None:
        assert severity_for(5, _state()) == Severity.WARNING

    def test_custom_nonzero_severity(self) -> None:
        assert severity_for(1, _state(severity=Severity.ALERT)) == Severity.ALERT

    def test_alert_threshold(self) -> None:
        st = _state(alert_above=3)
        assert severity_for(3, st) == Severity.WARNING
        assert severity_for(4, st) == Severity.ALERT

    def test_zero_stays_normal_with_alert_threshold(self) -> None:
        assert severity_for(0, _state(alert_above=0, severity=Severity.ALERT)) == Severity.NORMAL


# ── build_state_update ──────────────────────────────────────────


class TestBuildStateUpdate:
    def test_review_count_zero(self) -> None:
        update = build_state_update(_state(), {"reviews": 0})
        assert update.value == 0
        assert update.severity == Severity.NORMAL

    def test_review_count_five(self) -> None:
        update = build_state_update(_state(), {"reviews": 5})
        assert update.key == "gh_reviews"
        assert update.title == "Pending reviews"
        assert update.value == 5
        assert update.severity == Severity.WARNING
        assert update.link == "https://github.com/pulls/review-requested"

    def test_sums_multiple_metrics(self) -> None:
        st = _state(key="combined", metrics=["a", "b"])
        update = build_state_update(st, {"a": 2, "b": 3, "c": 100})
        assert update.value == 5

    def test_is_deterministic(self) -> None:
        counts = {"reviews": 4}
        assert build_state_update(_state(), counts) == build_state_update(_state(), counts)

    def test_payload_shape(self) -> None:
        payload = build_state_update(_state(), {"reviews": 2}).payload()
        assert payload == {
            "title": "Pending reviews",
            "value": 2,
            "severity": "warning",
            "link": "https://github.com/pulls/review-requested",
        }


# ── build_digest ────────────────────────────────────────────────


class TestBuildDigest:
    def test_review_count_in_body(self) -> None:
        digest = build_digest(3, [], DigestConfig())
        assert "3 PRs awaiting review" in digest.plain_body
        assert "3 PRs awaiting review" in digest.formatted_body

    def test_singular(self) -> None:
        digest = build_digest(1, [], DigestConfig())
        assert "There is 1 PR awaiting review" in digest.plain_body

    def test_review_link_in_html(self) -> None:
        cfg = DigestConfig(review_link="https://example.org/reviews")
        digest = build_digest(2, [], cfg)
        assert 'href="https://example.org/reviews"' in digest.formatted_body
        assert "https://example.org/reviews" not in digest.plain_body

    def test_no_blockers_section_when_all_zero(self) -> None:
        digest = build_digest(2, [_blocker("Release blockers", 0)], DigestConfig())
        assert "Blocking" not in digest.plain_body
        assert "Blocking" not in digest.formatted_body

    def test_nonzero_blockers_listed(self) -> None:
        blockers = [
            _blocker("Release blockers", 2, "https://example.org/blockers"),
            _blocker("Urgent column", 0),
            _blocker("Security", 1),
        ]
        digest = build_digest(0, blockers, DigestConfig())
        assert "- Release blockers: 2" in digest.plain_body
        assert "- Security: 1" in digest.plain_body
        assert "Urgent column" not in digest.plain_body
        assert '<a href="https://example.org/blockers">Release blockers</a>: 2' in digest.formatted_body
        assert "<li>Security: 1</li>" in digest.formatted_body

    def test_html_is_escaped(self) -> None:
        digest = build_digest(1, [_blocker("<script>", 1)], DigestConfig())
        assert "<script>" not in digest.formatted_body
        assert "&lt;script&gt;" in digest.formatted_body
