"""Pure mappings from metric counts to state updates and the digest text."""

from __future__ import annotations

from html import escape as html_escape

from review_counter.core.config import DigestConfig, StateConfig
from review_counter.core.types import DigestMessage, Severity, StateUpdate


def severity_for(value: int, state: StateConfig) -> Severity:
    """Map a counter value to a severity.

    Zero is always ``normal``; a non-zero value gets the state's configured
    severity (``warning`` by default), escalated to ``alert`` above
    ``alert_above``.
    """
    if state.alert_above is not None and value > state.alert_above:
        return Severity.ALERT
    if value > 0:
        return state.severity
    return Severity.NORMAL


def build_state_update(state: StateConfig, counts: dict[str, int]) -> StateUpdate:
    """Build the update for *state*; its value is the sum of its metrics."""
    value = sum(counts[m] for m in state.metrics)
    return StateUpdate(
        key=state.key,
        title=state.title,
        value=value,
        severity=severity_for(value, state),
        link=state.link,
    )


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def build_digest(
    review_count: int,
    blockers: list[StateUpdate],
    config: DigestConfig,
) -> DigestMessage:
    """Build the daily digest from the review count and blocking counters.

    Only blockers with a non-zero value are mentioned.
    """
    active = [b for b in blockers if b.value > 0]

    verb = "is" if review_count == 1 else "are"
    review_text = f"{_plural(review_count, 'PR')} awaiting review"
    plain_lines = [f"Good morning! There {verb} {review_text}."]
    html = (
        f'Good morning! There {verb} <a href="{html_escape(config.review_link)}">'
        f"{html_escape(review_text)}</a>."
    )

    if active:
        plain_lines.append("Blocking:")
        items: list[str] = []
        for b in active:
            plain_lines.append(f"- {b.title}: {b.value}")
            label = html_escape(b.title)
            if b.link:
                label = f'<a href="{html_escape(b.link)}">{label}</a>'
            items.append(f"<li>{label}: {b.value}</li>")
        html += "<br><b>Blocking:</b><ul>" + "".join(items) + "</ul>"

    return DigestMessage(plain_body="\n".join(plain_lines), formatted_body=html)
