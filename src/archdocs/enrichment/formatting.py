"""Markup helpers for enrichment sections.

Coverage bars are emitted as inline HTML inside markdown list items; the
site templates style the cov-* classes.
"""

GREEN = "var(--green)"
ORANGE = "var(--orange)"
RED = "var(--red)"


def coverage_color(percentage: float) -> str:
    """Return the bar colour: green from 80%, orange above 0%, red at 0%."""
    if percentage >= 80:
        return GREEN
    if percentage > 0:
        return ORANGE
    return RED


def coverage_bar(label: str, percentage: float, tested: int, total: int) -> str:
    """Render one coverage bar row."""
    return (
        '<div class="cov-row">'
        f'<div class="cov-bar"><div class="cov-fill" style="width:{percentage:.1f}%;'
        f'background:{coverage_color(percentage)}"></div></div>'
        f'<span class="cov-pct">{percentage:.1f}%</span>'
        f'<span class="cov-label">{label}</span>'
        f'<span class="cov-ratio">({tested}/{total})</span>'
        "</div>"
    )


def tested_symbol(name: str) -> str:
    return f'<span class="cov-func"><span class="cov-check">✓</span> {name}</span>'


def untested_symbol(name: str) -> str:
    return f'<span class="cov-func"><span class="cov-x">✗</span> {name}</span>'


def bullet_list(items: list[str]) -> str:
    """Join items as markdown list entries."""
    return "\n".join(f"- {item}" for item in items)


def quoted(value: str) -> str:
    """Format a string metadata value."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
