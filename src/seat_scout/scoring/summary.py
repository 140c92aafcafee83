"""Plain-text rendering of a score, for chat bots and the CLI."""

from __future__ import annotations

from seat_scout.models.admission import ScoreResult


def format_summary(result: ScoreResult) -> str:
    lines: list[str] = [
        f"{result.facilityName}: admission probability {result.probability:.1f}% "
        f"(grade {result.grade}, confidence {round(result.confidence * 100)}%)",
        "",
        "Factors:",
    ]
    for key, factor in result.factors.items():
        marker = " (estimated)" if factor.kind == "estimated" else ""
        lines.append(f"• {key.value}: {factor.score:.0f}/100{marker} – {factor.description}")

    lines.append("")
    lines.append(
        f"Expected wait: about {result.estimatedMonths} months "
        f"(80% within {result.estimatedMonths80th} months)"
    )
    if result.similarCases:
        admitted = sum(1 for c in result.similarCases if c.result == "admitted")
        lines.append(f"Similar cases: {len(result.similarCases)} ({admitted} admitted)")

    lines.append("")
    lines.append("Next steps:")
    lines.extend(f"• {rec}" for rec in result.recommendations)
    return "\n".join(lines)
