"""Plain-text rendering of protection verdicts"""

from .models import ProtectionVerdict, Recommendation

_STATUS = {
    Recommendation.EXECUTE: "Order looks good",
    Recommendation.WARNING: "Proceed with caution",
    Recommendation.REJECT: "Order not recommended",
}


def format_protection_summary(verdict: ProtectionVerdict, price_precision: int = 4) -> str:
    """
    Render a verdict as a short multi-line summary for the user.

    Args:
        verdict: Verdict to render
        price_precision: Decimal places for prices

    Returns:
        Summary text, status line first
    """
    lines = [
        f"[{verdict.recommendation.value}] {_STATUS[verdict.recommendation]}",
        f"Estimated Price: {verdict.estimated_price:.{price_precision}f}",
        f"Price Impact: {verdict.price_impact * 100:.2f}%",
        f"Slippage: {verdict.slippage_bps:.1f} bps",
    ]

    if verdict.estimated_price > 0:
        lines.append(
            f"Protective Band: {verdict.min_price:.{price_precision}f} - "
            f"{verdict.max_price:.{price_precision}f}"
        )

    if verdict.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"- {warning}" for warning in verdict.warnings)

    if verdict.requires_confirmation:
        lines.append("")
        lines.append("Confirmation required before submitting.")

    return "\n".join(lines)
