"""CLI utilities: amount parsing and formatting."""

import argparse


def fmt_amount(v: int) -> str:
    """Format amount for display (e.g. 1,234)."""
    return f"{v:,}"


def parse_amount(text: str) -> int:
    """argparse type for amounts; accepts underscores (1_000)."""
    try:
        value = int(text.replace("_", ""), 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer amount: {text!r}") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"amount must be non-negative: {text!r}")
    return value
