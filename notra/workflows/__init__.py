"""Workflows that turn triggers and brand analysis requests into stored content."""

from notra.workflows.brand_analysis import analyze_brand, analyze_brand_safely
from notra.workflows.schedule import run_trigger, run_trigger_safely

__all__ = [
    "analyze_brand",
    "analyze_brand_safely",
    "run_trigger",
    "run_trigger_safely",
]
