"""Deterministic intelligence layer for shop-health analysis."""

from shop_boost.intelligence.csv_ingest import decode_csv_bytes, parse_csv_text
from shop_boost.intelligence.health_scoring import compute_shop_health_scores
from shop_boost.intelligence.job_classifier import JOB_TYPES, classify_batch, classify_one
from shop_boost.intelligence.line_candidates import build_line_candidates
from shop_boost.intelligence.suggestions import build_recommendations, build_suggestions

__all__ = [
    "JOB_TYPES",
    "build_line_candidates",
    "build_recommendations",
    "build_suggestions",
    "classify_batch",
    "classify_one",
    "compute_shop_health_scores",
    "decode_csv_bytes",
    "parse_csv_text",
]
