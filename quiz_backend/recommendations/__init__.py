"""
Quiz recommendation engine.

Responsibilities:
- Evaluate per-product match rules (anyOf / allOf / not) against quiz answers.
- Score and rank matching products with a stable, deterministic order.
- Provide the tag-overlap fallback used when Gemini is unavailable.
- Reject malformed caller input before any scoring runs.
"""
