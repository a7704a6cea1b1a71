"""
Locale-keyed quiz configuration.

Responsibilities:
- Describe the quiz JSON (questions, products, page texts, Gemini block).
- Load it once at application startup into an immutable object.
- Resolve a requested locale, falling back to the first configured one.
"""
