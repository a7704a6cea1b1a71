"""
LLM integration layer.

Responsibilities:
- Manage Gemini API configuration and credentials.
- Build prompts from quiz answers, questions and the product catalog.
- Call Gemini for a structured product recommendation.
- Validate the model output and fall back to the deterministic recommender
  when the call is disabled, fails or returns an unusable shape.
"""
