"""
Services Layer

Tournament engine logic that:
- Accepts domain inputs (IDs, sessions, plain values)
- Returns domain outputs (models, dataclasses, dicts)
- Does NOT depend on HTTP request/response objects
- Raises errors from beachvolley.services.errors, never HTTPException
"""
