"""API module for CogniMirror.

API layer:
- Validates inputs, reads/writes DB through the repository
- Returns payloads for the dashboard UI
- Forbidden: metric arithmetic (lives in cognimirror.aggregation)
"""
