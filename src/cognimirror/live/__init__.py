"""Live metrics module.

- source: observable session data (one-shot fetch + subscriptions)
- tracker: loading -> success|error state per (user, game) filter
"""
