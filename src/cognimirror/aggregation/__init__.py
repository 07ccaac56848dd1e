"""Aggregation module for cognitive summaries.

- cognitive: pure derivation of summary + trend from session records
- summary: repository-backed report for a user/game filter
- evolution: long-run progression statistics
- cache: advisory summary cache
"""
