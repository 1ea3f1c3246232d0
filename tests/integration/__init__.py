"""Integration tests for serve fusion.

These tests verify end-to-end functionality across both devices:
- Clock sync -> Impact detection -> Report delivery -> Fusion
- Fallback chain when the watch is unreachable or silent
- Event delivery to subscribers
"""
