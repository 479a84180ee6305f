"""
Test Suite for annual return statistics

Includes:
- Unit tests for grouping and aggregation
- Integration tests for the CSV pipeline
- CLI smoke tests
"""
