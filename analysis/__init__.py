"""
Analysis Engine Module

Calculates annual statistics from monthly return series:
- Grouping of returns by (ticker, calendar year)
- Highest monthly return per year
- Maximum draw-up (trough to later peak) per year
"""

__version__ = "0.1.0"
