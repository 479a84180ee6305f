"""
Data Ingestion Module

Handles reading and validating monthly return data:
- CSV files in ticker,date,monthly_return layout
- Normalization to canonical ReturnRecord rows
"""

__version__ = "0.1.0"
