"""
tabular-db: run MySQL queries and read the results back as tables of strings.
"""

__version__ = "0.1.0"
