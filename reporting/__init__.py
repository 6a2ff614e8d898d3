"""
Reporting Engine - Application Package

Tabular report engine and payroll data pipeline.
"""

__version__ = "1.0.0"
