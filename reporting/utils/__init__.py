"""
Reporting Engine - Utilities Package
"""
