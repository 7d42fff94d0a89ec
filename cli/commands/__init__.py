"""
Layered Registry CLI Commands Package
"""

__all__ = ['asset', 'registry', 'config']
