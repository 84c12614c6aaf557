"""
Unit tests for the rendezvous library.
"""

__all__ = [
  'descriptor',
  'util',
]
