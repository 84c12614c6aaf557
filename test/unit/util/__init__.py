"""
Unit tests for rendezvous.util.* contents.
"""

import unittest

from rendezvous.util import _hash_attr

__all__ = [
  'connection',
  'enum',
  'log',
  'str_tools',
]


class TestBaseUtil(unittest.TestCase):
  def test_hash_attr(self):
    class Point(object):
      def __init__(self, x, y):
        self.x = x
        self.y = y

    self.assertEqual(_hash_attr(Point(1, [2, 3]), 'x', 'y'), _hash_attr(Point(1, [2, 3]), 'x', 'y'))
    self.assertNotEqual(_hash_attr(Point(1, [2, 3]), 'x', 'y'), _hash_attr(Point(1, [3, 2]), 'x', 'y'))
    self.assertNotEqual(_hash_attr(Point(1, 2), 'x', 'y'), _hash_attr(Point(2, 1), 'x', 'y'))
