# Copyright 2011-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Unit tests for the rendezvous library. Helpers include...

::

  mocking - constructors for keys, introduction points, and descriptors
  arguments - commandline argument parsing for run_tests.py
"""

import os

__all__ = [
  'arguments',
  'mocking',
]

# We make some paths relative to our base directory (the one above us) rather
# than the process' cwd. This doesn't end with a slash.

RENDEZVOUS_BASE = os.path.sep.join(__file__.split(os.path.sep)[:-2])

# Test classes that run_tests.py runs, in order. Lower level modules come
# first so their failures are reported before what depends on them.

UNIT_TESTS = (
  'test.unit.util.TestBaseUtil',
  'test.unit.util.enum.TestEnum',
  'test.unit.util.str_tools.TestStrTools',
  'test.unit.util.connection.TestConnection',
  'test.unit.util.log.TestLog',
  'test.unit.descriptor.descriptor.TestDescriptor',
  'test.unit.descriptor.keys.TestKeys',
  'test.unit.descriptor.identifiers.TestIdentifiers',
  'test.unit.descriptor.introduction_point.TestIntroductionPoint',
  'test.unit.descriptor.hidden_service.TestHiddenServiceDescriptor',
)
