"""
Unit tests for rendezvous.descriptor.
"""

import os

__all__ = [
  'descriptor',
  'hidden_service',
  'identifiers',
  'introduction_point',
  'keys',
]

DESCRIPTOR_TEST_DATA = os.path.join(os.path.dirname(__file__), 'data')

# attributes of duckduckgo's descriptor

DDG_ADDRESS = '3g2upl4pq6kufc4m'
DDG_DESCRIPTOR_ID = 'y3olqqblqw2gbh6phimfuiroechjjafa'
DDG_SECRET_ID_PART = 'e24kgecavwsznj7gpbktqsiwgvngsf4e'
DDG_PUBLISHED_UNIX = 1424721600  # 2015-02-23 20:00:00

DDG_INTRODUCTION_POINTS = (
  ('iwki77xtbvp6qvedfrwdzncxs3ckayeu', '178.62.222.129', 443),
  ('em4gjk6eiiualhmlyiifrzc7lbtrsbip', '46.4.174.52', 443),
  ('jqhfl364x3upe6lqnxizolewlfrsw2zy', '62.210.82.169', 443),
)


def get_resource(filename):
  """
  Provides the path for a file in our descriptor data directory.
  """

  return os.path.join(DESCRIPTOR_TEST_DATA, filename)


def read_resource(filename):
  """
  Provides test data.
  """

  with open(get_resource(filename), 'rb') as resource_file:
    return resource_file.read()
