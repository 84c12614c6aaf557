# Copyright 2015-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Library for creating and reading tor's version 2 hidden service descriptors.

Hidden services don't pick the identifiers they're published under. Rather,
each is derived from the service's permanent key and the current day so
clients that only know a service's '.onion' address can compute the same
lookup key the service published with.

**Module Overview:**

::

  rendezvous.descriptor - tokenizing and pgp style block helpers
    |- identifiers - permanent id, secret-id-part and descriptor id derivation
    |- keys - RSA public key encoding and signing hooks
    |- introduction_point - introduction-point records
    +- hidden_service - version 2 hidden service descriptors

  rendezvous.util - logging, string and address utilities
"""

__version__ = '1.0.0'
__author__ = 'Damian Johnson'
__contact__ = 'atagar@torproject.org'
__url__ = 'https://pypi.org/project/rendezvous/'
__license__ = 'LGPLv3'

__all__ = [
  'descriptor',
  'prereq',
  'util',
]
