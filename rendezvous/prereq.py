# Copyright 2012-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Checks for our dependencies. We require python 3.7 or greater and the
cryptography module for anything involving keys...

* cryptography module

  * decoding and encoding RSA public keys
  * signing descriptors with a private key

::

  check_requirements - checks for minimum requirements for running rendezvous
  is_crypto_available - checks if the cryptography module is available
"""

import sys

CRYPTO_UNAVAILABLE = "Unable to import the cryptography module. Because of this we'll be unable to read or write hidden service keys. You can get cryptography from: https://pypi.org/project/cryptography/"


def check_requirements() -> None:
  """
  Checks that we meet the minimum requirements to run rendezvous. If we don't
  then this raises an ImportError with the issue.

  :raises: **ImportError** with the problem if we don't meet our requirements
  """

  major_version, minor_version = sys.version_info[0:2]

  if major_version < 3 or (major_version == 3 and minor_version < 7):
    raise ImportError('rendezvous requires python version 3.7 or greater')


def is_crypto_available() -> bool:
  """
  Checks if the cryptography functions we use are available. These are needed
  to decode the RSA keys within hidden service descriptors.

  :returns: **True** if we can use the cryptography module and **False**
    otherwise
  """

  try:
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if not hasattr(rsa.RSAPublicKey, 'public_numbers'):
      raise ImportError()

    return True
  except ImportError:
    from rendezvous.util import log
    log.log_once('rendezvous.prereq.is_crypto_available', log.INFO, CRYPTO_UNAVAILABLE)
    return False
