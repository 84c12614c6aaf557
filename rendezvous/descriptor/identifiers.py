# Copyright 2015-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Identifiers that version 2 hidden service descriptors are published under, as
described in section 1.3 of Tor's `rend-spec
<https://gitweb.torproject.org/torspec.git/tree/rend-spec-v2.txt>`_...

::

  permanent-id = H(public-key)[:10]
  time-period = (current-time + permanent-id-byte * 86400 / 256) / 86400
  secret-id-part = H(time-period | descriptor-cookie | replica)
  descriptor-id = H(permanent-id | secret-id-part)

Services don't choose these. Anyone who knows a service's onion address (the
base32 encoded permanent id) can derive the descriptor ids it's currently
published under. The first byte of the permanent id staggers when each service
rotates so they don't all change at the same instant.

All of these are pure functions of their input. Time is always an explicit
unix timestamp.

**Module Overview:**

::

  permanent_id - identity a hidden service's key derives
  onion_address - address of a hidden service
  permanent_id_for_address - permanent id for an onion address
  time_period - day a timestamp falls within for a service
  secret_id_part - rotating part of the descriptor id
  descriptor_id - identifier a descriptor is published under
  descriptor_ids - identifiers of every replica
  body_digest - digest of descriptor content that's signed
"""

import hashlib
import struct

import rendezvous.util.str_tools

from rendezvous.descriptor.keys import KeyMaterial

from typing import List, Optional, Union

PERMANENT_ID_LENGTH = 10
TIME_PERIOD_LENGTH = 86400  # seconds in a day
NUMBER_OF_REPLICAS = 2
DEFAULT_DIGEST = 'sha1'

MAX_TIME_PERIOD = 0xFFFFFFFF


def _hash(*content: bytes) -> bytes:
  return hashlib.sha1(b''.join(content)).digest()


def permanent_id(key: KeyMaterial) -> bytes:
  """
  Provides the identity of a hidden service, the first ten bytes of its
  permanent key's fingerprint.

  :param key: permanent key of the hidden service

  :returns: **bytes** with the service's permanent id
  """

  return key.fingerprint()[:PERMANENT_ID_LENGTH]


def onion_address(key_or_id: Union[KeyMaterial, bytes]) -> str:
  """
  Provides the address of a hidden service, without its '.onion' suffix.

  ::

    >>> onion_address(permanent_id(duckduckgo_key))
    '3g2upl4pq6kufc4m'

  :param key_or_id: permanent key or permanent id of the service

  :returns: **str** with the service's address
  """

  if isinstance(key_or_id, KeyMaterial):
    key_or_id = permanent_id(key_or_id)

  return rendezvous.util.str_tools._encode_b32(key_or_id)


def permanent_id_for_address(address: str) -> bytes:
  """
  Provides the permanent id a hidden service address encodes. This is all a
  client needs to derive the service's descriptor ids.

  :param address: onion address, with or without its '.onion' suffix

  :returns: **bytes** with the service's permanent id

  :raises: **ValueError** if this isn't a version 2 hidden service address
  """

  if address.endswith('.onion'):
    address = address[:-6]

  if len(address) != 16:
    raise ValueError("'%s' isn't a version 2 hidden service address" % address)

  return rendezvous.util.str_tools._decode_b32(address)


def time_period(permanent_id: bytes, unix_time: int) -> int:
  """
  Provides the day a timestamp falls within for a service. This is offset by
  the service's first permanent id byte so periods end at a different time of
  day for each service.

  :param permanent_id: permanent id of the service
  :param unix_time: seconds since the epoch

  :returns: **int** time period, an unsigned 32 bit value

  :raises: **ValueError** if the permanent id is empty
  """

  if not permanent_id:
    raise ValueError('Permanent id must be provided to derive a time period')

  offset = permanent_id[0] * TIME_PERIOD_LENGTH // 256
  return ((int(unix_time) + offset) // TIME_PERIOD_LENGTH) & MAX_TIME_PERIOD


def secret_id_part(permanent_id: bytes, unix_time: int, replica: int, descriptor_cookie: Optional[bytes] = None) -> bytes:
  """
  Provides the part of a descriptor id that rotates each day.

  :param permanent_id: permanent id of the service
  :param unix_time: seconds since the epoch
  :param replica: replica index, a value between 0 and 255
  :param descriptor_cookie: optional secret shared with authorized clients

  :returns: **bytes** with the twenty byte secret-id-part

  :raises: **ValueError** if the replica is out of range
  """

  if not isinstance(replica, int) or not 0 <= replica <= 255:
    raise ValueError('Replica must be a single byte value, but was %s' % replica)

  period = struct.pack('>I', time_period(permanent_id, unix_time))
  return _hash(period, descriptor_cookie or b'', bytes([replica]))


def descriptor_id(permanent_id: bytes, secret_id_part: bytes) -> bytes:
  """
  Provides the identifier a descriptor is published and fetched with.

  :param permanent_id: permanent id of the service
  :param secret_id_part: rotating part of the identifier

  :returns: **bytes** with the twenty byte descriptor id
  """

  return _hash(permanent_id, secret_id_part)


def descriptor_ids(permanent_id: bytes, unix_time: int, descriptor_cookie: Optional[bytes] = None) -> List[bytes]:
  """
  Provides the descriptor id of each replica a service publishes at the given
  time.

  :param permanent_id: permanent id of the service
  :param unix_time: seconds since the epoch
  :param descriptor_cookie: optional secret shared with authorized clients

  :returns: **list** with a descriptor id for each replica
  """

  return [descriptor_id(permanent_id, secret_id_part(permanent_id, unix_time, replica, descriptor_cookie)) for replica in range(NUMBER_OF_REPLICAS)]


def body_digest(content: bytes, algorithm: str = DEFAULT_DIGEST) -> bytes:
  """
  Provides the digest of a descriptor's unsigned content. This is what the
  service signs.

  :param content: exact bytes of the unsigned descriptor
  :param algorithm: hashlib name of the digest to use

  :returns: **bytes** with the digest

  :raises: **ValueError** if the algorithm is unrecognized
  """

  return hashlib.new(algorithm, content).digest()
