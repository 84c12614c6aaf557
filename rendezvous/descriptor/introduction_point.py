# Copyright 2015-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Introduction points of a version 2 hidden service. These are relays that
clients contact to reach the service, and are listed within the descriptor's
'introduction-points' block...

::

  introduction-point iwki77xtbvp6qvedfrwdzncxs3ckayeu
  ip-address 178.62.222.129
  onion-port 443
  onion-key
  -----BEGIN RSA PUBLIC KEY-----
  MIGJAoGBAK94BEYIHZ4KdEkeyPhbLCpRW5ESg+2WPQhrM4yuKYGuq8wFWgumZYR9
  k/WA//FYXMBz0bB+ckuZs/Yu9nK+HLzpGapV0clst4GUMcBInUCzCcpjJTQsQDgm
  3/Y3cqh0W55gOCFhomQ4/1WOYg7YCjk4XYHJE20OdG2Ll5zotK6fAgMBAAE=
  -----END RSA PUBLIC KEY-----
  service-key
  -----BEGIN RSA PUBLIC KEY-----
  MIGJAoGBAJXmJb8lSydMMqCgCgfgvlB2E5rpd57kz/Aqg7/d1HKc3+l5QoUvHyuy
  ZsAlyka8Eu534hl41oqEKpAKYcMn1TM0vpJEGNVOc+05BInxI9h9f0Mg01PD0tYu
  GcLHYgBzcrfEmKwMtM8WEmcMJd7n2uffaAvJ846WubbeV7MW1YehAgMBAAE=
  -----END RSA PUBLIC KEY-----

**Module Overview:**

::

  IntroductionPoint - Introduction point of a version 2 hidden service.
    |- parse_all - reads the introduction points within a document
    |- serialize_all - document listing several introduction points
    +- serialize - document for this introduction point
"""

import rendezvous.descriptor
import rendezvous.util
import rendezvous.util.connection
import rendezvous.util.str_tools

from rendezvous.descriptor import (
  ENTRIES,
  _block_for_keyword,
  _descriptor_records,
  _record_label,
  _value,
)

from rendezvous.descriptor.keys import KEY_BLOCK_TYPE, KeyMaterial, _key_der
from rendezvous.util import log

from typing import Any, List, Optional, Sequence, Tuple, Union

IDENTITY_LENGTH = 20

MARKER = 'introduction-point'

# introduction-point fields that can only appear once

SINGLE_INTRODUCTION_POINT_FIELDS = [
  'introduction-point',
  'ip-address',
  'onion-port',
  'onion-key',
  'service-key',
]


class IntroductionPoint(object):
  """
  Introduction point for a version 2 hidden service.

  :var bytes identity: twenty byte fingerprint of this relay's identity key
  :var str address: IPv4 or IPv6 address of this introduction point
  :var int port: port where this introduction point is listening
  :var KeyMaterial onion_key: public key for communicating with this
    introduction point
  :var KeyMaterial service_key: public key for communicating with the hidden
    service through this introduction point
  """

  def __init__(self, identity: bytes, address: str, port: int, onion_key: KeyMaterial, service_key: KeyMaterial) -> None:
    self.identity = identity
    self.address = address
    self.port = port
    self.onion_key = onion_key
    self.service_key = service_key

  @staticmethod
  def parse_all(content: Union[str, bytes], warnings: Optional[List[str]] = None) -> Tuple[List['rendezvous.descriptor.introduction_point.IntroductionPoint'], bytes]:
    """
    Reads the introduction points within a document. Malformed records are
    skipped rather than failing the whole batch. Each that we skip is logged
    at the INFO runlevel and, if provided, appended to **warnings**.

    :param content: document with introduction-point records
    :param warnings: list our reasons for skipping records are appended to

    :returns: **tuple** of the form (introduction_points, remainder) where
      the remainder is **bytes** of trailing content we couldn't consume
    """

    introduction_points = []
    records, remainder = _descriptor_records(content, MARKER)

    for entries in records:
      try:
        introduction_points.append(IntroductionPoint._from_entries(entries))
      except ValueError as exc:
        log.skipped('Skipping %s: %s' % (_record_label(entries, (MARKER,)), exc), warnings)

    if remainder:
      log.debug('Introduction points ended with %i bytes of unparsed content' % len(remainder))

    return introduction_points, remainder

  @staticmethod
  def _from_entries(entries: ENTRIES) -> 'rendezvous.descriptor.introduction_point.IntroductionPoint':
    """
    Provides the introduction point for a tokenized record.

    :raises: **ValueError** if the record is malformed
    """

    if MARKER not in entries:
      raise ValueError("Content is not an introduction point, it lacks an '%s' line" % MARKER)

    for keyword in SINGLE_INTRODUCTION_POINT_FIELDS:
      if keyword in entries and len(entries[keyword]) > 1:
        raise ValueError("'%s' can only appear once in an introduction-point block, but appeared %i times" % (keyword, len(entries[keyword])))

    identity = rendezvous.util.str_tools._decode_b32(_value(MARKER, entries))

    if len(identity) != IDENTITY_LENGTH:
      raise ValueError('Introduction point identity should be %i bytes, but was %i' % (IDENTITY_LENGTH, len(identity)))

    if 'ip-address' not in entries:
      raise ValueError("Introduction point lacks an 'ip-address' line")

    address = _value('ip-address', entries)

    if not rendezvous.util.connection.is_valid_ip_address(address):
      raise ValueError("'%s' is an invalid IP address" % address)

    if 'onion-port' not in entries:
      raise ValueError("Introduction point lacks an 'onion-port' line")

    port = _value('onion-port', entries)

    if not rendezvous.util.connection.is_valid_port(port, allow_zero = True):
      raise ValueError("'%s' is an invalid port" % port)

    onion_key = KeyMaterial.from_der(_block_for_keyword('onion-key', entries, KEY_BLOCK_TYPE))
    service_key = KeyMaterial.from_der(_block_for_keyword('service-key', entries, KEY_BLOCK_TYPE))

    return IntroductionPoint(identity, address, int(port), onion_key, service_key)

  @staticmethod
  def serialize_all(introduction_points: Sequence['rendezvous.descriptor.introduction_point.IntroductionPoint']) -> bytes:
    """
    Provides a document listing the given introduction points, in order.

    :param introduction_points: introduction points to include

    :returns: **bytes** with the concatenation of each point's content

    :raises: **ValueError** if an introduction point can't be encoded
    """

    return b''.join([point.serialize() for point in introduction_points])

  def serialize(self) -> bytes:
    """
    Provides the content of this introduction point. Descriptors sign over
    this so its layout cannot vary.

    :returns: **bytes** with our introduction-point record

    :raises: **ValueError** if our attributes can't be encoded
    """

    if not isinstance(self.identity, bytes) or len(self.identity) != IDENTITY_LENGTH:
      raise ValueError('Introduction point identity must be %i bytes: %r' % (IDENTITY_LENGTH, self.identity))
    elif not rendezvous.util.connection.is_valid_ip_address(self.address):
      raise ValueError("'%s' is an invalid IP address" % self.address)
    elif not isinstance(self.port, int) or not rendezvous.util.connection.is_valid_port(self.port, allow_zero = True):
      raise ValueError("'%s' is an invalid port" % self.port)

    onion_key = _key_der(self.onion_key, 'onion-key')
    service_key = _key_der(self.service_key, 'service-key')

    lines = [
      'introduction-point %s\n' % rendezvous.util.str_tools._encode_b32(self.identity),
      'ip-address %s\n' % self.address,
      'onion-port %i\n' % self.port,
    ]

    content = rendezvous.util.str_tools._to_bytes(''.join(lines))
    content += b'onion-key\n' + rendezvous.descriptor._pgp_block(KEY_BLOCK_TYPE, onion_key)
    content += b'service-key\n' + rendezvous.descriptor._pgp_block(KEY_BLOCK_TYPE, service_key)

    return content

  def __hash__(self) -> int:
    return rendezvous.util._hash_attr(self, 'identity', 'address', 'port', 'onion_key', 'service_key')

  def __eq__(self, other: Any) -> bool:
    return hash(self) == hash(other) if isinstance(other, IntroductionPoint) else False

  def __ne__(self, other: Any) -> bool:
    return not self == other

  def __repr__(self) -> str:
    return '<IntroductionPoint %s at %s:%s>' % (rendezvous.util.str_tools._encode_b32(self.identity) if isinstance(self.identity, bytes) else self.identity, self.address, self.port)
