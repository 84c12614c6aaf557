# Copyright 2015-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Reading and writing Tor hidden service descriptors as described in Tor's
`version 2 rend-spec
<https://gitweb.torproject.org/torspec.git/tree/rend-spec-v2.txt>`_.

Unlike other descriptor types these describe a hidden service rather than a
relay. They're created by the service, signed with its permanent key, and
published to relays with the HSDir flag under a descriptor id that rotates
each day.

Signatures are made over the exact bytes that
:func:`~rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2.body`
provides, so its layout is part of the protocol. We don't check signatures
when parsing.

::

  import rendezvous.descriptor.keys
  from rendezvous.descriptor.hidden_service import HiddenServiceDescriptorV2
  from rendezvous.descriptor.keys import KeyMaterial

  desc = HiddenServiceDescriptorV2.new(KeyMaterial.from_key(private_key), introduction_points, replica = 0)
  content = desc.sign(rendezvous.descriptor.keys.create_signer(private_key))

  descriptors, remainder = HiddenServiceDescriptorV2.parse_all(content)

**Module Overview:**

::

  parse_file - Iterates over the hidden service descriptors in a file.

  HiddenServiceDescriptorV2 - Version 2 hidden service descriptor.
    |- new - creates a descriptor for the current time period
    |- parse_all - reads the descriptors within a document
    |- body - unsigned content of the descriptor
    |- digest - digest of our unsigned content
    |- sign - signs the descriptor, providing its content
    |- permanent_id - identity of the hidden service
    +- onion_address - address of the hidden service

  SigningFailure - Unable to sign a descriptor.
"""

import datetime
import time

import rendezvous.descriptor
import rendezvous.descriptor.identifiers
import rendezvous.util
import rendezvous.util.str_tools

from rendezvous.descriptor import (
  ENTRIES,
  _block_for_keyword,
  _descriptor_records,
  _record_label,
  _value,
)

from rendezvous.descriptor.identifiers import DEFAULT_DIGEST
from rendezvous.descriptor.introduction_point import IntroductionPoint
from rendezvous.descriptor.keys import KEY_BLOCK_TYPE, KeyMaterial, _key_der
from rendezvous.util import log

from typing import Any, BinaryIO, Callable, Iterator, List, Optional, Sequence, Tuple, Union

MARKER = 'rendezvous-service-descriptor'

DESCRIPTOR_VERSION = 2
PROTOCOL_VERSIONS = (2, 3)
IDENTIFIER_LENGTH = 20
PUBLICATION_INTERVAL = 3600  # publication times are rounded down to the hour

INTRODUCTION_POINTS_BLOCK_TYPE = 'MESSAGE'
SIGNATURE_BLOCK_TYPE = 'SIGNATURE'

# fields that can only appear once

SINGLE_FIELDS = (
  'rendezvous-service-descriptor',
  'version',
  'permanent-key',
  'secret-id-part',
  'publication-time',
  'protocol-versions',
  'introduction-points',
  'signature',
)


class SigningFailure(Exception):
  """
  Our signing function didn't provide a signature.
  """


def parse_file(descriptor_file: Union[str, BinaryIO], warnings: Optional[List[str]] = None) -> Iterator['rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2']:
  """
  Iterates over the hidden service descriptors in a file. Malformed
  descriptors are skipped, as with
  :func:`~rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2.parse_all`.

  :param descriptor_file: path or file opened in binary mode
  :param warnings: list our reasons for skipping content are appended to

  :returns: iterator for :class:`~rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2`
    instances in the file

  :raises: **IOError** if the file can't be read
  """

  if isinstance(descriptor_file, str):
    with open(descriptor_file, 'rb') as opened_file:
      content = opened_file.read()
  else:
    content = descriptor_file.read()

  descriptors, remainder = HiddenServiceDescriptorV2.parse_all(content, warnings)

  if remainder:
    log.skipped('Hidden service descriptors ended with %i bytes of unparsed content' % len(remainder), warnings)

  for desc in descriptors:
    yield desc


def _parse_identifier(keyword: str, value: str) -> bytes:
  identifier = rendezvous.util.str_tools._decode_b32(value)

  if len(identifier) != IDENTIFIER_LENGTH:
    raise ValueError('%s should be a %i byte value, but was %i bytes: %s %s' % (keyword, IDENTIFIER_LENGTH, len(identifier), keyword, value))

  return identifier


def _parse_int(keyword: str, value: str) -> int:
  if not value.isdigit() or not value.isascii():
    raise ValueError('%s line must have a numeric value: %s %s' % (keyword, keyword, value))

  return int(value)


def _parse_protocol_versions(value: str) -> List[int]:
  try:
    versions = [_parse_int('protocol-versions', entry) for entry in value.split(',')]
  except ValueError:
    raise ValueError('protocol-versions line has non-numeric versions: protocol-versions %s' % value)

  for v in versions:
    if v <= 0:
      raise ValueError('protocol-versions must be positive integers: %s' % value)

  return versions


def _parse_introduction_points(entries: ENTRIES, warnings: Optional[List[str]]) -> List[IntroductionPoint]:
  # Problems within this block only lose us introduction points, never the
  # descriptor itself.

  try:
    content = _block_for_keyword('introduction-points', entries, INTRODUCTION_POINTS_BLOCK_TYPE)
  except ValueError as exc:
    log.skipped('Unable to read introduction-points: %s' % exc, warnings)

    return []

  introduction_points, remainder = IntroductionPoint.parse_all(content, warnings)

  if remainder:
    log.debug('Discarding %i bytes of unparsed introduction-points content' % len(remainder))

  return introduction_points


class HiddenServiceDescriptorV2(object):
  """
  Version 2 hidden service descriptor.

  :var bytes descriptor_id: identifier this descriptor is published under
  :var int version: hidden service descriptor version
  :var KeyMaterial permanent_key: long term key of the hidden service
  :var bytes secret_id_part: hash of the time period, cookie, and replica
    values so our descriptor_id can be validated
  :var datetime published: time in UTC when this descriptor was made, rounded
    down to the hour
  :var list protocol_versions: **int** versions that are supported when
    establishing a connection
  :var list introduction_points: :class:`~rendezvous.descriptor.introduction_point.IntroductionPoint`
    where this service can be reached
  :var bytes signature: signature of the descriptor content, **None** if
    unsigned
  """

  def __init__(self, descriptor_id: bytes, version: int, permanent_key: KeyMaterial, secret_id_part: Optional[bytes] = None, published: Optional[datetime.datetime] = None, protocol_versions: Optional[Sequence[int]] = None, introduction_points: Optional[Sequence[IntroductionPoint]] = None, signature: Optional[bytes] = None) -> None:
    self.descriptor_id = descriptor_id
    self.version = version
    self.permanent_key = permanent_key
    self.secret_id_part = secret_id_part
    self.published = published
    self.protocol_versions = list(protocol_versions) if protocol_versions is not None else []
    self.introduction_points = list(introduction_points) if introduction_points is not None else []
    self.signature = signature

  @staticmethod
  def new(permanent_key: KeyMaterial, introduction_points: Sequence[IntroductionPoint], replica: int, unix_time: Optional[int] = None, descriptor_cookie: Optional[bytes] = None) -> 'rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2':
    """
    Creates a descriptor for a hidden service. Its identifiers are derived for
    the given time and replica.

    :param permanent_key: long term key of the hidden service
    :param introduction_points: introduction points to advertise, these are
      copied so later changes to the list don't affect us
    :param replica: replica index, tor publishes replicas 0 and 1
    :param unix_time: time to make the descriptor for, the current time if
      **None**
    :param descriptor_cookie: optional secret shared with authorized clients

    :returns: unsigned :class:`~rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2`

    :raises: **ValueError** if the replica is out of range
    """

    if unix_time is None:
      unix_time = int(time.time())

    unix_time = int(unix_time)

    permanent_id = rendezvous.descriptor.identifiers.permanent_id(permanent_key)
    secret_id_part = rendezvous.descriptor.identifiers.secret_id_part(permanent_id, unix_time, replica, descriptor_cookie)
    descriptor_id = rendezvous.descriptor.identifiers.descriptor_id(permanent_id, secret_id_part)

    published_unix = unix_time - unix_time % PUBLICATION_INTERVAL
    published = datetime.datetime.fromtimestamp(published_unix, datetime.timezone.utc).replace(tzinfo = None)

    return HiddenServiceDescriptorV2(
      descriptor_id = descriptor_id,
      version = DESCRIPTOR_VERSION,
      permanent_key = permanent_key,
      secret_id_part = secret_id_part,
      published = published,
      protocol_versions = PROTOCOL_VERSIONS,
      introduction_points = introduction_points,
    )

  @staticmethod
  def parse_all(content: Union[str, bytes], warnings: Optional[List[str]] = None) -> Tuple[List['rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2'], bytes]:
    """
    Reads the hidden service descriptors within a document. Malformed
    descriptors are skipped rather than failing the whole batch, and so are
    malformed introduction points within a descriptor. Each that we skip is
    logged at the INFO runlevel and, if provided, appended to **warnings**.

    Descriptor identifiers are taken as-is. We don't check that they match
    the permanent key, nor do we validate the signature.

    :param content: document with hidden service descriptors
    :param warnings: list our reasons for skipping content are appended to

    :returns: **tuple** of the form (descriptors, remainder) where the
      remainder is **bytes** of trailing content we couldn't consume
    """

    descriptors = []
    records, remainder = _descriptor_records(content, MARKER)

    for entries in records:
      try:
        descriptors.append(HiddenServiceDescriptorV2._from_entries(entries, warnings))
      except ValueError as exc:
        log.skipped('Skipping %s: %s' % (_record_label(entries, (MARKER,)), exc), warnings)

    return descriptors, remainder

  @staticmethod
  def _from_entries(entries: ENTRIES, warnings: Optional[List[str]]) -> 'rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2':
    """
    Provides the descriptor for a tokenized record.

    :raises: **ValueError** if the record is malformed
    """

    if MARKER not in entries:
      raise ValueError("Content is not a hidden service descriptor, it lacks a '%s' line" % MARKER)

    for keyword in SINGLE_FIELDS:
      if keyword in entries and len(entries[keyword]) > 1:
        raise ValueError("The '%s' entry can only appear once in a hidden service descriptor" % keyword)

    descriptor_id = _parse_identifier(MARKER, _value(MARKER, entries))

    if 'version' not in entries:
      raise ValueError("Hidden service descriptor must have a 'version' entry")

    version = _parse_int('version', _value('version', entries))
    permanent_key = KeyMaterial.from_der(_block_for_keyword('permanent-key', entries, KEY_BLOCK_TYPE))

    secret_id_part, published, protocol_versions = None, None, []

    if 'secret-id-part' in entries:
      secret_id_part = _parse_identifier('secret-id-part', _value('secret-id-part', entries))

    if 'publication-time' in entries:
      value = _value('publication-time', entries)

      try:
        published = rendezvous.util.str_tools._parse_timestamp(value)
      except ValueError:
        raise ValueError("Timestamp on publication-time line wasn't parsable: publication-time %s" % value)

    if 'protocol-versions' in entries:
      protocol_versions = _parse_protocol_versions(_value('protocol-versions', entries))

    if 'introduction-points' in entries:
      introduction_points = _parse_introduction_points(entries, warnings)
    else:
      introduction_points = []

    if 'signature' not in entries:
      raise ValueError("Hidden service descriptor lacks a 'signature' entry")

    signature = _block_for_keyword('signature', entries, SIGNATURE_BLOCK_TYPE)

    if not signature:
      raise ValueError('Hidden service descriptor has an empty signature')

    return HiddenServiceDescriptorV2(
      descriptor_id = descriptor_id,
      version = version,
      permanent_key = permanent_key,
      secret_id_part = secret_id_part,
      published = published,
      protocol_versions = protocol_versions,
      introduction_points = introduction_points,
      signature = signature,
    )

  def body(self) -> bytes:
    """
    Provides our unsigned content, ending with a bare 'signature' line. This is
    what we sign so the layout, including every newline, is fixed.

    :returns: **bytes** with our unsigned descriptor content

    :raises: **ValueError** if our attributes can't be encoded
    """

    for attr in ('descriptor_id', 'secret_id_part'):
      value = getattr(self, attr)

      if not isinstance(value, bytes) or len(value) != IDENTIFIER_LENGTH:
        raise ValueError('Descriptor %s must be %i bytes: %r' % (attr, IDENTIFIER_LENGTH, value))

    if not isinstance(self.version, int):
      raise ValueError('Descriptor version must be an integer: %r' % (self.version,))
    elif not isinstance(self.published, datetime.datetime):
      raise ValueError('Descriptor publication time must be a datetime: %r' % (self.published,))

    permanent_key = _key_der(self.permanent_key, 'permanent-key')

    content = rendezvous.util.str_tools._to_bytes(''.join([
      '%s %s\n' % (MARKER, rendezvous.util.str_tools._encode_b32(self.descriptor_id)),
      'version %i\n' % self.version,
    ]))

    content += b'permanent-key\n' + rendezvous.descriptor._pgp_block(KEY_BLOCK_TYPE, permanent_key)

    content += rendezvous.util.str_tools._to_bytes(''.join([
      'secret-id-part %s\n' % rendezvous.util.str_tools._encode_b32(self.secret_id_part),
      'publication-time %s\n' % rendezvous.util.str_tools._format_timestamp(self.published),
      'protocol-versions %s\n' % ','.join(['%i' % v for v in sorted(self.protocol_versions)]),
    ]))

    if self.introduction_points:
      introduction_points = IntroductionPoint.serialize_all(self.introduction_points)
      content += b'introduction-points\n' + rendezvous.descriptor._pgp_block(INTRODUCTION_POINTS_BLOCK_TYPE, introduction_points)

    return content + b'signature\n'

  def digest(self, algorithm: str = DEFAULT_DIGEST) -> bytes:
    """
    Provides the digest of our unsigned content.

    :param algorithm: hashlib name of the digest to use

    :returns: **bytes** with the digest of our body

    :raises: **ValueError** if our attributes can't be encoded
    """

    return rendezvous.descriptor.identifiers.body_digest(self.body(), algorithm)

  def sign(self, sign_func: Callable[[bytes], bytes], algorithm: str = DEFAULT_DIGEST) -> bytes:
    """
    Signs this descriptor, providing the content to publish. Our signing
    function is given the digest of our body, and exceptions it raises are
    propagated to our caller.

    :param sign_func: provides the signature for a digest
    :param algorithm: hashlib name of the digest to use

    :returns: **bytes** with our body followed by its signature

    :raises:
      * **ValueError** if our attributes can't be encoded
      * **SigningFailure** if our signing function doesn't provide a signature
    """

    content = self.body()
    digest = rendezvous.descriptor.identifiers.body_digest(content, algorithm)
    signature = sign_func(digest)

    if not isinstance(signature, bytes):
      raise SigningFailure('Signing should provide bytes, but was a %s' % type(signature).__name__)
    elif not signature:
      raise SigningFailure('Signing provided an empty signature')

    self.signature = signature
    return content + rendezvous.descriptor._pgp_block(SIGNATURE_BLOCK_TYPE, signature)

  def permanent_id(self) -> bytes:
    """
    Provides the identity of this hidden service.

    :returns: **bytes** with the service's permanent id
    """

    return rendezvous.descriptor.identifiers.permanent_id(self.permanent_key)

  def onion_address(self) -> str:
    """
    Provides the address of this hidden service.

    :returns: **str** with the service's address, including its '.onion' suffix
    """

    return rendezvous.descriptor.identifiers.onion_address(self.permanent_key) + '.onion'

  def __hash__(self) -> int:
    return rendezvous.util._hash_attr(self, 'descriptor_id', 'version', 'permanent_key', 'secret_id_part', 'published', 'protocol_versions', 'introduction_points', 'signature')

  def __eq__(self, other: Any) -> bool:
    return hash(self) == hash(other) if isinstance(other, HiddenServiceDescriptorV2) else False

  def __ne__(self, other: Any) -> bool:
    return not self == other

  def __repr__(self) -> str:
    descriptor_id = rendezvous.util.str_tools._encode_b32(self.descriptor_id) if isinstance(self.descriptor_id, bytes) else self.descriptor_id
    return '<HiddenServiceDescriptorV2 %s, %i introduction points>' % (descriptor_id, len(self.introduction_points))
