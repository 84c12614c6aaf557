# Copyright 2012-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Toolkit for the string conversions descriptors need. These are internal
helpers and may change without notice.

**Module Overview:**

::

  _to_bytes - ASCII bytes for a string
  _to_unicode - unicode string for ASCII bytes
  _split_by_length - chunks a string into equally sized pieces

  _encode_b32 - lowercase, unpadded base32 as tor writes identifiers
  _decode_b32 - inverse of _encode_b32
  _decode_b64 - strict base64 decoding

  _parse_timestamp - datetime for a 'YYYY-MM-DD HH:MM:SS' timestamp
  _format_timestamp - 'YYYY-MM-DD HH:MM:SS' timestamp for a datetime
"""

import base64
import binascii
import codecs
import datetime
import re

from typing import List, Union, overload

_timestamp_re = re.compile(r'^(\d{4})-(\d{2})-(\d{2}) (\d{2}):(\d{2}):(\d{2})$')
_base32_re = re.compile('^[a-zA-Z2-7]+$')

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def _to_bytes(msg: Union[str, bytes]) -> bytes:
  """
  Provides the ASCII bytes for the given string.

  :param msg: string to be converted

  :returns: ASCII bytes for string
  """

  if isinstance(msg, str):
    return codecs.latin_1_encode(msg, 'replace')[0]  # type: ignore
  else:
    return msg


def _to_unicode(msg: Union[str, bytes]) -> str:
  """
  Provides the unicode string for the given ASCII bytes.

  :param msg: string to be converted

  :returns: unicode conversion
  """

  if msg is not None and not isinstance(msg, str):
    return msg.decode('utf-8', 'replace')
  else:
    return msg


@overload
def _split_by_length(msg: bytes, size: int) -> List[bytes]:
  ...


@overload
def _split_by_length(msg: str, size: int) -> List[str]:
  ...


def _split_by_length(msg, size):
  """
  Splits a string into a list of strings up to the given size.

  ::

    >>> _split_by_length('hello', 2)
    ['he', 'll', 'o']

  :param msg: string to split
  :param size: number of characters to chunk into

  :returns: **list** with chunked string components
  """

  return [msg[i:i + size] for i in range(0, len(msg), size)]


def _encode_b32(msg: bytes) -> str:
  """
  Base32 encoding as tor uses it for identifiers, that is to say lowercase
  and without padding.

  ::

    >>> _encode_b32(b'\\xd9\\xb5G\\xaf\\x8f\\x87\\x95B\\x8b\\x8c')
    '3g2upl4pq6kufc4m'

  :param msg: bytes to be encoded

  :returns: **str** with the base32 encoding
  """

  return _to_unicode(base64.b32encode(msg)).rstrip('=').lower()


def _decode_b32(msg: Union[str, bytes]) -> bytes:
  """
  Decodes tor's base32 identifiers, case insensitively and without padding
  concerns.

  :param msg: base32 content to be decoded

  :returns: **bytes** that were encoded

  :raises: **ValueError** if this isn't base32 content
  """

  msg = _to_unicode(msg)

  if not msg or not _base32_re.match(msg):
    raise ValueError("'%s' isn't base32 encoded" % msg)

  try:
    return base64.b32decode(msg.upper() + '=' * (-len(msg) % 8))
  except binascii.Error as exc:
    raise ValueError("'%s' isn't base32 encoded: %s" % (msg, exc))


def _decode_b64(msg: Union[str, bytes]) -> bytes:
  """
  Base64 decoding that rejects characters outside the alphabet rather than
  ignoring them.

  :param msg: base64 content to be decoded

  :returns: **bytes** that were encoded

  :raises: **ValueError** if this isn't base64 content
  """

  try:
    return base64.b64decode(_to_bytes(msg), validate = True)
  except binascii.Error as exc:
    raise ValueError('Content is not base64 encoded: %s' % exc)


def _parse_timestamp(entry: Union[str, bytes]) -> datetime.datetime:
  """
  Parses the date and time that in format like like...

  ::

    2012-11-08 16:48:41

  :param entry: timestamp to be parsed

  :returns: naive **datetime** in utc for the time represented by the timestamp

  :raises: **ValueError** if the timestamp is malformed
  """

  if not isinstance(entry, (bytes, str)):
    raise ValueError('parse_timestamp() input must be a str, got a %s' % type(entry))

  entry = _to_unicode(entry)

  try:
    time = [int(x) for x in _timestamp_re.match(entry).groups()]
  except AttributeError:
    raise ValueError('Expected timestamp in format YYYY-MM-DD HH:MM:SS but got ' + entry)

  return datetime.datetime(time[0], time[1], time[2], time[3], time[4], time[5])


def _format_timestamp(timestamp: datetime.datetime) -> str:
  """
  Fixed width timestamp of the form 'YYYY-MM-DD HH:MM:SS'. Timezone aware
  datetimes are converted to utc first.

  :param timestamp: time to be formatted

  :returns: **str** with the formatted timestamp
  """

  if timestamp.tzinfo is not None:
    timestamp = timestamp.astimezone(datetime.timezone.utc)

  return '%04i-%02i-%02i %02i:%02i:%02i' % (timestamp.year, timestamp.month, timestamp.day, timestamp.hour, timestamp.minute, timestamp.second)
