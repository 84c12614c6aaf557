# Copyright 2012-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Package for parsing and producing hidden service descriptor content.

Descriptors are a series of 'keyword lines', each a keyword followed by an
optional value, and optionally trailed by a pseudo pgp block...

::

  onion-port 443
  onion-key
  -----BEGIN RSA PUBLIC KEY-----
  MIGJAoGBAK94BEYIHZ4KdEkeyPhbLCpRW5ESg+2WPQhrM4yuKYGuq8wFWgumZYR9
  ...
  -----END RSA PUBLIC KEY-----

A document can hold several records, each starting with a marker keyword
(such as 'introduction-point') and running until the next marker.

**Module Overview:**

::

  identifiers - permanent id, secret-id-part and descriptor id derivation
  keys - RSA public key encoding and signing hooks
  introduction_point - introduction-point records of a hidden service
  hidden_service - version 2 hidden service descriptors
"""

import base64
import collections
import re

import rendezvous.util.str_tools

from rendezvous.util import log

from typing import Dict, List, Optional, Sequence, Tuple, Union

__all__ = [
  'hidden_service',
  'identifiers',
  'introduction_point',
  'keys',
]

KEYWORD_CHAR = 'a-zA-Z0-9-'
WHITESPACE = ' \t'
KEYWORD_LINE = re.compile('^([%s]+)(?:[%s]+(.*))?$' % (KEYWORD_CHAR, WHITESPACE))
PGP_BLOCK_START = re.compile('^-----BEGIN ([%s%s]+)-----$' % (KEYWORD_CHAR, WHITESPACE))
PGP_BLOCK_END = '-----END %s-----'

# width that base64 content is wrapped to within pgp blocks

BLOCK_LINE_WIDTH = 64

ENTRY = Tuple[str, Optional[str], Optional[str]]
ENTRIES = Dict[str, List[ENTRY]]


def _value(keyword: str, entries: ENTRIES) -> str:
  return entries[keyword][0][0]


def _pgp_block(block_type: str, content: bytes) -> bytes:
  """
  Armors content within a pgp style block. Base64 lines are wrapped at 64
  characters and every line, including the last, ends with a newline...

  ::

    -----BEGIN SIGNATURE-----
    VKMmsDIUUFOrpqvcQroIZjDZTKxqNs88a4M9Te8cR/ZvS7H2nffv6iQs0tom5X4D
    cZjQLW0juUYCbgIGdxVEBnlEt2rgBSM9+1oR7EAfV1U=
    -----END SIGNATURE-----

  :param block_type: label of the block, such as 'RSA PUBLIC KEY'
  :param content: bytes to be armored

  :returns: **bytes** with the armored content
  """

  encoded = base64.b64encode(content)
  lines = [b'-----BEGIN %s-----' % block_type.encode('ascii')]
  lines += rendezvous.util.str_tools._split_by_length(encoded, BLOCK_LINE_WIDTH)
  lines.append((PGP_BLOCK_END % block_type).encode('ascii'))

  return b'\n'.join(lines) + b'\n'


def _bytes_for_block(content: str) -> bytes:
  """
  Provides the base64 decoded content of a pgp-style block.

  :param content: block to be decoded

  :returns: decoded block content

  :raises: **ValueError** if this isn't base64 encoded content
  """

  # strip the '-----BEGIN RSA PUBLIC KEY-----' header and footer

  content = ''.join(content.split('\n')[1:-1])

  return rendezvous.util.str_tools._decode_b64(content)


def _block_for_keyword(keyword: str, entries: ENTRIES, expected_block_type: str) -> bytes:
  """
  Provides the decoded pgp block that follows a keyword.

  :param keyword: keyword line the block follows
  :param entries: record to read the block from
  :param expected_block_type: label the block must have

  :returns: **bytes** with the block's decoded content

  :raises: **ValueError** if the keyword or block is missing or malformed
  """

  if keyword not in entries:
    raise ValueError("'%s' line is missing" % keyword)

  value, block_type, block_contents = entries[keyword][0]

  if not block_contents or block_type != expected_block_type:
    raise ValueError("'%s' should be followed by a %s block, but was a %s" % (keyword, expected_block_type, block_type))

  return _bytes_for_block(block_contents)


def _get_pseudo_pgp_block(remaining_lines: List[str]) -> Optional[Tuple[str, str]]:
  """
  Checks if given contents begins with a pseudo-Open-PGP-style block and, if
  so, pops it off and provides it back to the caller.

  :param remaining_lines: lines to be checked for a public key block

  :returns: **tuple** of the (block_type, content) or None if it doesn't exist

  :raises: **ValueError** if the contents starts with a key block but it's
    malformed (for instance, if it lacks an ending line)
  """

  if not remaining_lines:
    return None  # nothing left

  block_match = PGP_BLOCK_START.match(remaining_lines[0])

  if block_match:
    block_type = block_match.groups()[0]
    end_line = PGP_BLOCK_END % block_type

    if end_line not in remaining_lines:
      raise ValueError("Unterminated pgp style block (looking for '%s'):\n%s" % (end_line, '\n'.join(remaining_lines)))

    block_lines = []

    while True:
      line = remaining_lines.pop(0)
      block_lines.append(line)

      if line == end_line:
        return (block_type, '\n'.join(block_lines))
  else:
    return None


def _descriptor_records(raw_contents: Union[str, bytes], marker: str) -> Tuple[List[ENTRIES], bytes]:
  """
  Initial breakup of a document into its records. Each record is a mapping of
  'keyword => [(value, block type, block content), ...]' for its lines, and
  records are split at each line with our marker keyword.

  Content prior to the first marker forms a record of its own so callers can
  report it. Lines that aren't keyword lines are skipped, and an unterminated
  pgp block ends tokenization with everything from its keyword line onward
  provided as the unconsumed remainder.

  :param raw_contents: document content
  :param marker: keyword that starts each record

  :returns: **tuple** of the form (records, remainder) where records is a
    **list** of **OrderedDict** and remainder is **bytes** we didn't consume
  """

  if isinstance(raw_contents, str):
    raw_contents = raw_contents.encode('utf-8')

  raw_lines = raw_contents.split(b'\n')

  # byte offset where each of our lines starts

  line_offsets = []  # type: List[int]
  offset = 0

  for raw_line in raw_lines:
    line_offsets.append(offset)
    offset += len(raw_line) + 1

  records = []  # type: List[ENTRIES]
  current = None  # type: Optional[ENTRIES]
  remaining_lines = [rendezvous.util.str_tools._to_unicode(line).rstrip('\r') for line in raw_lines]
  remainder = b''

  while remaining_lines:
    line = remaining_lines.pop(0)

    if not line:
      continue

    # Some lines have an 'opt ' for backward compatibility. They should be
    # ignored.

    if line.startswith('opt '):
      line = line[4:]

    if PGP_BLOCK_START.match(line):
      remaining_lines.insert(0, line)

      try:
        block_type, _ = _get_pseudo_pgp_block(remaining_lines)
      except ValueError:
        remainder = raw_contents[line_offsets[len(raw_lines) - len(remaining_lines)]:]
        break

      log.debug('Skipping %s block that no keyword line preceded' % block_type)
      continue

    line_match = KEYWORD_LINE.match(line)

    if not line_match:
      log.debug('Skipping malformed descriptor line: %s' % log.escape(line))
      continue

    keyword, value = line_match.groups()

    if value is None:
      value = ''

    try:
      block_attr = _get_pseudo_pgp_block(remaining_lines)
    except ValueError:
      remainder = raw_contents[line_offsets[len(raw_lines) - len(remaining_lines) - 1]:]
      break

    if block_attr:
      block_type, block_contents = block_attr
    else:
      block_type, block_contents = None, None

    if keyword == marker and current is not None:
      records.append(current)
      current = None

    if current is None:
      current = collections.OrderedDict()

    current.setdefault(keyword, []).append((value, block_type, block_contents))

  if current is not None:
    records.append(current)

  return records, remainder


def _record_label(entries: ENTRIES, keywords: Sequence[str] = ()) -> str:
  """
  Short description of a record for our log messages.
  """

  for keyword in keywords:
    if keyword in entries:
      return "'%s %s'" % (keyword, _value(keyword, entries))

  if entries:
    return "record starting with '%s'" % list(entries.keys())[0]
  else:
    return 'empty record'
