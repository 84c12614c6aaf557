# Copyright 2012-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Address and port validation for the introduction points that hidden service
descriptors advertise.

::

  is_valid_ipv4_address - checks if a string is a valid IPv4 address
  is_valid_ipv6_address - checks if a string is a valid IPv6 address
  is_valid_ip_address - checks if a string is either kind of address
  is_valid_port - checks if something is a valid representation for a port
"""

import re

from typing import Any

HEX_GROUP = re.compile('[0-9a-fA-F]{1,4}')


def is_valid_ipv4_address(address: Any) -> bool:
  """
  Checks if a string is a valid IPv4 address.

  :param address: string to be checked

  :returns: **True** if input is a valid IPv4 address, **False** otherwise
  """

  if not isinstance(address, str):
    return False

  # checks if theres four period separated values

  if address.count('.') != 3:
    return False

  # checks that each value in the octet are decimal values between 0-255

  for entry in address.split('.'):
    if not entry.isdigit() or not entry.isascii() or int(entry) > 255:
      return False
    elif entry[0] == '0' and len(entry) > 1:
      return False  # leading zeros, for instance in "1.2.3.001"

  return True


def is_valid_ipv6_address(address: Any) -> bool:
  """
  Checks if a string is a valid IPv6 address. Addresses may end with an
  embedded IPv4 address, such as '::ffff:192.168.0.1'.

  :param address: string to be checked

  :returns: **True** if input is a valid IPv6 address, **False** otherwise
  """

  if not isinstance(address, str):
    return False

  max_groups = 8

  if '.' in address:
    ipv4_start = address.rfind(':') + 1

    if not ipv4_start or not is_valid_ipv4_address(address[ipv4_start:]):
      return False

    address = address[:ipv4_start] + '0'  # stand-in for the two groups it replaces
    max_groups = 7

  # addresses are made up of eight colon separated groups of four hex digits
  # with leading zeros being optional
  # https://en.wikipedia.org/wiki/IPv6#Address_format

  if address.count('::') > 1 or ':::' in address:
    return False  # multiple groupings of zeros can't be collapsed

  if '::' in address:
    head, tail = address.split('::')
    groups = (head.split(':') if head else []) + (tail.split(':') if tail else [])

    if len(groups) > max_groups - 1:
      return False  # collapsing has to replace at least one group
  else:
    groups = address.split(':')

    if len(groups) != max_groups:
      return False  # not enough groups and none are collapsed

  for entry in groups:
    if not HEX_GROUP.fullmatch(entry):
      return False

  return True


def is_valid_ip_address(address: Any) -> bool:
  """
  Checks if a string is a valid IPv4 or IPv6 address.

  :param address: string to be checked

  :returns: **True** if input is a valid address, **False** otherwise
  """

  return is_valid_ipv4_address(address) or is_valid_ipv6_address(address)


def is_valid_port(entry: Any, allow_zero: bool = False) -> bool:
  """
  Checks if a string or int is a valid port number.

  :param entry: string, integer or list to be checked
  :param allow_zero: accept port number of zero (reserved by definition)

  :returns: **True** if input is an integer and within the valid port range, **False** otherwise
  """

  if isinstance(entry, list):
    return all([is_valid_port(port, allow_zero) for port in entry])
  elif isinstance(entry, str):
    if not entry.isdigit() or not entry.isascii():
      return False
    elif entry[0] == '0' and len(entry) > 1:
      return False  # leading zeros, ex "001"

    entry = int(entry)
  elif isinstance(entry, bool) or not isinstance(entry, int):
    return False

  if allow_zero and entry == 0:
    return True

  return entry > 0 and entry < 65536
