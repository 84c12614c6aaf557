# Copyright 2015-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
RSA public keys as they appear within hidden service descriptors. These are
PKCS#1 DER encoded, and armored within 'RSA PUBLIC KEY' blocks...

::

  permanent-key
  -----BEGIN RSA PUBLIC KEY-----
  MIGJAoGBAJ/SzzgrXPxTlFrKVhXh3buCWv2QfcNgncUpDpKouLn3AtPH5Ocys0jE
  aZSKdvaiQ62md2gOwj4x61cFNdi05tdQjS+2thHKEm/KsB9BGLSLBNJYY356bupg
  I5gQozM65ENelfxYlysBjJ52xSDBd8C4f/p9umdzaaaCmzXG/nhzAgMBAAE=
  -----END RSA PUBLIC KEY-----

**Module Overview:**

::

  KeyMaterial - Immutable public key of a service or introduction point.
    |- from_der - decodes a DER encoded key
    |- from_pem - decodes an armored key
    |- from_key - wraps a cryptography key
    |- der - PKCS#1 DER encoding
    |- pem - armored 'RSA PUBLIC KEY' block
    |- fingerprint - SHA1 digest of the DER encoding
    +- key - cryptography RSAPublicKey

  create_signer - signing hook for an RSA private key
"""

import hashlib

import rendezvous.descriptor
import rendezvous.prereq
import rendezvous.util.str_tools

from typing import Any, Callable, Union

KEY_BLOCK_TYPE = 'RSA PUBLIC KEY'

# PKCS#1 v1.5 signature padding (RFC 2313, section 8.1), applied by tor
# directly to the digest rather than a DigestInfo structure

DIGEST_TYPE_INFO = b'\x00\x01'
DIGEST_PADDING = b'\xFF'
DIGEST_SEPARATOR = b'\x00'
MIN_PADDING_LENGTH = 8


def _require_crypto() -> None:
  if not rendezvous.prereq.is_crypto_available():
    raise ImportError('Hidden service keys require the cryptography module')


class KeyMaterial(object):
  """
  Public key of a hidden service or introduction point. This is a value
  object, compared and hashed by its DER encoding.

  :var bytes der: PKCS#1 DER encoding of the key
  """

  def __init__(self, der: bytes) -> None:
    _require_crypto()

    from cryptography.exceptions import UnsupportedAlgorithm
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if not isinstance(der, bytes):
      raise ValueError('Key must be DER encoded bytes, but was a %s' % type(der).__name__)

    try:
      key = serialization.load_der_public_key(der)
    except (ValueError, UnsupportedAlgorithm) as exc:
      raise ValueError('Unable to decode DER encoded public key: %s' % exc)

    if not isinstance(key, rsa.RSAPublicKey):
      raise ValueError('Hidden service keys must be RSA, but was a %s' % type(key).__name__)

    self._key = key
    self._der = key.public_bytes(
      encoding = serialization.Encoding.DER,
      format = serialization.PublicFormat.PKCS1,
    )

  @staticmethod
  def from_der(der: bytes) -> 'rendezvous.descriptor.keys.KeyMaterial':
    """
    Decodes a DER encoded RSA public key. Both PKCS#1 and SubjectPublicKeyInfo
    structures are accepted.

    :param der: encoded key

    :returns: :class:`~rendezvous.descriptor.keys.KeyMaterial` for the key

    :raises: **ValueError** if this isn't a DER encoded RSA public key
    """

    return KeyMaterial(der)

  @staticmethod
  def from_pem(pem: Union[str, bytes]) -> 'rendezvous.descriptor.keys.KeyMaterial':
    """
    Decodes an 'RSA PUBLIC KEY' block.

    :param pem: armored key

    :returns: :class:`~rendezvous.descriptor.keys.KeyMaterial` for the key

    :raises: **ValueError** if this isn't an armored RSA public key
    """

    pem = rendezvous.util.str_tools._to_unicode(pem).strip()
    lines = pem.split('\n')

    if lines[0] != '-----BEGIN %s-----' % KEY_BLOCK_TYPE or lines[-1] != rendezvous.descriptor.PGP_BLOCK_END % KEY_BLOCK_TYPE:
      raise ValueError("Key should be within a '%s' block:\n%s" % (KEY_BLOCK_TYPE, pem))

    return KeyMaterial(rendezvous.descriptor._bytes_for_block(pem))

  @staticmethod
  def from_key(key: Any) -> 'rendezvous.descriptor.keys.KeyMaterial':
    """
    Wraps a key from the cryptography module. Private keys provide their
    public counterpart.

    :param key: **RSAPublicKey** or **RSAPrivateKey** to wrap

    :returns: :class:`~rendezvous.descriptor.keys.KeyMaterial` for the key

    :raises: **ValueError** if this isn't an RSA key
    """

    _require_crypto()

    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if isinstance(key, rsa.RSAPrivateKey):
      key = key.public_key()

    if not isinstance(key, rsa.RSAPublicKey):
      raise ValueError('Hidden service keys must be RSA, but was a %s' % type(key).__name__)

    return KeyMaterial(key.public_bytes(
      encoding = serialization.Encoding.DER,
      format = serialization.PublicFormat.PKCS1,
    ))

  @property
  def der(self) -> bytes:
    return self._der

  @property
  def key(self) -> 'cryptography.hazmat.primitives.asymmetric.rsa.RSAPublicKey':  # type: ignore
    return self._key

  def pem(self) -> bytes:
    """
    Armored form of this key, as it appears in descriptors.

    :returns: **bytes** with our 'RSA PUBLIC KEY' block, newline terminated
    """

    return rendezvous.descriptor._pgp_block(KEY_BLOCK_TYPE, self._der)

  def fingerprint(self) -> bytes:
    """
    Identity of this key, the SHA1 digest of its DER encoding.

    :returns: **bytes** with our twenty byte fingerprint
    """

    return hashlib.sha1(self._der).digest()

  def key_size(self) -> int:
    return self._key.key_size

  def __hash__(self) -> int:
    return hash(self._der)

  def __eq__(self, other: Any) -> bool:
    return self._der == other._der if isinstance(other, KeyMaterial) else False

  def __ne__(self, other: Any) -> bool:
    return not self == other

  def __repr__(self) -> str:
    return '<KeyMaterial %i bit RSA, fingerprint %s>' % (self.key_size(), self.fingerprint().hex().upper())


def _key_der(key: Any, attr: str) -> bytes:
  """
  DER encoding of a key we're about to write.

  :param key: :class:`~rendezvous.descriptor.keys.KeyMaterial` or
    cryptography RSA key
  :param attr: attribute the key came from, for our error message

  :raises: **ValueError** if the key cannot be DER encoded
  """

  if isinstance(key, KeyMaterial):
    return key.der

  try:
    return KeyMaterial.from_key(key).der
  except ValueError as exc:
    raise ValueError('Unable to DER encode our %s: %s' % (attr, exc))


def create_signer(private_key: 'cryptography.hazmat.primitives.asymmetric.rsa.RSAPrivateKey') -> Callable[[bytes], bytes]:  # type: ignore
  """
  Provides a signing hook for :func:`~rendezvous.descriptor.hidden_service.HiddenServiceDescriptorV2.sign`.

  Tor signs descriptors with PKCS#1 v1.5 padding applied directly to the
  digest, without the DigestInfo structure the cryptography module includes.
  So we pad and sign the digest ourselves...

  ::

    0x00 0x01 [0xFF padding] 0x00 [digest]

  .. note:: The signature is a plain modular exponentiation of the padded
    digest. It isn't constant time nor blinded, so this shouldn't sign with
    keys an attacker can time the signing of.

  :param private_key: RSA private key of the hidden service

  :returns: **callable** that takes a digest and provides its signature

  :raises: **ValueError** if this isn't an RSA private key
  """

  _require_crypto()

  from cryptography.hazmat.primitives.asymmetric import rsa

  if not isinstance(private_key, rsa.RSAPrivateKey):
    raise ValueError('Signing requires an RSA private key, but was a %s' % type(private_key).__name__)

  private_numbers = private_key.private_numbers()
  modulus = private_numbers.public_numbers.n
  private_exponent = private_numbers.d
  key_length = (modulus.bit_length() + 7) // 8

  def _sign(digest: bytes) -> bytes:
    padding_length = key_length - len(digest) - len(DIGEST_TYPE_INFO) - len(DIGEST_SEPARATOR)

    if padding_length < MIN_PADDING_LENGTH:
      raise ValueError('A %i byte digest is too large to sign with a %i bit key' % (len(digest), private_key.key_size))

    padded = DIGEST_TYPE_INFO + DIGEST_PADDING * padding_length + DIGEST_SEPARATOR + digest
    signature = pow(int.from_bytes(padded, byteorder = 'big'), private_exponent, modulus)

    return signature.to_bytes(key_length, byteorder = 'big')

  return _sign
