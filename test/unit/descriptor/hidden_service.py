"""
Unit tests for rendezvous.descriptor.hidden_service.
"""

import datetime
import hashlib
import io
import unittest

import rendezvous.descriptor.hidden_service
import rendezvous.descriptor.identifiers
import test.mocking

from rendezvous.descriptor.hidden_service import HiddenServiceDescriptorV2, SigningFailure
from rendezvous.descriptor.keys import KeyMaterial, create_signer
from rendezvous.util.str_tools import _decode_b32, _encode_b32

from test.unit.descriptor import (
  DDG_ADDRESS,
  DDG_DESCRIPTOR_ID,
  DDG_INTRODUCTION_POINTS,
  DDG_PUBLISHED_UNIX,
  DDG_SECRET_ID_PART,
  get_resource,
  read_resource,
)

MESSAGE_BLOCK = """
-----BEGIN MESSAGE-----
%s
-----END MESSAGE-----\
"""

REQUIRED_FIELDS = (
  'rendezvous-service-descriptor',
  'version',
  'permanent-key',
  'signature',
)

OPTIONAL_FIELDS = (
  'secret-id-part',
  'publication-time',
  'protocol-versions',
  'introduction-points',
)


def _stub_signer(digest):
  return b'\x01' * 128


def _recover_digest(key, signature):
  """
  Provides the padded digest within a signature.
  """

  public_numbers = key.key.public_numbers()
  key_length = (public_numbers.n.bit_length() + 7) // 8
  return pow(int.from_bytes(signature, byteorder = 'big'), public_numbers.e, public_numbers.n).to_bytes(key_length, byteorder = 'big')


class TestHiddenServiceDescriptor(unittest.TestCase):
  def test_for_duckduckgo(self):
    """
    Parse duckduckgo's descriptor.
    """

    warnings = []
    descriptors = list(rendezvous.descriptor.hidden_service.parse_file(get_resource('hidden_service_duckduckgo'), warnings))

    self.assertEqual([], warnings)
    self.assertEqual(1, len(descriptors))
    self._assert_matches_duckduckgo(descriptors[0])

  def test_for_duckduckgo_file_object(self):
    with open(get_resource('hidden_service_duckduckgo'), 'rb') as descriptor_file:
      desc = next(rendezvous.descriptor.hidden_service.parse_file(descriptor_file))

    self._assert_matches_duckduckgo(desc)

  def test_duckduckgo_signature(self):
    """
    Check that duckduckgo signed the digest of its content up through the
    'signature' line.
    """

    content = read_resource('hidden_service_duckduckgo')
    desc = next(rendezvous.descriptor.hidden_service.parse_file(io.BytesIO(content)))

    start = content.index(b'rendezvous-service-descriptor ')
    end = content.index(b'\nsignature\n') + len(b'\nsignature\n')
    digest = rendezvous.descriptor.identifiers.body_digest(content[start:end])

    recovered = _recover_digest(desc.permanent_key, desc.signature)
    self.assertEqual(b'\x00\x01' + b'\xff' * 105 + b'\x00' + digest, recovered)

  def _assert_matches_duckduckgo(self, desc):
    self.assertEqual(_decode_b32(DDG_DESCRIPTOR_ID), desc.descriptor_id)
    self.assertEqual(2, desc.version)
    self.assertEqual(test.mocking.get_key_material(), desc.permanent_key)
    self.assertEqual(_decode_b32(DDG_SECRET_ID_PART), desc.secret_id_part)
    self.assertEqual(datetime.datetime(2015, 2, 23, 20, 0, 0), desc.published)
    self.assertEqual([2, 3], desc.protocol_versions)
    self.assertEqual(128, len(desc.signature))
    self.assertEqual(DDG_ADDRESS + '.onion', desc.onion_address())
    self.assertEqual(rendezvous.descriptor.identifiers.permanent_id_for_address(DDG_ADDRESS), desc.permanent_id())

    self.assertEqual(3, len(desc.introduction_points))

    for point, (identity, address, port) in zip(desc.introduction_points, DDG_INTRODUCTION_POINTS):
      self.assertEqual(identity, _encode_b32(point.identity))
      self.assertEqual(address, point.address)
      self.assertEqual(port, point.port)

  def test_minimal_hidden_service_descriptor(self):
    """
    Basic sanity check that we can parse a hidden service descriptor with
    minimal attributes.
    """

    desc = test.mocking.get_hidden_service_descriptor()

    self.assertEqual(_decode_b32(DDG_DESCRIPTOR_ID), desc.descriptor_id)
    self.assertEqual(2, desc.version)
    self.assertEqual(test.mocking.get_key_material(), desc.permanent_key)
    self.assertEqual(datetime.datetime(2015, 2, 23, 20, 0, 0), desc.published)
    self.assertEqual([2, 3], desc.protocol_versions)
    self.assertEqual([], desc.introduction_points)
    self.assertEqual(128, len(desc.signature))

  def test_unrecognized_line(self):
    """
    Unrecognized content is ignored.
    """

    desc = test.mocking.get_hidden_service_descriptor({'pepperjack': 'is oh so tasty!'})
    self.assertEqual(test.mocking.get_hidden_service_descriptor(), desc)

  def test_proceeding_line(self):
    """
    Includes a line prior to the 'rendezvous-service-descriptor' entry. This is
    skipped, while the descriptor after it is still read.
    """

    warnings = []
    desc_text = b'hibernate 1\n' + test.mocking.get_hidden_service_descriptor(content = True)
    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(desc_text, warnings)

    self.assertEqual([test.mocking.get_hidden_service_descriptor()], descriptors)
    self.assertEqual(b'', remainder)
    self.assertEqual(1, len(warnings))
    self.assertTrue(warnings[0].startswith("Skipping record starting with 'hibernate'"))

  def test_required_fields(self):
    """
    Check that we require the mandatory fields.
    """

    for excluded in test.mocking.get_all_combinations(REQUIRED_FIELDS):
      desc_text = test.mocking.get_hidden_service_descriptor(content = True, exclude = excluded)
      self._expect_invalid_attr(desc_text)

  def test_optional_fields(self):
    """
    Descriptors can omit fields that aren't needed to find the service.
    """

    for excluded in test.mocking.get_all_combinations(OPTIONAL_FIELDS):
      desc = test.mocking.get_hidden_service_descriptor(exclude = excluded)

      self.assertEqual(None if 'secret-id-part' in excluded else _decode_b32(DDG_SECRET_ID_PART), desc.secret_id_part)
      self.assertEqual(None if 'publication-time' in excluded else datetime.datetime(2015, 2, 23, 20, 0, 0), desc.published)
      self.assertEqual([] if 'protocol-versions' in excluded else [2, 3], desc.protocol_versions)
      self.assertEqual([], desc.introduction_points)

  def test_duplicate_fields(self):
    desc_text = test.mocking.get_hidden_service_descriptor(content = True)
    desc_text = desc_text.replace(b'version 2\n', b'version 2\nversion 3\n')

    warnings = self._expect_invalid_attr(desc_text)
    self.assertTrue("The 'version' entry can only appear once" in warnings[0])

  def test_invalid_descriptor_id(self):
    test_values = (
      'y3olqqblqw2gbh6phimfuiroechjjaf',
      'y3olqqblqw2gbh6phimfuiroechjjafa5',
      'y3olqqblqw2gbh6phimfuiroechjja!a',
      '',
    )

    for test_value in test_values:
      desc_text = test.mocking.get_hidden_service_descriptor({'rendezvous-service-descriptor': test_value}, content = True)
      self._expect_invalid_attr(desc_text)

  def test_invalid_version(self):
    """
    Checks that our version field expects a numeric value.
    """

    test_values = (
      '',
      '-10',
      'hello',
      '2.0',
    )

    for test_value in test_values:
      desc_text = test.mocking.get_hidden_service_descriptor({'version': test_value}, content = True)
      self._expect_invalid_attr(desc_text)

  def test_invalid_secret_id_part(self):
    for test_value in ('', 'e24kgecavwsznj7g', 'e24kgecavwsznj7gpbktqsiwgvngsf4!'):
      desc_text = test.mocking.get_hidden_service_descriptor({'secret-id-part': test_value}, content = True)
      self._expect_invalid_attr(desc_text)

  def test_invalid_publication_time(self):
    for test_value in ('', '2015-02-23', '2015-02-23 20:00', '2015-13-23 20:00:00', 'hello'):
      desc_text = test.mocking.get_hidden_service_descriptor({'publication-time': test_value}, content = True)
      self._expect_invalid_attr(desc_text)

  def test_invalid_protocol_versions(self):
    """
    Checks that our protocol-versions field expects comma separated numeric
    values.
    """

    test_values = (
      '',
      '-10',
      '0',
      'hello',
      '10,',
      ',10',
      '10,-10',
      '10,hello',
    )

    for test_value in test_values:
      desc_text = test.mocking.get_hidden_service_descriptor({'protocol-versions': test_value}, content = True)
      self._expect_invalid_attr(desc_text)

  def test_empty_signature(self):
    desc_text = test.mocking.get_hidden_service_descriptor({'signature': '\n-----BEGIN SIGNATURE-----\n-----END SIGNATURE-----'}, content = True)
    warnings = self._expect_invalid_attr(desc_text)
    self.assertTrue('empty signature' in warnings[0])

  def test_signature_of_wrong_type(self):
    desc_text = test.mocking.get_hidden_service_descriptor({'signature': MESSAGE_BLOCK % 'aGk='}, content = True)
    self._expect_invalid_attr(desc_text)

  def test_introduction_points_when_empty(self):
    """
    It's valid to advertise zero introduction points, either by omitting the
    field or with an empty block.
    """

    missing_field_desc = test.mocking.get_hidden_service_descriptor(exclude = ('introduction-points',))
    self.assertEqual([], missing_field_desc.introduction_points)

    empty_field_desc = test.mocking.get_hidden_service_descriptor({'introduction-points': MESSAGE_BLOCK % ''})
    self.assertEqual([], empty_field_desc.introduction_points)

  def test_introduction_points_when_not_base64(self):
    """
    Malformed introduction-points only lose us the introduction points, the
    descriptor is still usable.
    """

    for test_value in (MESSAGE_BLOCK % '12345', MESSAGE_BLOCK % 'hello'):
      warnings = []
      desc_text = test.mocking.get_hidden_service_descriptor({'introduction-points': test_value}, content = True)
      descriptors, remainder = HiddenServiceDescriptorV2.parse_all(desc_text, warnings)

      self.assertEqual(1, len(descriptors))
      self.assertEqual([], descriptors[0].introduction_points)
      self.assertEqual(1, len(warnings))
      self.assertTrue(warnings[0].startswith('Unable to read introduction-points'))

  def test_introduction_points_when_partly_malformed(self):
    """
    Malformed introduction points are skipped, leaving the others.
    """

    points = [test.mocking.get_introduction_point(identity = test.mocking.random_identity()) for _ in range(3)]
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), points, 0, DDG_PUBLISHED_UNIX)

    signed = desc.sign(_stub_signer)
    original_block = rendezvous.descriptor._pgp_block('MESSAGE', rendezvous.descriptor.introduction_point.IntroductionPoint.serialize_all(points))

    records = [point.serialize() for point in points]
    records[1] = records[1].replace(b'ip-address 178.62.222.129', b'ip-address 178.62.222')
    malformed_block = rendezvous.descriptor._pgp_block('MESSAGE', b''.join(records))

    self.assertTrue(original_block in signed)

    warnings = []
    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(signed.replace(original_block, malformed_block), warnings)

    self.assertEqual(1, len(descriptors))
    self.assertEqual([points[0], points[2]], descriptors[0].introduction_points)
    self.assertEqual(1, len(warnings))
    self.assertTrue(_encode_b32(points[1].identity) in warnings[0])

  def test_multiple_descriptors(self):
    """
    Reads several descriptors, skipping any that are malformed.
    """

    valid = test.mocking.get_hidden_service_descriptor(content = True)
    invalid = test.mocking.get_hidden_service_descriptor({'version': 'hello'}, content = True)

    warnings = []
    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(b'\n'.join((valid, invalid, valid)), warnings)

    self.assertEqual(2, len(descriptors))
    self.assertEqual(b'', remainder)
    self.assertEqual(1, len(warnings))
    self.assertTrue(warnings[0].startswith("Skipping 'rendezvous-service-descriptor %s'" % DDG_DESCRIPTOR_ID))

  def test_truncated_descriptor(self):
    """
    Content that ends within a pgp block is provided back as the remainder.
    """

    valid = test.mocking.get_hidden_service_descriptor(content = True)
    truncated = valid[:valid.index(b'-----END RSA PUBLIC KEY-----')]

    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(valid + b'\n' + truncated)

    self.assertEqual([test.mocking.get_hidden_service_descriptor()], descriptors)
    self.assertTrue(remainder.startswith(b'permanent-key\n-----BEGIN RSA PUBLIC KEY-----\n'))

  def test_new(self):
    key = test.mocking.get_key_material()
    perm_id = rendezvous.descriptor.identifiers.permanent_id(key)
    unix_time = DDG_PUBLISHED_UNIX + 1234
    points = [test.mocking.get_introduction_point()]

    desc = HiddenServiceDescriptorV2.new(key, points, 1, unix_time)

    self.assertEqual(rendezvous.descriptor.identifiers.descriptor_ids(perm_id, unix_time)[1], desc.descriptor_id)
    self.assertEqual(rendezvous.descriptor.identifiers.secret_id_part(perm_id, unix_time, 1), desc.secret_id_part)
    self.assertEqual(2, desc.version)
    self.assertEqual(key, desc.permanent_key)
    self.assertEqual(datetime.datetime(2015, 2, 23, 20, 0, 0), desc.published)
    self.assertEqual([2, 3], desc.protocol_versions)
    self.assertEqual(points, desc.introduction_points)
    self.assertEqual(None, desc.signature)

    # our introduction points are copied

    points.append(test.mocking.get_introduction_point(port = 80))
    self.assertEqual(1, len(desc.introduction_points))

  def test_new_for_duckduckgo(self):
    """
    Duckduckgo's identifiers are what we'd make for one of its replicas.
    """

    descriptors = [HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), [], replica, DDG_PUBLISHED_UNIX) for replica in (0, 1)]
    expected = test.mocking.get_hidden_service_descriptor()

    self.assertTrue((expected.descriptor_id, expected.secret_id_part) in [(desc.descriptor_id, desc.secret_id_part) for desc in descriptors])

  def test_new_with_current_time(self):
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), [], 0)

    now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo = None)
    self.assertTrue(now - desc.published < datetime.timedelta(hours = 1, minutes = 1))
    self.assertEqual(0, desc.published.minute)
    self.assertEqual(0, desc.published.second)

  def test_new_with_descriptor_cookie(self):
    key = test.mocking.get_key_material()

    desc = HiddenServiceDescriptorV2.new(key, [], 0, DDG_PUBLISHED_UNIX)
    cookie_desc = HiddenServiceDescriptorV2.new(key, [], 0, DDG_PUBLISHED_UNIX, descriptor_cookie = b'\x01' * 16)

    self.assertNotEqual(desc.descriptor_id, cookie_desc.descriptor_id)
    self.assertNotEqual(desc.secret_id_part, cookie_desc.secret_id_part)

  def test_new_with_invalid_replica(self):
    self.assertRaises(ValueError, HiddenServiceDescriptorV2.new, test.mocking.get_key_material(), [], 256, DDG_PUBLISHED_UNIX)
    self.assertRaises(ValueError, HiddenServiceDescriptorV2.new, test.mocking.get_key_material(), [], -1, DDG_PUBLISHED_UNIX)

  def test_body(self):
    """
    Check the exact content that we sign.
    """

    key = test.mocking.get_key_material()
    desc = HiddenServiceDescriptorV2.new(key, [], 0, DDG_PUBLISHED_UNIX)

    expected = b''.join((
      b'rendezvous-service-descriptor %s\n' % _encode_b32(desc.descriptor_id).encode('ascii'),
      b'version 2\n',
      b'permanent-key\n',
      key.pem(),
      b'secret-id-part %s\n' % _encode_b32(desc.secret_id_part).encode('ascii'),
      b'publication-time 2015-02-23 20:00:00\n',
      b'protocol-versions 2,3\n',
      b'signature\n',
    ))

    self.assertEqual(expected, desc.body())

  def test_body_with_introduction_points(self):
    points = [test.mocking.get_introduction_point()]
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), points, 0, DDG_PUBLISHED_UNIX)

    body = desc.body()
    introduction_points = rendezvous.descriptor.introduction_point.IntroductionPoint.serialize_all(points)
    expected_block = b'protocol-versions 2,3\nintroduction-points\n' + rendezvous.descriptor._pgp_block('MESSAGE', introduction_points) + b'signature\n'

    self.assertTrue(body.endswith(expected_block))

  def test_body_with_invalid_attributes(self):
    for attr, value in (
      ('descriptor_id', b'\x01' * 19),
      ('descriptor_id', None),
      ('secret_id_part', None),
      ('version', '2'),
      ('published', None),
      ('permanent_key', 'not a key'),
      ('introduction_points', [test.mocking.get_introduction_point(port = 70000)]),
    ):
      desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), [], 0, DDG_PUBLISHED_UNIX)
      setattr(desc, attr, value)

      self.assertRaises(ValueError, desc.body)
      self.assertRaises(ValueError, desc.sign, _stub_signer)

  def test_digest(self):
    points = [test.mocking.get_introduction_point()]
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), points, 0, DDG_PUBLISHED_UNIX)

    self.assertEqual(hashlib.sha1(desc.body()).digest(), desc.digest())
    self.assertEqual(desc.digest(), desc.digest())
    self.assertEqual(hashlib.sha256(desc.body()).digest(), desc.digest('sha256'))

    # signing doesn't change our body

    digest = desc.digest()
    desc.sign(_stub_signer)
    self.assertEqual(digest, desc.digest())

    desc.introduction_points.append(test.mocking.get_introduction_point(port = 80))
    self.assertNotEqual(digest, desc.digest())

  def test_sign(self):
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), [], 0, DDG_PUBLISHED_UNIX)
    digests = []

    def signer(digest):
      digests.append(digest)
      return b'\x01' * 128

    content = desc.sign(signer)

    self.assertEqual([desc.digest()], digests)
    self.assertEqual(b'\x01' * 128, desc.signature)
    self.assertEqual(desc.body() + rendezvous.descriptor._pgp_block('SIGNATURE', b'\x01' * 128), content)
    expected_signature_block = b''.join((
      b'signature\n',
      b'-----BEGIN SIGNATURE-----\n',
      b'AQEB' * 16 + b'\n',
      b'AQEB' * 16 + b'\n',
      b'AQEB' * 10 + b'AQE=\n',
      b'-----END SIGNATURE-----\n',
    ))

    self.assertTrue(content.endswith(expected_signature_block))

  def test_sign_failures(self):
    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), [], 0, DDG_PUBLISHED_UNIX)

    self.assertRaises(SigningFailure, desc.sign, lambda digest: b'')
    self.assertRaises(SigningFailure, desc.sign, lambda digest: None)
    self.assertRaises(SigningFailure, desc.sign, lambda digest: 'signature')
    self.assertEqual(None, desc.signature)

    def failing_signer(digest):
      raise RuntimeError('unable to reach our key')

    self.assertRaisesRegex(RuntimeError, 'unable to reach our key', desc.sign, failing_signer)

  def test_round_trip(self):
    points = [
      test.mocking.get_introduction_point(identity = test.mocking.random_identity()),
      test.mocking.get_introduction_point(identity = test.mocking.random_identity(), address = '2001:db8::1', port = 8080),
    ]

    desc = HiddenServiceDescriptorV2.new(test.mocking.get_key_material(), points, 1, DDG_PUBLISHED_UNIX)
    content = desc.sign(_stub_signer)

    warnings = []
    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(content, warnings)

    self.assertEqual([], warnings)
    self.assertEqual(b'', remainder)
    self.assertEqual([desc], descriptors)
    self.assertEqual(desc.body(), descriptors[0].body())

  def test_signed_with_private_key(self):
    """
    Make, sign, and read a descriptor for a newly generated service.
    """

    private_key = test.mocking.get_private_key()
    key = KeyMaterial.from_key(private_key)
    points = [test.mocking.get_introduction_point(identity = test.mocking.random_identity()) for _ in range(3)]

    desc = HiddenServiceDescriptorV2.new(key, points, 0, DDG_PUBLISHED_UNIX)
    content = desc.sign(create_signer(private_key))

    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(content)
    parsed = descriptors[0]

    self.assertEqual(desc, parsed)
    self.assertEqual(points, parsed.introduction_points)
    self.assertEqual(rendezvous.descriptor.identifiers.onion_address(key) + '.onion', parsed.onion_address())
    self.assertEqual(b'\x00\x01' + b'\xff' * 105 + b'\x00' + parsed.digest(), _recover_digest(parsed.permanent_key, parsed.signature))

  def test_equality(self):
    desc = test.mocking.get_hidden_service_descriptor()

    self.assertEqual(desc, test.mocking.get_hidden_service_descriptor())
    self.assertEqual(hash(desc), hash(test.mocking.get_hidden_service_descriptor()))
    self.assertNotEqual(desc, test.mocking.get_hidden_service_descriptor({'version': '3'}))
    self.assertNotEqual(desc, test.mocking.get_hidden_service_descriptor(content = True))
    self.assertEqual('<HiddenServiceDescriptorV2 %s, 0 introduction points>' % DDG_DESCRIPTOR_ID, repr(desc))

  def _expect_invalid_attr(self, desc_text):
    """
    Asserts that desc_text is skipped due to a malformed attribute.

    :returns: **list** of warnings from parsing
    """

    warnings = []
    descriptors, remainder = HiddenServiceDescriptorV2.parse_all(desc_text, warnings)

    self.assertEqual([], descriptors)
    self.assertEqual(b'', remainder)
    self.assertEqual(1, len(warnings))

    return warnings
