#!/usr/bin/env python
# Copyright 2012-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information
#
# Release Checklist
# =================
#
# * Test with python3 and pypy.
#   |- If using tox run...
#   |
#   |    % tox
#   |
#   |  Otherwise, for each interpreter run...
#   |
#   |    % [python_interpreter] run_tests.py
#   |
#   +- Tests need the cryptography module...
#
#        % pip install cryptography --user
#
# * Tag the release
#   |- Bump our version (in rendezvous/__init__.py).
#   |- git commit -a -m "Rendezvous release 1.0.0"
#   |- git tag -m "rendezvous release 1.0.0" 1.0.0
#   +- git push --tags
#
# * Dry-run release on https://pypi.org/project/rendezvous/
#   |- python setup.py sdist --dryrun
#   |- twine upload dist/*
#   +- Check that https://pypi.org/project/rendezvous-dry-run/ looks correct
#
# * Final release
#   |- rm dist/*
#   |- python setup.py sdist
#   +- twine upload dist/*

import setuptools
import os
import re
import sys

if '--dryrun' in sys.argv:
  DRY_RUN = True
  sys.argv.remove('--dryrun')
else:
  DRY_RUN = False

SUMMARY = 'Rendezvous is a Python library for reading and writing Tor version 2 hidden service descriptors.'
DRY_RUN_SUMMARY = 'Ignore this package. This is dry-run release creation to work around PyPI limitations (https://github.com/pypa/packaging-problems/issues/74#issuecomment-260716129).'

DESCRIPTION = """
Derives the identifiers version 2 hidden service descriptors are published
under, and parses or produces the descriptors and introduction points
themselves.

Quick Start
-----------

To install you can either use...

::

  pip install rendezvous

... or install from the source tarball. Rendezvous supports Python 3.7 and above.
""".strip()

MANIFEST = """
include MANIFEST.in
include run_tests.py
include tox.ini
graft test
global-exclude __pycache__
global-exclude *.orig
global-exclude *.pyc
global-exclude *.swp
global-exclude *.swo
global-exclude .tox
global-exclude *~
""".strip()

# installation requires us to be in our setup.py's directory

os.chdir(os.path.dirname(os.path.abspath(__file__)))

with open('MANIFEST.in', 'w') as manifest_file:
  manifest_file.write(MANIFEST)


def get_module_info():
  # reads the basic __stat__ strings from our module's init

  STAT_REGEX = re.compile(r"^__(.+)__ = '(.+)'$")
  result = {}
  cwd = os.path.sep.join(__file__.split(os.path.sep)[:-1])

  with open(os.path.join(cwd, 'rendezvous', '__init__.py')) as init_file:
    for line in init_file.readlines():
      line_match = STAT_REGEX.match(line)

      if line_match:
        keyword, value = line_match.groups()
        result[keyword] = value

  return result


module_info = get_module_info()

try:
  setuptools.setup(
    name = 'rendezvous-dry-run' if DRY_RUN else 'rendezvous',
    version = module_info['version'],
    description = DRY_RUN_SUMMARY if DRY_RUN else SUMMARY,
    long_description = DESCRIPTION,
    license = module_info['license'],
    author = module_info['author'],
    author_email = module_info['contact'],
    url = module_info['url'],
    packages = setuptools.find_packages(exclude=['test*']),
    keywords = 'tor onion hidden service descriptor',
    python_requires = '>=3.7',
    install_requires = ['cryptography'],
    extras_require = {
      'test': ['pytest'],
    },
    classifiers = [
      'Development Status :: 5 - Production/Stable',
      'Intended Audience :: Developers',
      'License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)',
      'Topic :: Security',
      'Topic :: Software Development :: Libraries :: Python Modules',
    ],
  )
finally:
  for filename in ['MANIFEST.in', 'MANIFEST']:
    if os.path.exists(filename):
      os.remove(filename)
