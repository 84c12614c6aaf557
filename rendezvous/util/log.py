# Copyright 2011-2020, Damian Johnson and The Tor Project
# See LICENSE for licensing information

"""
Logging for the rendezvous library. Our 'rendezvous' logger has a
NullHandler, so nothing is emitted until the caller attaches a handler of
their own or calls :func:`~rendezvous.util.log.log_to_stdout`.

Parsers report each record they skip at the INFO runlevel. Callers can also
collect those messages by handing us a **list** of warnings.

**Module Overview:**

::

  get_logger - provides our Logger instance
  logging_level - converts a runlevel to its logging number
  escape - escapes whitespace in descriptor content we log

  log - logs a message at the given runlevel
  log_once - logs a message, deduplicating if it has already been logged
  debug - logs a message at the DEBUG runlevel
  info - logs a message at the INFO runlevel
  skipped - reports content we couldn't use

  log_to_stdout - reports further logged events to stdout

.. data:: Runlevel (enum)

  Logging runlevels. TRACE and NOTICE are added to those of python's logging
  module so runlevels can be chosen by the same names tor uses.

  ========== ===========
  Runlevel   Description
  ========== ===========
  **ERROR**  critical issue occurred
  **WARN**   non-critical issue occurred
  **NOTICE** information that is helpful to the user
  **INFO**   records we skipped and content we couldn't use
  **DEBUG**  lines and blocks the tokenizer discarded
  **TRACE**  most verbose
  ========== ===========
"""

import logging

import rendezvous.util.enum
import rendezvous.util.str_tools

from typing import List, Optional

Runlevel = rendezvous.util.enum.UppercaseEnum('TRACE', 'DEBUG', 'INFO', 'NOTICE', 'WARN', 'ERROR')
TRACE, DEBUG, INFO, NOTICE, WARN, ERR = list(Runlevel)

LOG_VALUES = {
  TRACE: logging.DEBUG - 5,
  DEBUG: logging.DEBUG,
  INFO: logging.INFO,
  NOTICE: logging.INFO + 5,
  WARN: logging.WARN,
  ERR: logging.ERROR,
}

for _runlevel in (TRACE, NOTICE):
  logging.addLevelName(LOG_VALUES[_runlevel], _runlevel)

LOGGER = logging.getLogger('rendezvous')
LOGGER.setLevel(LOG_VALUES[TRACE])

if not LOGGER.handlers:
  LOGGER.addHandler(logging.NullHandler())

FORMATTER = logging.Formatter(
  fmt = '%(asctime)s [%(levelname)s] %(message)s',
  datefmt = '%m/%d/%Y %H:%M:%S',
)

# ids of the messages log_once() has emitted

LOGGED_ONCE = set()


def get_logger() -> logging.Logger:
  """
  Provides the logger our library reports to.

  :returns: **logging.Logger** named 'rendezvous'
  """

  return LOGGER


def logging_level(runlevel: Optional['rendezvous.util.log.Runlevel']) -> int:
  """
  Provides the logging module's number for a runlevel.

  :param runlevel: runlevel to translate, **None** for a level that's never
    reached
  """

  return LOG_VALUES[runlevel] if runlevel else logging.FATAL + 5


def escape(message: str) -> str:
  """
  Escapes newlines, carriage returns and tabs so descriptor content we log
  stays on a single line. **bytes** are converted to **str**.

  :param message: content to be escaped

  :returns: **str** that's safe to log
  """

  message = rendezvous.util.str_tools._to_unicode(message)
  return message.replace('\n', '\\n').replace('\r', '\\r').replace('\t', '\\t')


def log(runlevel: Optional['rendezvous.util.log.Runlevel'], message: str) -> None:
  """
  Logs a message at the given runlevel, doing nothing if it's **None**.
  """

  if runlevel:
    LOGGER.log(LOG_VALUES[runlevel], message)


def log_once(message_id: str, runlevel: Optional['rendezvous.util.log.Runlevel'], message: str) -> bool:
  """
  Logs a message unless one with the same id already has been.

  :param message_id: identifier to deduplicate on
  :param runlevel: runlevel to log the message at, skipped if **None**
  :param message: message to be logged

  :returns: **True** if we logged the message, **False** otherwise
  """

  if not runlevel or message_id in LOGGED_ONCE:
    return False

  LOGGED_ONCE.add(message_id)
  log(runlevel, message)
  return True


def debug(message: str) -> None:
  log(DEBUG, message)


def info(message: str) -> None:
  log(INFO, message)


def skipped(message: str, warnings: Optional[List[str]] = None) -> None:
  """
  Reports descriptor content we couldn't use. This is logged at INFO and, if
  the caller provided a warnings list, appended to it.

  :param message: description of what was skipped and why
  :param warnings: list the caller is collecting warnings in
  """

  info(message)

  if warnings is not None:
    warnings.append(message)


class _StdoutLogger(logging.Handler):
  def __init__(self, runlevel: 'rendezvous.util.log.Runlevel') -> None:
    logging.Handler.__init__(self, level = logging_level(runlevel))
    self.setFormatter(FORMATTER)

  def emit(self, record: logging.LogRecord) -> None:
    print(self.format(record))


def log_to_stdout(runlevel: 'rendezvous.util.log.Runlevel') -> None:
  """
  Prints further events at or above the given runlevel to stdout.

  :param runlevel: minimum runlevel to print
  """

  LOGGER.addHandler(_StdoutLogger(runlevel))
