# log_utils.py -- Logging utilities for refkind
# Copyright (C) 2026 The refkind authors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# refkind is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""Logging utilities for refkind.

refkind is used as a library, so by default nothing it logs should reach the
user. A no-op handler is attached to the ``refkind`` logger at import time;
applications that want the output call :func:`default_logging_config` or
install their own handlers after :func:`remove_null_handler`.

Modules only need ``getLogger``, which this module re-exports.
"""

import logging
import os
import sys
from typing import Optional, Union

getLogger = logging.getLogger

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_REFKIND_LOGGER = getLogger("refkind")
_REFKIND_LOGGER.addHandler(_NULL_HANDLER)


def _get_trace_target() -> Optional[Union[str, int]]:
    """Work out where GIT_TRACE output should go.

    Returns:
      None when tracing is off, 2 for stderr, or an absolute path
    """
    value = os.environ.get("GIT_TRACE", "")
    if not value or value.lower() in ("0", "false"):
        return None
    if value.lower() in ("1", "2", "true"):
        return 2
    if os.path.isabs(value):
        return value
    return None


def _configure_logging_from_trace() -> bool:
    """Configure debug logging from GIT_TRACE.

    Returns: True if tracing was configured
    """
    target = _get_trace_target()
    if target is None:
        return False
    if target == 2:
        logging.basicConfig(level=logging.DEBUG, stream=sys.stderr, format=TRACE_FORMAT)
        return True
    assert isinstance(target, str)
    if os.path.isdir(target):
        target = os.path.join(target, f"trace.{os.getpid()}")
    try:
        logging.basicConfig(
            level=logging.DEBUG, filename=target, filemode="a", format=TRACE_FORMAT
        )
    except OSError as e:
        sys.stderr.write(f"Warning: Failed to open GIT_TRACE file {target}: {e}\n")
        return False
    return True


def default_logging_config() -> None:
    """Set up the default refkind loggers.

    GIT_TRACE set to ``1``, ``2`` or ``true`` sends debug output to stderr;
    an absolute path sends it to that file (or to a per-process file inside
    it when the path is a directory). Otherwise INFO and above go to stderr.
    """
    remove_null_handler()
    if not _configure_logging_from_trace():
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s: %(message)s",
        )


def remove_null_handler() -> None:
    """Remove the null handler from the refkind logger."""
    _REFKIND_LOGGER.removeHandler(_NULL_HANDLER)
