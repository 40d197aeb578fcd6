# config.py -- Reading Git configuration files
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

"""Reading Git configuration files.

Only the parts of the format needed to open a repository are supported;
include directives are ignored and nothing is ever written back.
"""

__all__ = [
    "Config",
    "ConfigDict",
    "ConfigFile",
]

import os
from collections.abc import Iterator
from typing import IO, Optional, Union

from .log_utils import getLogger

logger = getLogger(__name__)

Name = bytes
NameLike = Union[bytes, str]
Section = tuple[bytes, ...]
SectionLike = Union[bytes, str, tuple[Union[bytes, str], ...]]
Value = bytes


def _lower_section(section: Section) -> Section:
    # Section names are case-insensitive, subsection names are not.
    return (section[0].lower(),) + section[1:]


class Config:
    """A Git configuration."""

    def get(self, section: SectionLike, name: NameLike) -> Value:
        """Retrieve the contents of a configuration setting.

        Args:
          section: Tuple with section name and optional subsection name
          name: Variable name
        Returns:
          Contents of the setting
        Raises:
          KeyError: if the value is not set
        """
        raise NotImplementedError(self.get)

    def get_boolean(
        self, section: SectionLike, name: NameLike, default: Optional[bool] = None
    ) -> Optional[bool]:
        """Retrieve a configuration setting as boolean.

        Args:
          section: Tuple with section name and optional subsection name
          name: Name of the setting
          default: Default value if setting is not found
        Returns:
          Contents of the setting
        """
        try:
            value = self.get(section, name)
        except KeyError:
            return default
        if value.lower() in (b"true", b"yes", b"on", b"1"):
            return True
        elif value.lower() in (b"false", b"no", b"off", b"0", b""):
            return False
        raise ValueError(f"not a valid boolean string: {value!r}")

    def items(self, section: SectionLike) -> Iterator[tuple[Name, Value]]:
        """Iterate over the configuration pairs for a specific section."""
        raise NotImplementedError(self.items)

    def sections(self) -> Iterator[Section]:
        """Iterate over the sections."""
        raise NotImplementedError(self.sections)


class ConfigDict(Config):
    """Git configuration stored in a dictionary.

    Section and variable names are stored lowercased; the last assignment of
    a variable wins.
    """

    def __init__(
        self,
        values: Optional[dict[Section, dict[Name, Value]]] = None,
        encoding: Optional[str] = None,
    ) -> None:
        if encoding is None:
            encoding = "utf-8"
        self.encoding = encoding
        self._values: dict[Section, dict[Name, Value]] = {}
        for section, settings in (values or {}).items():
            target = self._values.setdefault(_lower_section(section), {})
            for name, value in settings.items():
                target[name.lower()] = value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._values!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, self.__class__) and other._values == self._values

    def _check_section_and_name(
        self, section: SectionLike, name: NameLike
    ) -> tuple[Section, Name]:
        if not isinstance(section, tuple):
            section = (section,)
        checked = tuple(
            s.encode(self.encoding) if not isinstance(s, bytes) else s for s in section
        )
        if not isinstance(name, bytes):
            name = name.encode(self.encoding)
        return _lower_section(checked), name.lower()

    def get(self, section: SectionLike, name: NameLike) -> Value:
        section, name = self._check_section_and_name(section, name)
        if len(section) > 1:
            try:
                return self._values[section][name]
            except KeyError:
                pass
        return self._values[(section[0],)][name]

    def set(self, section: SectionLike, name: NameLike, value: Union[bytes, str, bool]) -> None:
        """Set a configuration value in memory."""
        section, name = self._check_section_and_name(section, name)
        if isinstance(value, bool):
            value = b"true" if value else b"false"
        if not isinstance(value, bytes):
            value = value.encode(self.encoding)
        self._values.setdefault(section, {})[name] = value

    def items(self, section: SectionLike) -> Iterator[tuple[Name, Value]]:
        section, _ = self._check_section_and_name(section, b"")
        return iter(self._values.get(section, {}).items())

    def sections(self) -> Iterator[Section]:
        return iter(self._values.keys())


_ESCAPE_TABLE = {
    ord(b"\\"): ord(b"\\"),
    ord(b'"'): ord(b'"'),
    ord(b"n"): ord(b"\n"),
    ord(b"t"): ord(b"\t"),
    ord(b"b"): ord(b"\b"),
}
_COMMENT_CHARS = (ord(b"#"), ord(b";"))
_WHITESPACE_CHARS = (ord(b"\t"), ord(b" "))


def _parse_string(value: bytes) -> bytes:
    data = bytearray(value.strip())
    ret = bytearray()
    whitespace = bytearray()
    in_quotes = False
    i = 0
    while i < len(data):
        c = data[i]
        if c == ord(b"\\"):
            i += 1
            if i < len(data) and data[i] in _ESCAPE_TABLE:
                ret.extend(whitespace)
                whitespace = bytearray()
                ret.append(_ESCAPE_TABLE[data[i]])
            else:
                ret.extend(whitespace)
                whitespace = bytearray()
                ret.append(ord(b"\\"))
                continue
        elif c == ord(b'"'):
            in_quotes = not in_quotes
        elif c in _COMMENT_CHARS and not in_quotes:
            break
        elif c in _WHITESPACE_CHARS:
            whitespace.append(c)
        else:
            ret.extend(whitespace)
            whitespace = bytearray()
            ret.append(c)
        i += 1
    if in_quotes:
        raise ValueError("missing end quote")
    return bytes(ret)


def _strip_comments(line: bytes) -> bytes:
    string_open = False
    for i, c in enumerate(bytearray(line)):
        if c == ord(b'"'):
            string_open = not string_open
        elif not string_open and c in _COMMENT_CHARS:
            return line[:i]
    return line


def _check_variable_name(name: bytes) -> bool:
    return bool(name) and all(
        name[i : i + 1].isalnum() or name[i : i + 1] == b"-" for i in range(len(name))
    )


def _check_section_name(name: bytes) -> bool:
    return bool(name) and all(
        name[i : i + 1].isalnum() or name[i : i + 1] in (b"-", b".")
        for i in range(len(name))
    )


def _parse_section_header_line(line: bytes) -> tuple[Section, bytes]:
    line = _strip_comments(line).rstrip()
    in_quotes = False
    escaped = False
    for i, c in enumerate(line):
        if escaped:
            escaped = False
            continue
        if c == ord(b'"'):
            in_quotes = not in_quotes
        elif c == ord(b"\\"):
            escaped = True
        elif c == ord(b"]") and not in_quotes:
            last = i
            break
    else:
        raise ValueError("expected trailing ]")
    pts = line[1:last].split(b" ", 1)
    rest = line[last + 1 :]
    if not _check_section_name(pts[0]):
        raise ValueError(f"invalid section name {pts[0]!r}")
    if len(pts) == 2:
        if pts[1][:1] != b'"' or pts[1][-1:] != b'"':
            raise ValueError(f"Invalid subsection {pts[1]!r}")
        return (pts[0], pts[1][1:-1]), rest
    dotted = pts[0].split(b".", 1)
    if len(dotted) == 2:
        return (dotted[0], dotted[1]), rest
    return (dotted[0],), rest


class ConfigFile(ConfigDict):
    """A Git configuration file, like .git/config or ~/.gitconfig."""

    def __init__(
        self,
        values: Optional[dict[Section, dict[Name, Value]]] = None,
        encoding: Optional[str] = None,
    ) -> None:
        super().__init__(values=values, encoding=encoding)
        self.path: Optional[str] = None

    @classmethod
    def from_file(cls, f: IO[bytes]) -> "ConfigFile":
        """Read configuration from a file-like object."""
        ret = cls()
        section: Optional[Section] = None
        setting: Optional[bytes] = None
        continuation = b""
        for lineno, line in enumerate(f.readlines()):
            if lineno == 0 and line.startswith(b"\xef\xbb\xbf"):
                line = line[3:]
            line = line.lstrip()
            if setting is not None:
                # continuation line
                assert section is not None
                stripped = line.rstrip(b"\r\n")
                if stripped.endswith(b"\\"):
                    continuation += stripped[:-1]
                    continue
                ret._values[section][setting] = _parse_string(continuation + stripped)
                setting = None
                continue
            if line[:1] == b"[":
                parsed, line = _parse_section_header_line(line)
                section = _lower_section(parsed)
                ret._values.setdefault(section, {})
            if _strip_comments(line).strip() == b"":
                continue
            if section is None:
                raise ValueError(f"setting {line!r} without section")
            try:
                name, value = line.split(b"=", 1)
            except ValueError:
                name, value = line, b"true"
            name = _strip_comments(name).strip().lower()
            if not _check_variable_name(name):
                raise ValueError(f"invalid variable name {name!r}")
            stripped = value.rstrip(b"\r\n")
            if stripped.endswith(b"\\") and not stripped.endswith(b"\\\\"):
                setting = name
                continuation = stripped[:-1]
                continue
            ret._values[section][name] = _parse_string(value)
        if setting is not None:
            assert section is not None
            ret._values[section][setting] = _parse_string(continuation)
        return ret

    @classmethod
    def from_path(cls, path: Union[str, "os.PathLike[str]"]) -> "ConfigFile":
        """Read configuration from a file on disk."""
        with open(path, "rb") as f:
            ret = cls.from_file(f)
            ret.path = os.fspath(path)
            logger.debug("read configuration from %s", ret.path)
            return ret
