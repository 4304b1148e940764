"""
Minimal IPP/1.1 message encoding and decoding (RFC 8010).

Only the parts needed by the LPD gateway are covered: integer, boolean,
enum and string values, additional values, and document data trailing the
attributes. Collections and other octet-string syntaxes are kept as raw
bytes.
"""

import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Tuple

IPP_VERSION = (1, 1)

# Highest status code that still counts as success
STATUS_OK_CONFLICTING = 0x0002


class IppError(Exception):
    """Raised when an IPP message cannot be decoded."""

    pass


class Operation(IntEnum):
    PRINT_JOB = 0x0002
    CANCEL_JOB = 0x0008
    GET_JOB_ATTRIBUTES = 0x0009
    GET_JOBS = 0x000A
    GET_PRINTER_ATTRIBUTES = 0x000B
    CUPS_GET_PRINTERS = 0x4002


class GroupTag(IntEnum):
    OPERATION = 0x01
    JOB = 0x02
    END = 0x03
    PRINTER = 0x04
    UNSUPPORTED = 0x05


class ValueTag(IntEnum):
    UNSUPPORTED = 0x10
    UNKNOWN = 0x12
    NO_VALUE = 0x13
    INTEGER = 0x21
    BOOLEAN = 0x22
    ENUM = 0x23
    OCTET_STRING = 0x30
    DATETIME = 0x31
    RESOLUTION = 0x32
    RANGE_OF_INTEGER = 0x33
    BEGIN_COLLECTION = 0x34
    TEXT_WITH_LANGUAGE = 0x35
    NAME_WITH_LANGUAGE = 0x36
    END_COLLECTION = 0x37
    TEXT = 0x41
    NAME = 0x42
    KEYWORD = 0x44
    URI = 0x45
    URI_SCHEME = 0x46
    CHARSET = 0x47
    NATURAL_LANGUAGE = 0x48
    MIME_MEDIA_TYPE = 0x49
    MEMBER_NAME = 0x4A


_STRING_TAGS = frozenset(range(0x40, 0x60))
_INTEGER_TAGS = frozenset({ValueTag.INTEGER, ValueTag.ENUM})


@dataclass
class IppAttribute:
    name: str
    tag: int
    values: List[Any] = field(default_factory=list)

    @property
    def value(self) -> Any:
        return self.values[0] if self.values else None


@dataclass
class IppGroup:
    tag: int
    attributes: Dict[str, IppAttribute] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        attribute = self.attributes.get(name)
        return attribute.value if attribute is not None else default


@dataclass
class IppMessage:
    """An IPP request or response. `code` is the operation id or status code."""

    code: int
    request_id: int = 1
    version: Tuple[int, int] = IPP_VERSION
    groups: List[IppGroup] = field(default_factory=list)
    data: bytes = b""

    @property
    def status_code(self) -> int:
        return self.code

    @property
    def is_successful(self) -> bool:
        return self.code <= STATUS_OK_CONFLICTING

    def add(self, group_tag: int, name: str, tag: int, *values: Any) -> IppAttribute:
        """Add an attribute, reusing the last group when it has the same tag."""
        if not self.groups or self.groups[-1].tag != group_tag:
            self.groups.append(IppGroup(tag=group_tag))
        attribute = IppAttribute(name=name, tag=tag, values=list(values))
        self.groups[-1].attributes[name] = attribute
        return attribute

    def iter_groups(self, group_tag: int) -> Iterator[IppGroup]:
        for group in self.groups:
            if group.tag == group_tag:
                yield group

    def find(self, name: str, group_tag: Optional[int] = None) -> Optional[IppAttribute]:
        for group in self.groups:
            if group_tag is not None and group.tag != group_tag:
                continue
            if name in group.attributes:
                return group.attributes[name]
        return None

    def encode(self) -> bytes:
        buffer = bytearray()
        buffer += struct.pack(">BBHI", self.version[0], self.version[1], self.code, self.request_id)
        for group in self.groups:
            buffer.append(group.tag)
            for attribute in group.attributes.values():
                values = attribute.values or [None]
                for index, value in enumerate(values):
                    name = attribute.name.encode("utf-8") if index == 0 else b""
                    encoded = _encode_value(attribute.tag, value)
                    buffer.append(attribute.tag)
                    buffer += struct.pack(">H", len(name)) + name
                    buffer += struct.pack(">H", len(encoded)) + encoded
        buffer.append(GroupTag.END)
        buffer += self.data
        return bytes(buffer)

    @classmethod
    def decode(cls, payload: bytes) -> "IppMessage":
        if len(payload) < 9:
            raise IppError(f"IPP message too short ({len(payload)} bytes)")

        major, minor, code, request_id = struct.unpack(">BBHI", payload[:8])
        message = cls(code=code, request_id=request_id, version=(major, minor))
        position = 8
        current_group: Optional[IppGroup] = None
        last_attribute: Optional[IppAttribute] = None

        try:
            while True:
                tag = payload[position]
                position += 1

                if tag == GroupTag.END:
                    break

                if tag < 0x10:
                    current_group = IppGroup(tag=tag)
                    message.groups.append(current_group)
                    last_attribute = None
                    continue

                if current_group is None:
                    raise IppError(f"Value tag 0x{tag:02X} outside an attribute group")

                (name_length,) = struct.unpack(">H", payload[position:position + 2])
                position += 2
                name = payload[position:position + name_length].decode("utf-8", "replace")
                position += name_length
                (value_length,) = struct.unpack(">H", payload[position:position + 2])
                position += 2
                raw = payload[position:position + value_length]
                if len(raw) != value_length:
                    raise IppError("Truncated attribute value")
                position += value_length

                value = _decode_value(tag, raw)
                if name_length == 0 and last_attribute is not None:
                    last_attribute.values.append(value)
                elif name_length:
                    last_attribute = IppAttribute(name=name, tag=tag, values=[value])
                    current_group.attributes[name] = last_attribute
        except (IndexError, struct.error) as e:
            raise IppError("Unexpected end of IPP message") from e

        message.data = payload[position:]
        return message


def _encode_value(tag: int, value: Any) -> bytes:
    if value is None or 0x10 <= tag < 0x20:
        return b""
    if tag in _INTEGER_TAGS:
        return struct.pack(">i", int(value))
    if tag == ValueTag.BOOLEAN:
        return b"\x01" if value else b"\x00"
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


def _decode_value(tag: int, raw: bytes) -> Any:
    if 0x10 <= tag < 0x20:
        return None
    if tag in _INTEGER_TAGS and len(raw) == 4:
        return struct.unpack(">i", raw)[0]
    if tag == ValueTag.BOOLEAN and len(raw) == 1:
        return raw != b"\x00"
    if tag in (ValueTag.TEXT_WITH_LANGUAGE, ValueTag.NAME_WITH_LANGUAGE):
        (lang_length,) = struct.unpack(">H", raw[:2])
        offset = 2 + lang_length
        (text_length,) = struct.unpack(">H", raw[offset:offset + 2])
        return raw[offset + 2:offset + 2 + text_length].decode("utf-8", "replace")
    if tag in _STRING_TAGS:
        return raw.decode("utf-8", "replace")
    return raw


# Job options whose values are names rather than keywords
_NAME_OPTIONS = frozenset({"job-sheets", "job-originating-host-name"})


def option_values(name: str, value: str) -> Tuple[int, List[Any]]:
    """Pick the IPP syntax for a `name=value` job option."""
    lowered = value.lower()
    if value == "" or lowered in ("true", "false"):
        return ValueTag.BOOLEAN, [lowered != "false"]

    parts = value.split(",") if name != "job-originating-host-name" else [value]
    if all(part.isdigit() for part in parts):
        return ValueTag.INTEGER, [int(part) for part in parts]
    if name in _NAME_OPTIONS:
        return ValueTag.NAME, parts
    if name == "document-format":
        return ValueTag.MIME_MEDIA_TYPE, parts
    if any(" " in part for part in parts):
        return ValueTag.TEXT, parts
    return ValueTag.KEYWORD, parts


RAW_DOCUMENT_FORMAT = "application/vnd.cups-raw"


def encode_job_options(message: IppMessage, options: Dict[str, str]) -> None:
    """
    Add job options to a request.

    document-format goes in the operation group. `raw` is not a job
    attribute: it asks for the raw document format unless a format was
    given explicitly.
    """
    document_format = options.get("document-format")
    if not document_format and "raw" in options:
        document_format = RAW_DOCUMENT_FORMAT
    if document_format:
        message.add(
            GroupTag.OPERATION, "document-format", ValueTag.MIME_MEDIA_TYPE, document_format
        )

    for name, value in options.items():
        if name in ("document-format", "raw"):
            continue
        tag, values = option_values(name, value)
        message.add(GroupTag.JOB, name, tag, *values)
