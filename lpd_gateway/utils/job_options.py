"""
Parsing of CUPS-style option strings.

    "media=a4 sides=two-sided-long-edge job-sheets=standard,none nobanner"

Bare names become "true", bare names prefixed with "no" become "false".
Values may be quoted with '...', "..." or {...}; a backslash escapes the
next character.
"""

from typing import Dict


def parse_options(text: str, options: Dict[str, str] = None) -> Dict[str, str]:
    """Parse an option string, adding to (and returning) `options`."""
    result: Dict[str, str] = {} if options is None else options
    length = len(text)
    position = 0

    while position < length:
        while position < length and text[position].isspace():
            position += 1
        if position >= length:
            break

        start = position
        while position < length and not text[position].isspace() and text[position] != "=":
            position += 1
        name = text[start:position]

        if position >= length or text[position] != "=":
            if name.lower().startswith("no") and len(name) > 2:
                result[name[2:]] = "false"
            elif name:
                result[name] = "true"
            continue

        position += 1  # skip "="
        value_chars = []
        while position < length and not text[position].isspace():
            char = text[position]
            if char == "\\" and position + 1 < length:
                value_chars.append(text[position + 1])
                position += 2
            elif char in ("'", '"'):
                end = text.find(char, position + 1)
                end = length if end < 0 else end
                value_chars.append(text[position + 1:end])
                position = end + 1
            elif char == "{":
                end = text.find("}", position + 1)
                end = length - 1 if end < 0 else end
                value_chars.append(text[position:end + 1])
                position = end + 1
            else:
                value_chars.append(char)
                position += 1

        if name:
            result[name] = "".join(value_chars)

    return result


def format_options(options: Dict[str, str]) -> str:
    """Inverse of parse_options for logging."""
    parts = []
    for name, value in options.items():
        if value == "":
            parts.append(name)
        elif any(c.isspace() for c in value):
            parts.append(f"{name}='{value}'")
        else:
            parts.append(f"{name}={value}")
    return " ".join(parts)
