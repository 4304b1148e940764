"""
Control file directive parsing.

An LPD control file is a list of one-letter directives, one per line. A few
of them carry job metadata, a fixed set of lowercase codes ask for a data
file to be printed with a given style, everything else is ignored.
"""

from typing import Dict, Iterable, Iterator, Optional

from lpd_gateway.protocol.protocol_models import ControlFileEntry

JOB_NAME = "J"
DOCUMENT_NAME = "N"
USER = "P"
BANNER = "L"

# c=CIF, d=DVI, f=formatted, g=plot, l=raw, n=ditroff, o=PostScript,
# p=pr format, r=FORTRAN carriage control, t=troff, v=raster
PRINT_CODES = frozenset("cdfglnoprtv")

# Options implied by the print style of a directive
STYLE_OPTIONS: Dict[str, Dict[str, str]] = {
    "l": {"raw": ""},
    "p": {"prettyprint": ""},
}


class ControlDirectiveParser:
    """Turns control file lines into ordered ControlFileEntry objects."""

    @staticmethod
    def parse_line(line: str) -> Optional[ControlFileEntry]:
        """Split a line (newline already removed) into code and value."""
        if not line:
            return None
        return ControlFileEntry(code=line[0], value=line[1:].strip())

    def parse(self, lines: Iterable[str]) -> Iterator[ControlFileEntry]:
        for line in lines:
            entry = self.parse_line(line.rstrip("\r\n"))
            if entry is not None:
                yield entry

    @staticmethod
    def is_print_directive(entry: ControlFileEntry) -> bool:
        return entry.code in PRINT_CODES

    @staticmethod
    def style_options_for(code: str, options: Dict[str, str]) -> Dict[str, str]:
        """
        Options a print directive adds on top of the job options.

        Raw passthrough is skipped when a document-format was configured.
        """
        if code == "l" and "document-format" in options:
            return {}
        return dict(STYLE_OPTIONS.get(code, {}))
