"""
Queue Defaults - default job options for jobs received over LPD.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict

import aiofiles

from lpd_gateway.models import PrinterInfo
from lpd_gateway.utils.job_options import format_options, parse_options


@dataclass
class JobOptions:
    """Options gathered for one job before its control file is processed."""

    queue_options: Dict[str, str] = field(default_factory=dict)
    global_options: Dict[str, str] = field(default_factory=dict)
    originating_host: str = ""

    def merged(self) -> Dict[str, str]:
        """Queue options, then the originating host, then gateway defaults on top."""
        options = dict(self.queue_options)
        if self.originating_host:
            options["job-originating-host-name"] = self.originating_host
        options.update(self.global_options)
        return options

    def banner_options(self, options: Dict[str, str]) -> Dict[str, str]:
        """
        Options for an `L` (print banner) directive.

        A standard banner is added unless the gateway defaults pick the
        job-sheets themselves or the queue already prints a banner.
        """
        if "job-sheets" in self.global_options:
            return {}
        if options.get("job-sheets", "none,none") != "none,none":
            return {}
        return {"job-sheets": "standard"}


class QueueDefaults:
    """Default options from configuration and from an lpoptions file."""

    def __init__(self, default_options: str = "", lpoptions_path: str = ""):
        self.global_options = parse_options(default_options)
        self.lpoptions_path = lpoptions_path

        if self.global_options:
            logging.info(f"Default job options: {format_options(self.global_options)}")

    async def load_queue_options(self, queue: str) -> Dict[str, str]:
        """Read `Dest <queue> options` or `Default <queue> options` from lpoptions."""
        if not self.lpoptions_path:
            return {}

        try:
            async with aiofiles.open(self.lpoptions_path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            logging.debug(f"No lpoptions file at {self.lpoptions_path}")
            return {}
        except OSError as e:
            logging.warning(f"Unable to read {self.lpoptions_path}: {e}")
            return {}

        for raw_line in content.splitlines():
            line = raw_line.split("#", 1)[0].strip()
            fields = line.split(None, 2)
            if len(fields) < 2 or fields[0].lower() not in ("dest", "default"):
                continue
            if fields[1].lower() == queue.lower():
                return parse_options(fields[2] if len(fields) > 2 else "")

        return {}

    async def job_options(self, printer: PrinterInfo, originating_host: str = "") -> JobOptions:
        # lpoptions only applies to queues we are allowed to print to
        queue_options: Dict[str, str] = {}
        if printer.shared and printer.accepting_jobs:
            queue_options = await self.load_queue_options(printer.name)

        return JobOptions(
            queue_options=queue_options,
            global_options=dict(self.global_options),
            originating_host=originating_host,
        )
