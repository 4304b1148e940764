"""
Tests for QueueDefaults - configured and per-queue job options.
"""

import pytest

from lpd_gateway.models import PrinterInfo, PrinterState
from lpd_gateway.services.queue_defaults import JobOptions, QueueDefaults

LPOPTIONS = """\
# Dest myprinter media=letter
Dest MyPrinter media=a4 sides=two-sided-long-edge
Default other copies=2
Dest withoutoptions
"""


@pytest.fixture
def lpoptions_file(tmp_path):
    path = tmp_path / "lpoptions"
    path.write_text(LPOPTIONS)
    return str(path)


def printer(name="myprinter", shared=True, accepting=True):
    return PrinterInfo(name=name, state=PrinterState.IDLE, accepting_jobs=accepting, shared=shared)


class TestLoadQueueOptions:
    @pytest.mark.asyncio
    async def test_dest_line_case_insensitive(self, lpoptions_file):
        defaults = QueueDefaults(lpoptions_path=lpoptions_file)
        assert await defaults.load_queue_options("myprinter") == {
            "media": "a4",
            "sides": "two-sided-long-edge",
        }

    @pytest.mark.asyncio
    async def test_default_line(self, lpoptions_file):
        defaults = QueueDefaults(lpoptions_path=lpoptions_file)
        assert await defaults.load_queue_options("other") == {"copies": "2"}

    @pytest.mark.asyncio
    async def test_queue_without_options(self, lpoptions_file):
        defaults = QueueDefaults(lpoptions_path=lpoptions_file)
        assert await defaults.load_queue_options("withoutoptions") == {}

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        defaults = QueueDefaults(lpoptions_path=str(tmp_path / "missing"))
        assert await defaults.load_queue_options("myprinter") == {}

    @pytest.mark.asyncio
    async def test_disabled(self):
        assert await QueueDefaults().load_queue_options("myprinter") == {}


class TestJobOptions:
    @pytest.mark.asyncio
    async def test_defaults_override_queue_options(self, lpoptions_file):
        defaults = QueueDefaults(default_options="media=letter nocollate", lpoptions_path=lpoptions_file)

        job_options = await defaults.job_options(printer(), originating_host="client")

        assert job_options.merged() == {
            "media": "letter",
            "sides": "two-sided-long-edge",
            "job-originating-host-name": "client",
            "collate": "false",
        }

    @pytest.mark.asyncio
    async def test_lpoptions_skipped_for_unshared_printer(self, lpoptions_file):
        defaults = QueueDefaults(lpoptions_path=lpoptions_file)
        job_options = await defaults.job_options(printer(shared=False))
        assert job_options.queue_options == {}


class TestBannerOptions:
    def test_standard_banner(self):
        assert JobOptions().banner_options({}) == {"job-sheets": "standard"}

    def test_queue_without_banner(self):
        assert JobOptions().banner_options({"job-sheets": "none,none"}) == {"job-sheets": "standard"}

    def test_queue_already_prints_banner(self):
        assert JobOptions().banner_options({"job-sheets": "classified,none"}) == {}

    def test_configured_job_sheets_win(self):
        job_options = JobOptions(global_options={"job-sheets": "none"})
        assert job_options.banner_options({"job-sheets": "none"}) == {}
