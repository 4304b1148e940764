from functools import lru_cache
from typing import Dict, Any

from .config import Settings
from .print_queue.base_client import PrintQueueClient
from .print_queue.ipp_client import IppPrintQueueClient
from .services.command_dispatcher import CommandDispatcher
from .services.job_canceller import JobCanceller
from .services.job_receiver import JobReceiver
from .services.lpd_server import LpdServer
from .services.queue_defaults import QueueDefaults
from .services.status_reporter import StatusReporter

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Hent Settings singleton instance."""
    return Settings()


def get_print_queue_client() -> PrintQueueClient:
    # Delt mellem alle forbindelser
    if "print_queue_client" not in _singletons:
        settings = get_settings()
        _singletons["print_queue_client"] = IppPrintQueueClient(
            base_url=settings.print_server_url,
            timeout=settings.ipp_timeout_seconds,
        )
    return _singletons["print_queue_client"]


def get_queue_defaults() -> QueueDefaults:
    if "queue_defaults" not in _singletons:
        settings = get_settings()
        _singletons["queue_defaults"] = QueueDefaults(
            default_options=settings.default_options,
            lpoptions_path=settings.lpoptions_path,
        )
    return _singletons["queue_defaults"]


def get_job_receiver() -> JobReceiver:
    if "job_receiver" not in _singletons:
        _singletons["job_receiver"] = JobReceiver(
            settings=get_settings(),
            print_queue=get_print_queue_client(),
            queue_defaults=get_queue_defaults(),
        )
    return _singletons["job_receiver"]


def get_status_reporter() -> StatusReporter:
    if "status_reporter" not in _singletons:
        _singletons["status_reporter"] = StatusReporter(get_print_queue_client())
    return _singletons["status_reporter"]


def get_job_canceller() -> JobCanceller:
    if "job_canceller" not in _singletons:
        _singletons["job_canceller"] = JobCanceller(get_print_queue_client())
    return _singletons["job_canceller"]


def get_command_dispatcher() -> CommandDispatcher:
    if "command_dispatcher" not in _singletons:
        _singletons["command_dispatcher"] = CommandDispatcher(
            receiver=get_job_receiver(),
            reporter=get_status_reporter(),
            canceller=get_job_canceller(),
        )
    return _singletons["command_dispatcher"]


def get_lpd_server() -> LpdServer:
    if "lpd_server" not in _singletons:
        _singletons["lpd_server"] = LpdServer(
            settings=get_settings(), dispatcher=get_command_dispatcher()
        )
    return _singletons["lpd_server"]


def reset_singletons() -> None:
    global _singletons
    _singletons.clear()
