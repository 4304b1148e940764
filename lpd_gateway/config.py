from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict
from .utils.host_config import get_hostname_settings_file


class Settings(BaseSettings):
    # LPD listener
    listen_host: str = "0.0.0.0"
    listen_port: int = 515  # RFC 1179 "printer" port

    # Print-queue service (IPP over HTTP)
    print_server_url: str = "http://localhost:631"
    ipp_timeout_seconds: float = 30.0

    # Scratch directory for received control/data files (empty = system temp dir)
    spool_directory: str = ""

    # Default job options, e.g. "media=a4 sides=two-sided-long-edge"
    default_options: str = ""
    lpoptions_path: str = "/etc/cups/lpoptions"

    # Reverse DNS lookup of the client for job-originating-host-name
    hostname_lookups: bool = True

    # Protocol limits
    max_line_length: int = 65536  # Longest accepted command/control line
    max_data_files: int = 100  # Data files per job
    transfer_chunk_size: int = 8192
    # Off by default so data files may arrive before the control file;
    # True rejects a data file that comes first
    strict_control_file_order: bool = False

    # Connection handling
    connection_timeout_seconds: float = 300.0  # Idle read timeout, 0 disables
    max_concurrent_connections: int = 64

    # Logging konfiguration
    log_level: str = "INFO"
    log_file_path: str = "logs/lpd_gateway.log"
    log_retention_days: int = 30

    # Admin HTTP endpoint (health)
    admin_host: str = "127.0.0.1"
    admin_port: int = 8515

    model_config = SettingsConfigDict(env_file=get_hostname_settings_file())

    @property
    def log_directory(self) -> Path:
        """Returnerer log directory som Path objekt"""
        return Path(self.log_file_path).parent

    @property
    def config_file_info(self) -> dict:
        """Return information about which configuration file is being used."""
        from .utils.host_config import get_hostname, list_all_settings_files

        return {
            "hostname": get_hostname(),
            "active_config_file": get_hostname_settings_file(),
            "all_available_configs": list_all_settings_files(),
        }
