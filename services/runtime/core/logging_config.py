import os

from services.common.core.logging_config import configure_queue_logging, normalize_victorialogs_url
from services.common.core.logging_config import setup_logging as common_setup_logging


def setup_logging():
    """
    Load the YAML config and initialize logging.
    Also configure async log delivery to VictoriaLogs when a URL is set.
    """
    config_path = os.getenv("LOG_CONFIG_PATH", "/app/config/runtime_log.yaml")
    common_setup_logging(config_path)

    vl_url = normalize_victorialogs_url(os.getenv("VICTORIALOGS_URL", ""))
    configure_queue_logging(service_name="open-runtimes-python", vl_url=vl_url)
