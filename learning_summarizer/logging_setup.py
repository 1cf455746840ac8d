import logging

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for console runs."""
    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)
    # third-party clients are chatty at DEBUG
    for noisy in ("asyncio", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(max(numeric_level, logging.WARNING))
