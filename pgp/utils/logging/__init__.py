from pgp.utils.logging.setup import setup_logging, LOG_FORMAT

__all__ = ["setup_logging", "LOG_FORMAT"]
