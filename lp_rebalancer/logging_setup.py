"""Console logging for the bot process"""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level="INFO"):
    """Install a single console handler on the package logger"""
    logger = logging.getLogger("lp_rebalancer")
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    if not any(getattr(h, "_lp_rebalancer", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._lp_rebalancer = True
        logger.addHandler(handler)

    # web3 and urllib3 are chatty at DEBUG
    logging.getLogger("web3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return logger
