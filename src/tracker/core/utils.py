import logging


def set_logging_level(level: int) -> None:
    """Set logging level for all tracker loggers.

    Args:
        level: The logging level to set
    """
    loggers = [logging.getLogger(name) for name in logging.root.manager.loggerDict]
    for logger in loggers:
        if "tracker" in logger.name or "backend" in logger.name or "__main__" == logger.name:
            logger.setLevel(level)

    logging.getLogger("tracker").setLevel(level)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.basicConfig(format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
