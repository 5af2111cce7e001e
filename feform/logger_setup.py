import logging


class CustomFormatter(logging.Formatter):
    """Colored level names for terminal output."""

    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    blue = "\x1b[34;20m"
    reset = "\x1b[0m"
    fmt = "[%(asctime)s][%(levelname)s] %(name)s: %(message)s"

    FORMATS = {
        logging.DEBUG: blue + fmt + reset,
        logging.INFO: grey + fmt + reset,
        logging.WARNING: yellow + fmt + reset,
        logging.ERROR: red + fmt + reset,
        logging.CRITICAL: bold_red + fmt + reset
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt, datefmt='%m-%d %H:%M:%S')
        return formatter.format(record)


def _custom_handlers(logger):
    return [h for h in logger.handlers
            if isinstance(h, logging.StreamHandler) and isinstance(h.formatter, CustomFormatter)]


def setup_logger(name, level=logging.INFO):
    """Return the named logger with a single colored stream handler.

    Calling this twice with the same name returns the same logger and does
    not stack handlers.
    """
    logger = logging.getLogger(name)

    if not _custom_handlers(logger):
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter())
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False

    return logger
