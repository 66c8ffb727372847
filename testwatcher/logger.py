import logging
import os


def setup_logger(name, level=logging.INFO, log_dir=None, log_filename="testwatcher.log", console=True):
    """
    Set up and return a logger with an optional file handler and a console handler.

    The console handler writes to stderr so log records never interleave with
    the colorized test output on stdout.

    Args:
        name (str): The logger name.
        level (int|str): Logging level, either numeric or a level name.
        log_dir (str): Directory where the log file will be stored. No file
            handler is added when empty.
        log_filename (str): Log file name.
        console (bool): Whether to add a console handler.

    Returns:
        logging.Logger: The configured logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear out any existing handlers.
    logger.handlers = []

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(os.path.join(log_dir, log_filename))
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
