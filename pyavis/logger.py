"""
Logging set-up for pyavis runs.

Package modules only create child loggers (``pyavis.metrics``,
``pyavis.repeatability`` ...) and never attach handlers. A driver script calls
:func:`setup_logging` once, which routes all of them to stdout and,
optionally, to a log file in the project's Output folder.
"""
import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# third-party loggers that flood DEBUG output (font manager, HDF5 filters)
NOISY_LIBRARIES = ('matplotlib', 'PIL', 'h5py', 'numexpr')


def _handler(handler, level):
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler

def setup_logging(level=logging.INFO, log_file=None, quiet_libraries=True):
    """
    Attach console and file handlers to the ``pyavis`` logger.

    Calling it again replaces the handlers of the previous call, so a script
    re-run in the same interpreter does not print every message twice.

    Parameters
    ----------
    level : int or str
        Logging level, either a constant such as ``logging.DEBUG`` or its
        name ('DEBUG', 'info', ...)
    log_file : str, optional
        Path to a log file. If None, logs only to the console.
    quiet_libraries : bool
        Hold the matplotlib, PIL, h5py and numexpr loggers at WARNING

    Returns
    -------
    logger : logging.Logger
        The configured ``pyavis`` logger

    Examples
    --------
    >>> from pyavis.logger import setup_logging
    >>> logger = setup_logging('DEBUG', log_file='Output/pyavis_analysis.log')
    >>> logger.info("Starting survey comparison...")
    """
    if isinstance(level, str):
        name = level
        level = logging.getLevelName(name.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level '{name}'")

    logger = logging.getLogger('pyavis')
    logger.setLevel(level)

    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), level))
    if log_file:
        logger.addHandler(_handler(logging.FileHandler(log_file), level))

    if quiet_libraries:
        for lib in NOISY_LIBRARIES:
            logging.getLogger(lib).setLevel(logging.WARNING)

    return logger
