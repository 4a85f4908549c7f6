"""
Logging Configuration
Sets up the global logger for the plotter.
"""
import logging
import sys
from typing import Optional


def setupLogging(level: int = logging.INFO, logFile: Optional[str] = None) -> None:
    """
    Configures the root logger; the plotter's modules log under their own names.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        logFile: Optional path to save logs to a file.
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # re-running main() in the same interpreter must not duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    consoleHandler = logging.StreamHandler(sys.stdout)
    consoleHandler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    consoleHandler.setFormatter(formatter)
    logger.addHandler(consoleHandler)

    if logFile:
        fileHandler = logging.FileHandler(logFile, mode='w', encoding='utf-8')
        fileHandler.setLevel(level)
        fileHandler.setFormatter(formatter)
        logger.addHandler(fileHandler)

    logger.info("Logging initialized.")
