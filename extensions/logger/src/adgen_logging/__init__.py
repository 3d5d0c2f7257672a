"""
Logging
"""

from adgen_logging.logging_callback import AdgenLogger, default_logger

__all__ = ["AdgenLogger"]


import adgen

adgen.Configuration(logger := AdgenLogger())
default_logger.info("%s set as logger for adgen", str(logger))
