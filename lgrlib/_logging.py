"""
Logging configuration for the ``lgrlib`` logger hierarchy.

Every module logs through ``logging.getLogger(__name__)``, so records land
under ``lgrlib.mesh``, ``lgrlib.materials``, ``lgrlib.dynamic_integrators``
and so on. Nothing is printed unless an application calls
:func:`setup_logging`, or sets ``SimulationParams.log_level`` and lets
:meth:`ExplicitSimulation.initialize` call it.

Usage
-----
    from lgrlib import setup_logging

    setup_logging('debug', log_file='run.log')
    setup_logging(logging.WARNING, modules={'dynamic_integrators': logging.INFO})
"""
import logging
import sys
from typing import IO, Mapping, Optional, Union

from lgrlib._errors import ConfigurationError

PACKAGE_LOGGER = "lgrlib"

_FORMAT = '%(asctime)s %(levelname)-7s %(name)s: %(message)s'
_DATEFMT = '%H:%M:%S'


def resolve_level(level: Union[int, str]) -> int:
    """Numeric logging level for an int or a level name such as ``'debug'``."""
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        if not isinstance(value, int):
            raise ConfigurationError(f"Unknown log level: {level!r}")
        return value
    return int(level)


def _is_own(handler: logging.Handler) -> bool:
    return getattr(handler, '_lgrlib', False)


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None,
                  stream: Optional[IO] = None,
                  modules: Optional[Mapping[str, Union[int, str]]] = None,
                  ) -> logging.Logger:
    """Attach console (and optional file) handlers to the ``lgrlib`` logger.

    Handlers installed by an earlier call are closed and replaced; handlers
    added by the application are left alone.

    Parameters
    ----------
    level : int or str
        Level of the package logger and its handlers.
    log_file : str or None
        Path of a log file, truncated on setup.
    stream : file-like or None
        Console stream (default ``sys.stdout``).
    modules : mapping or None
        Per-subpackage levels, keyed relative to ``lgrlib`` (e.g.
        ``{'materials': 'debug'}``). Handlers pass everything the loggers let
        through, so a subpackage may be more verbose than the package.

    Returns
    -------
    logging.Logger
        The package logger.
    """
    level = resolve_level(level)
    sub_levels = {name: resolve_level(value) for name, value in (modules or {}).items()}
    handler_level = min([level, *sub_levels.values()])

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    for handler in [h for h in logger.handlers if _is_own(h)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    handlers = [logging.StreamHandler(stream if stream is not None else sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='w', encoding='utf-8'))
    for handler in handlers:
        handler.setLevel(handler_level)
        handler.setFormatter(formatter)
        handler._lgrlib = True
        logger.addHandler(handler)

    for name, sub_level in sub_levels.items():
        logging.getLogger(f"{PACKAGE_LOGGER}.{name}").setLevel(sub_level)

    logger.debug("logging configured at %s%s", logging.getLevelName(level),
                 f", file {log_file}" if log_file else "")
    return logger
