'''
Logger centralisé de l'application (Loguru).

Console colorée sur stderr, plus trois fichiers journaliers sous LOG_DIR :
debug.log, info.log (INFO et WARNING, dont les replis de la recherche de
proximité) et error.log.
'''

import sys
import os
from loguru import logger

from app.config import settings

LOG_DIR = settings.LOG_DIR
os.makedirs(LOG_DIR, exist_ok=True)

LOG_FORMAT_CONSOLE = (
    "<white>{time:YYYY-MM-DD HH:mm:ss.SSS}</white> | "
    "<level>{level: <8}</level> | "
    "<light-black>{name}:{function}:{line}</light-black> - "
    "<level><b>{message}</b></level>"
)
LOG_FORMAT_FILE = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

# (fichier, niveau minimal, niveaux retenus ou None pour tout ce qui dépasse le minimum)
FILE_SINKS = (
    ("debug.log", "DEBUG", ("DEBUG",)),
    ("info.log", "INFO", ("INFO", "WARNING")),
    ("error.log", "ERROR", None),
)


def _only(levels):
    if levels is None:
        return None
    return lambda record: record["level"].name in levels


logger.remove()
logger.add(
    sys.stderr,
    level=settings.LOG_LEVEL,
    format=LOG_FORMAT_CONSOLE,
    colorize=True,
    backtrace=True,
    diagnose=True,
)
for filename, level, levels in FILE_SINKS:
    logger.add(
        os.path.join(LOG_DIR, filename),
        level=level,
        format=LOG_FORMAT_FILE,
        rotation="00:00",
        retention="30 days",
        compression="zip",
        encoding="utf-8",
        filter=_only(levels),
        backtrace=level == "ERROR",
        diagnose=level == "ERROR",
    )
