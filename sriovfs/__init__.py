# SPDX-License-Identifier: MIT
# Copyright © 2024 Intel Corporation

import copy
import logging
import logging.config
import typing

LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "detailed": {
            "format": "%(asctime)s [%(levelname)s]: %(name)s (%(funcName)s:%(lineno)d) - %(message)s"
        },
        "simple": {"format": "%(levelname)s - %(message)s"},
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "detailed",
            "level": "WARNING",
            "stream": "ext://sys.stdout",
        },
        "file": {
            "backupCount": 5,
            "class": "logging.handlers.RotatingFileHandler",
            "filename": "sriovfs.log",
            "formatter": "detailed",
            "maxBytes": 5242880,
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": "DEBUG"
    }
}

# Library default: records go wherever the application routes them
logging.getLogger(__name__).addHandler(logging.NullHandler())


def setup_logging(log_file: typing.Optional[str] = 'sriovfs.log') -> None:
    """Apply LOG_CONFIG to the root logger. Meant for entry points, not for library import.
    log_file=None keeps the console handler only.
    """
    config = copy.deepcopy(LOG_CONFIG)
    if log_file is None:
        del config['handlers']['file']
        config['root']['handlers'] = ['console']
    else:
        config['handlers']['file']['filename'] = str(log_file)

    logging.config.dictConfig(config)

    logger = logging.getLogger('sriovfs.Init')
    logger.info('###########################################')
    logger.info('#                 sriovfs                 #')
    logger.info('#   SR-IOV sysfs device provider (host)   #')
    logger.info('###########################################')
