#
# Copyright (c) 2025, 7th software Ltd.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations
import logging
import logging.handlers
import os

from knockoff_arcade.config import Logging


def setup_logging(name: str = "knockoff_arcade", level: str | None = None,
                  log_file: str | None = None) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        name: Logger to configure. Every module logs under `knockoff_arcade.*`, so the default covers them all.
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Unknown names fall back to INFO.
        log_file: Optional file to log to as well as the console. Rotated when it grows too big.

    Returns:
        logging.Logger: The configured logger.

    Notes:
        Calling this again replaces the handlers installed by the previous call.
    """

    level_no = getattr(logging, (level or Logging.LEVEL).upper(), logging.INFO)
    formatter = logging.Formatter(Logging.FORMAT)

    logger = logging.getLogger(name)
    logger.setLevel(level_no)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level_no)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        directory = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(directory, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=Logging.MAX_BYTES,
            backupCount=Logging.BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level_no)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
