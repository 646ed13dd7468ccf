"""日志配置。"""

from __future__ import annotations

import logging

# Pillow 在 DEBUG 级别会逐块输出解码细节。
NOISY_LOGGERS = ("PIL",)


def setup_logging(level: int = logging.INFO) -> None:
    """初始化项目日志配置，第三方库日志不低于 INFO。"""

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
