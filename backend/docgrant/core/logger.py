"""
日志配置模块
"""
import logging
import sys


def setup_logging(level: str = "INFO"):
    """
    配置 docgrant 日志记录器，防止重复添加 handler
    """
    logger = logging.getLogger("docgrant")
    logger.setLevel(level.upper())

    # 检查是否已有 handler，如果有则直接返回，避免重复添加
    if logger.handlers:
        return logger

    # 防止向上级 logger 传播，避免重复日志
    logger.propagate = False

    console_handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
