import logging
import sys

from loguru import logger

from app.core.config import settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """
    拦截标准库 logging 消息并转发到 Loguru
    """
    def emit(self, record):
        # 获取对应的 Loguru level
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # 获取调用栈深度
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def _with_fields(base: str):
    """
    生成 format 函数：业务日志以 logger.info("event", extra={...}) 记录，
    字段存在时追加到消息末尾，便于 grep 审计。
    """
    def _format(record) -> str:
        fmt = base
        if record["extra"].get("extra"):
            fmt += " | {extra[extra]}"
        return fmt + "\n{exception}"

    return _format


def setup_logging():
    """
    配置 Loguru 日志
    """
    # 移除 Loguru 默认的 handler
    logger.remove()

    # 1. 输出到控制台
    logger.add(
        sys.stderr,
        level=settings.LOG_LEVEL,
        format=_with_fields(_CONSOLE_FORMAT),
        serialize=settings.LOG_JSON_FORMAT,  # 如果是 True，则输出 JSON 格式，适合 ELK
        enqueue=settings.LOG_ASYNC,  # 测试环境可关闭队列以规避 semlock 权限问题
        backtrace=True,
        diagnose=settings.DEBUG,
    )

    # 2. 输出到文件 (如果有路径配置)
    if settings.LOG_FILE_PATH:
        logger.add(
            settings.LOG_FILE_PATH,
            rotation=settings.LOG_ROTATION,
            retention=settings.LOG_RETENTION,
            level=settings.LOG_LEVEL,
            format=_with_fields(_FILE_FORMAT),
            encoding="utf-8",
            enqueue=settings.LOG_ASYNC,
            compression="zip", # 轮转后压缩
        )

    # 3. 拦截标准库 logging (Uvicorn, FastAPI, SQLAlchemy 等)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("uvicorn.access").handlers = [InterceptHandler()]
    logging.getLogger("uvicorn.error").handlers = [InterceptHandler()]

    # 热重载与 httpx 请求日志级别提升到 WARNING，避免开发模式下刷屏
    for noisy in ("watchfiles", "watchfiles.main", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    # 将 logging 模块的根 logger 设置为配置的级别
    logging.getLogger("root").setLevel(settings.LOG_LEVEL)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )

    return logger
