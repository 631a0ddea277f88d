import logging
import sys


class Log:
    """Process-wide logger of the registry engine.

    Messages name document ids and counts. Distribution-list contents are
    never logged.
    """

    _logger: logging.Logger = logging.getLogger("registratura")

    @classmethod
    def configure(cls, log_level: str, app_env: str = "dev") -> None:
        """Set the level and attach one stdout handler tagged with the environment."""
        cls._logger.setLevel(log_level.upper())
        if not cls._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(
                logging.Formatter(f"%(asctime)s [%(levelname)s] [{app_env}] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **kwargs: object) -> None:
        cls._logger.info(message, extra=kwargs)

    @classmethod
    def error(cls, message: str, **kwargs: object) -> None:
        cls._logger.error(message, extra=kwargs)

    @classmethod
    def exception(cls, message: str, **kwargs: object) -> None:
        """Log at error level with the active traceback."""
        cls._logger.exception(message, extra=kwargs)

    @classmethod
    def warning(cls, message: str, **kwargs: object) -> None:
        cls._logger.warning(message, extra=kwargs)

    @classmethod
    def debug(cls, message: str, **kwargs: object) -> None:
        cls._logger.debug(message, extra=kwargs)
