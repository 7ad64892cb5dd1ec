import logging
from dataclasses import dataclass, field
from tdone.config.models import AppConfig
from tdone.infrastructure.logging import LOGGER_NAME


@dataclass(frozen=True)
class RunContext:
    """Config and log sink for one run, built once at startup and passed to every stage."""

    config: AppConfig
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(LOGGER_NAME))
    name: str = ""

    def child(self, suffix: str) -> logging.Logger:
        return self.logger.getChild(suffix)
