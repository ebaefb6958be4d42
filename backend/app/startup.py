"""
Application startup validation and initialization.

Checks the configuration and the reachability of the document store and
the cache before the API starts serving. An unreachable store is a
warning, not a failure: requests will report storage errors until it
comes back.
"""

import logging
from typing import List, Tuple

from core.cache import RedisCache
from core.config import get_settings, validate_production_config
from core.database import ensure_indexes, get_database, ping_database

logger = logging.getLogger(__name__)


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def check_configuration(self) -> bool:
        try:
            validate_production_config(get_settings())
            return True
        except ValueError as e:
            self.errors.append(str(e))
            return False

    def check_database_connection(self) -> bool:
        if ping_database():
            logger.info("Database connection successful")
            return True
        self.warnings.append("Database unreachable - skipping index creation")
        return False

    def check_redis_connection(self) -> bool:
        settings = get_settings()
        if not settings.cache_enabled:
            self.warnings.append("Caching disabled - analytics are computed on every request")
            return True

        if RedisCache().ping():
            logger.info("Redis connection successful")
            return True
        # not fatal, reads fall through to the store
        self.warnings.append("Redis unreachable - analytics served without cache")
        return False

    def run_all_checks(self) -> Tuple[bool, List[str]]:
        self.check_configuration()
        if self.check_database_connection():
            ensure_indexes(get_database())
        self.check_redis_connection()

        for warning in self.warnings:
            logger.warning(warning)
        for error in self.errors:
            logger.error(error)

        return not self.errors, self.warnings


def run_startup_checks() -> Tuple[bool, List[str]]:
    """Run startup validation; raise if the configuration is unusable."""
    validator = StartupValidator()
    passed, warnings = validator.run_all_checks()
    if not passed:
        raise RuntimeError(f"Startup checks failed: {'; '.join(validator.errors)}")
    return passed, warnings
