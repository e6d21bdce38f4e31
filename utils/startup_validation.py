"""
Startup Validation Module

Checks configuration before the app serves traffic:
1. Required environment variables (fail fast in production)
2. Database connectivity
3. Structured startup logging
"""

import os
import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import text

logger = logging.getLogger(__name__)

DEV_SESSION_SECRET = "dev-secret-change-me"


@dataclass
class ValidationResult:
    """Result of a validation check."""
    name: str
    passed: bool
    message: str
    severity: str = "error"  # error, warning, info
    remediation: Optional[str] = None


@dataclass
class StartupReport:
    """Startup validation report."""
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())
    environment: str = "development"
    validations: List[ValidationResult] = field(default_factory=list)

    def add_validation(self, result: ValidationResult):
        self.validations.append(result)

    def has_critical_failures(self) -> bool:
        return any(v.severity == "error" and not v.passed for v in self.validations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "environment": self.environment,
            "validations": [
                {
                    "name": v.name,
                    "passed": v.passed,
                    "message": v.message,
                    "severity": v.severity,
                    "remediation": v.remediation
                }
                for v in self.validations
            ],
            "summary": {
                "total_validations": len(self.validations),
                "passed": sum(1 for v in self.validations if v.passed),
                "failed": sum(1 for v in self.validations if not v.passed),
            }
        }


class StartupValidationError(RuntimeError):
    """Raised in production when a critical startup check fails."""


def load_config(test_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build the Flask config mapping from the environment plus overrides."""
    config = {
        "SECRET_KEY": os.getenv("SESSION_SECRET") or DEV_SESSION_SECRET,
        "SQLALCHEMY_DATABASE_URI": os.getenv("DATABASE_URL", "sqlite:///checkmate.db"),
        "SQLALCHEMY_ENGINE_OPTIONS": {"pool_pre_ping": True},
        "ENVIRONMENT": os.getenv("FLASK_ENV", "development"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
        "RATELIMIT_STORAGE_URI": os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
    }
    if test_config:
        config.update(test_config)
    return config


class StartupValidator:
    """
    Validates:
    1. Required environment variables
    2. Database connectivity
    """

    REQUIRED_ENV_VARS = [
        ("SESSION_SECRET", "Session encryption key - CRITICAL for security"),
        ("DATABASE_URL", "Database connection string"),
    ]

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.report = StartupReport(environment=config.get("ENVIRONMENT", "development"))

    def is_production(self) -> bool:
        return self.report.environment == "production"

    def validate_required_env_vars(self) -> None:
        """Missing variables are errors in production, warnings elsewhere."""
        severity = "error" if self.is_production() else "warning"
        for var_name, description in self.REQUIRED_ENV_VARS:
            if os.getenv(var_name):
                self.report.add_validation(ValidationResult(
                    name=f"env:{var_name}",
                    passed=True,
                    message=f"{var_name} is configured",
                    severity=severity
                ))
            else:
                self.report.add_validation(ValidationResult(
                    name=f"env:{var_name}",
                    passed=False,
                    message=f"{var_name} is not set ({description})",
                    severity=severity,
                    remediation=f"Set the {var_name} environment variable"
                ))

    def validate_database(self, db) -> None:
        try:
            with db.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            self.report.add_validation(ValidationResult(
                name="database",
                passed=True,
                message="Database connection OK",
            ))
        except Exception as e:
            self.report.add_validation(ValidationResult(
                name="database",
                passed=False,
                message=f"Database connection failed: {e}",
                remediation="Check DATABASE_URL and that the database is reachable"
            ))

    def run(self, db=None) -> StartupReport:
        self.validate_required_env_vars()
        if db is not None:
            self.validate_database(db)

        for v in self.report.validations:
            if v.passed:
                logger.debug(f"[STARTUP] {v.name}: {v.message}")
            elif v.severity == "error":
                logger.error(f"[STARTUP] {v.name}: {v.message}")
            else:
                logger.warning(f"[STARTUP] {v.name}: {v.message}")

        if self.is_production() and self.report.has_critical_failures():
            raise StartupValidationError(
                "Startup validation failed: "
                + ", ".join(v.name for v in self.report.validations if not v.passed)
            )
        return self.report
