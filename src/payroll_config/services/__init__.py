"""Payroll configuration services."""

from payroll_config.services.company_settings import CompanySettingsService
from payroll_config.services.errors import (
    ConfigurationError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ReferenceInUseError,
    UnknownEntityTypeError,
    ValidationFailedError,
)
from payroll_config.services.lifecycle import ConfigLifecycleService
from payroll_config.services.reference_guard import PermissiveReferenceGuard, ReferenceGuard
from payroll_config.services.rules import ENTITY_RULES, EntityRules, EntityType, get_rules
from payroll_config.services.state_machine import ConfigStateMachine

__all__ = [
    "CompanySettingsService",
    "ConfigLifecycleService",
    "ConfigStateMachine",
    "ConfigurationError",
    "ConflictError",
    "ENTITY_RULES",
    "EntityRules",
    "EntityType",
    "InvalidStateError",
    "NotFoundError",
    "PermissiveReferenceGuard",
    "ReferenceGuard",
    "ReferenceInUseError",
    "UnknownEntityTypeError",
    "ValidationFailedError",
    "get_rules",
]
