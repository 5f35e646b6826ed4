"""API routes."""

from payroll_config.api.routes.company_settings import router as company_settings_router
from payroll_config.api.routes.configurations import config_routers
from payroll_config.api.routes.health import router as health_router

__all__ = ["company_settings_router", "config_routers", "health_router"]
