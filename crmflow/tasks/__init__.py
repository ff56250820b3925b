"""Reusable task helpers for CRMFlow automation pipelines."""

from .pipeline import (  # noqa: F401
    clone_emails,
    create_lists,
    describe_plan,
    load_campaign_configs,
    matches_mode,
    validate_filters,
)

__all__ = [
    "create_lists",
    "clone_emails",
    "describe_plan",
    "load_campaign_configs",
    "matches_mode",
    "validate_filters",
]
