"""Formatting rules applied after refinement."""

from .rules import FormattingRule, FormattingSettings, apply_formatting

__all__ = ["FormattingRule", "FormattingSettings", "apply_formatting"]
