"""User-defined text replacement rules applied to the final transcript."""

import re
import uuid
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import FormattingError

logger = logging.getLogger(__name__)


@dataclass
class FormattingRule:
    """Replace ``trigger`` with ``replacement`` (which may contain newlines)."""
    trigger: str
    replacement: str = ""
    enabled: bool = True
    exact_match: bool = False
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FormattingRule":
        if not isinstance(data, dict) or "trigger" not in data:
            raise FormattingError(f"Invalid formatting rule: {data!r}")
        rule = cls(
            trigger=str(data["trigger"]),
            replacement=str(data.get("replacement", "") or ""),
            enabled=bool(data.get("enabled", True)),
            exact_match=bool(data.get("exact_match", False)),
        )
        if data.get("id"):
            rule.id = str(data["id"])
        return rule

    def apply(self, text: str) -> str:
        if not self.enabled or not self.trigger:
            return text
        if self.exact_match:
            pattern = r"(?<!\w)" + re.escape(self.trigger) + r"(?!\w)"
        else:
            pattern = re.escape(self.trigger)
        # A function replacement keeps backslashes in the replacement literal
        return re.sub(pattern, lambda _: self.replacement, text, flags=re.IGNORECASE)


@dataclass
class FormattingSettings:
    rules: List[FormattingRule] = field(default_factory=list)

    @classmethod
    def from_config(cls, raw: Optional[List[Dict[str, Any]]]) -> "FormattingSettings":
        """Build settings from the ``formatting.rules`` config list.

        Raises:
            FormattingError: If the rules are not a list of rule mappings
        """
        if raw is None:
            return cls()
        if not isinstance(raw, list):
            raise FormattingError("formatting.rules must be a list")
        return cls(rules=[FormattingRule.from_dict(item) for item in raw])


def apply_formatting(text: str, settings: FormattingSettings) -> str:
    """Apply every enabled rule in order."""
    for rule in settings.rules:
        text = rule.apply(text)
    return text
