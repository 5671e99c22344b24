"""
Diagnostics - Per-request debug information.

When debug output is enabled the handler answers with these values (status
222) instead of the real payload. Recording values never affects which
pipeline stages run or whether they succeed.
"""

import json
import logging
from typing import Any, Dict, Optional


DEBUG_STATUS_CODE = 222


class Diagnostics:
    """Collects named values for a single request."""

    def __init__(self, enabled: bool = False, logger: Optional[logging.Logger] = None):
        self.enabled = enabled
        self.logger = logger or logging.getLogger(__name__)
        self._values: Dict[str, Any] = {}

    def record(self, name: str, value: Any) -> None:
        """Add a value to the debug output (no-op when disabled)."""
        if self.enabled:
            self._values[name] = value

    def log_val(self, name: str, value: Any) -> None:
        """Log a value and add it to the debug output."""
        self.logger.debug(f"{name}: {value}")
        self.record(name, value)

    def get(self, name: str, default: Any = None) -> Any:
        return self._values.get(name, default)

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def to_json(self) -> str:
        return json.dumps(self._values, indent=2, default=str)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, name: str) -> bool:
        return name in self._values
