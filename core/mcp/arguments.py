"""
Typed access to loosely-typed tool arguments.

Accessors return None for a missing, null or unusable value; only the
``require_*`` helpers raise.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Mapping, Optional

from core.errors import MissingArgument
from core.models import parse_timestamp


class ArgumentBag:
    def __init__(self, arguments: Optional[Mapping[str, Any]] = None):
        self._arguments = arguments if isinstance(arguments, Mapping) else {}

    def __contains__(self, name: str) -> bool:
        return self._arguments.get(name) is not None

    def raw(self, name: str) -> Any:
        return self._arguments.get(name)

    def get_string(self, name: str) -> Optional[str]:
        """Strings as-is; other scalars and containers as their JSON text."""
        value = self._arguments.get(name)
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, (bool, list, dict)):
            return json.dumps(value)
        return str(value)

    def get_int(self, name: str) -> Optional[int]:
        value = self._arguments.get(name)
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return None

    def get_float(self, name: str) -> Optional[float]:
        value = self._arguments.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    def get_bool(self, name: str) -> Optional[bool]:
        value = self._arguments.get(name)
        return value if isinstance(value, bool) else None

    def get_string_list(self, name: str) -> Optional[list[str]]:
        value = self._arguments.get(name)
        if not isinstance(value, list):
            return None
        return [item if isinstance(item, str) else json.dumps(item) for item in value]

    def get_dict(self, name: str) -> Optional[dict]:
        value = self._arguments.get(name)
        return dict(value) if isinstance(value, dict) else None

    def get_datetime(self, name: str) -> Optional[datetime]:
        value = self._arguments.get(name)
        if not isinstance(value, str):
            return None
        try:
            return parse_timestamp(value)
        except ValueError:
            return None

    def require_string(self, name: str) -> str:
        value = self.get_string(name)
        if value is None:
            raise MissingArgument(name)
        return value

    def require_string_list(self, name: str) -> list[str]:
        value = self.get_string_list(name)
        if value is None:
            raise MissingArgument(name)
        return value
