from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Union

# Greedy: first "{" through last "}". Not a brace-balancing parse, so stray
# braces in surrounding prose can widen the span past the real object.
_OBJECT_SPAN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class Parsed:
    value: Any

    @property
    def data(self) -> Any:
        return self.value


@dataclass(frozen=True)
class Fallback:
    raw: str

    @property
    def data(self) -> dict[str, str]:
        return {"raw": self.raw}


NormalizedResult = Union[Parsed, Fallback]


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


def _try_loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError):
        # JSONDecodeError is a ValueError
        return False, None


def parse_upstream_text(text: str) -> NormalizedResult:
    """
    Whole text as JSON → greedy {...} span as JSON → Fallback(raw).

    Never raises; any JSON value (not only objects) counts as parsed.
    """
    ok, value = _try_loads(text)
    if ok:
        return Parsed(value)

    m = _OBJECT_SPAN.search(text)
    if m:
        ok, value = _try_loads(m.group(0))
        if ok:
            return Parsed(value)

    return Fallback(text)


def normalize(text: str) -> Any:
    return parse_upstream_text(text).data
