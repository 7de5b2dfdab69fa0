"""
Field transformation rules.

Template authors attach per-field rules that run on the raw region text,
in this fixed order: remove, trim, uppercase, lowercase, parseFloat,
parseInt.

Example rule set::

    {"remove": ["Acc:", "#"], "trim": true, "uppercase": true}
"""

import re
from typing import Any, Dict, Optional


def apply_transformations(value: Any, rules: Optional[Dict[str, Any]]) -> Any:
    """
    Apply a template's transformation rules to an extracted value.

    ``parseFloat`` / ``parseInt`` keep only numeric characters first and
    yield None when nothing numeric is left.

    Args:
        value: Raw extracted text.
        rules: Rule dictionary, may be None or empty.

    Returns:
        Transformed value.
    """
    if not rules or value is None:
        return value

    result = value

    if isinstance(result, str):
        for literal in rules.get("remove") or []:
            result = result.replace(str(literal), '')

        if rules.get("trim"):
            result = result.strip()
        if rules.get("uppercase"):
            result = result.upper()
        if rules.get("lowercase"):
            result = result.lower()

    if rules.get("parseFloat"):
        result = _parse_number(str(result), r'[^\d.\-]', float)
    elif rules.get("parseInt"):
        result = _parse_number(str(result), r'[^\d\-]', int)

    return result


def _parse_number(text: str, strip_pattern: str, cast) -> Optional[Any]:
    digits = re.sub(strip_pattern, '', text)
    match = re.match(r'-?\d*\.?\d+' if cast is float else r'-?\d+', digits)
    if not match:
        return None
    try:
        return cast(match.group(0))
    except ValueError:
        return None


__all__ = ['apply_transformations']
