"""
Field Name Resolver Module.

Maps the field ids found in templates and spreadsheets to canonical field
names. Template ids are frequently namespaced by the template code
(e.g., "makita_invoice_document_type"), so lookup runs an ordered chain
of strategies and the first strategy that answers wins:

    1. DirectMatch       - already a canonical name (case-insensitive)
    2. AliasMatch        - known alias from the registry
    3. PrefixStripping   - last 3, then 2, then 1 underscore tokens

Author: Finance Platform Team
"""

import re
from typing import Optional, Sequence

from .registry import DEFAULT_REGISTRY, FieldRegistry


def normalize_field_id(field_id: str) -> str:
    """
    Normalize a raw field id for lookup.

    Trailing periods and colons are dropped, whitespace and hyphens become
    underscores, and the result is lower-cased.

    Example:
        >>> normalize_field_id("Invoice Number:")
        "invoice_number"
    """
    normalized = re.sub(r'[.:]+$', '', field_id.strip())
    normalized = re.sub(r'[\s\-]+', '_', normalized.strip())
    return normalized.lower()


class ResolutionStrategy:
    """Base class for a single field-name lookup strategy."""

    name = "base"

    def resolve(self, raw: str, normalized: str, registry: FieldRegistry) -> Optional[str]:
        raise NotImplementedError


class DirectMatch(ResolutionStrategy):
    name = "direct"

    def resolve(self, raw: str, normalized: str, registry: FieldRegistry) -> Optional[str]:
        return registry.canonical(raw) or registry.canonical(normalized)


class AliasMatch(ResolutionStrategy):
    name = "alias"

    def resolve(self, raw: str, normalized: str, registry: FieldRegistry) -> Optional[str]:
        return registry.aliases.get(normalized)


class PrefixStripping(ResolutionStrategy):
    """Strip a template-code prefix by trying the trailing tokens."""

    name = "prefix"

    def __init__(self, max_tokens: int = 3) -> None:
        self.max_tokens = max_tokens

    def resolve(self, raw: str, normalized: str, registry: FieldRegistry) -> Optional[str]:
        parts = normalized.split('_')
        if len(parts) < 2:
            return None

        for count in range(min(self.max_tokens, len(parts)), 0, -1):
            candidate = '_'.join(parts[-count:])
            match = registry.aliases.get(candidate) or registry.canonical(candidate)
            if match:
                return match
        return None


DEFAULT_STRATEGIES = (DirectMatch(), AliasMatch(), PrefixStripping())


class FieldNameResolver:
    """
    Resolve raw field ids to canonical names with a strategy chain.

    Attributes:
        registry: Injected field registry.
        strategies: Ordered lookup strategies.

    Example:
        >>> resolver = FieldNameResolver()
        >>> resolver.resolve("acme_inv_total")
        "totalAmount"
        >>> resolver.resolve("colour") is None
        True
    """

    def __init__(
        self,
        registry: FieldRegistry = DEFAULT_REGISTRY,
        strategies: Sequence[ResolutionStrategy] = DEFAULT_STRATEGIES
    ) -> None:
        self.registry = registry
        self.strategies = tuple(strategies)

    def resolve(self, field_id: Optional[str]) -> Optional[str]:
        """
        Return the canonical name for a field id, or None if unknown.

        Args:
            field_id: Raw id from a template or spreadsheet.

        Returns:
            Canonical field name or None.
        """
        if not field_id:
            return None

        normalized = normalize_field_id(field_id)
        for strategy in self.strategies:
            match = strategy.resolve(field_id, normalized, self.registry)
            if match:
                return match
        return None

    def strip_template_prefix(self, field_id: str, template_code: Optional[str]) -> str:
        """Remove a leading ``{code}_`` from a field id when present."""
        if template_code:
            prefix = f"{template_code}_"
            if field_id.lower().startswith(prefix.lower()):
                return field_id[len(prefix):]
        return field_id


__all__ = [
    'normalize_field_id',
    'ResolutionStrategy',
    'DirectMatch',
    'AliasMatch',
    'PrefixStripping',
    'FieldNameResolver',
    'DEFAULT_STRATEGIES',
]
