"""
Provider name resolution.

Resolves a free-text provider name from an export to a provider identifier
from the directory. Priority order:

1. exact match on the normalized fingerprint (letters only, no spaces)
2. alias table, mapping a known misspelling onto the directory spelling
3. substring containment of the normalized names, in either direction

New aliases are data; they never require a change to this lookup.
"""

from typing import Mapping, Optional
import logging

from ..config import DEFAULT_PROVIDER_ALIASES
from .text import normalize_person_name

logger = logging.getLogger(__name__)


def provider_fingerprint(name: str) -> str:
    """Normalized name with spaces removed."""
    return normalize_person_name(name).replace(" ", "")


class ProviderDirectory:
    """Lookup of provider identifiers by display name."""

    def __init__(
        self,
        directory: Mapping[str, str],
        aliases: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize the directory.

        Args:
            directory: Provider identifier -> display name
            aliases: Fingerprint -> fingerprint as spelled in the directory
        """
        self.directory = dict(directory)
        self.aliases = dict(DEFAULT_PROVIDER_ALIASES if aliases is None else aliases)
        # Insertion order decides ties for the substring heuristic
        self._entries = [
            (provider_id, normalize_person_name(name), provider_fingerprint(name))
            for provider_id, name in self.directory.items()
        ]

    def __len__(self) -> int:
        return len(self.directory)

    def resolve(self, name: str) -> Optional[str]:
        """
        Resolve a provider name to its identifier.

        Args:
            name: Provider name as written in the source

        Returns:
            Provider identifier, or None if nothing matches
        """
        desired = provider_fingerprint(name)
        if not desired:
            return None

        for provider_id, _, fingerprint in self._entries:
            if fingerprint == desired:
                return provider_id

        aliased = self.aliases.get(desired)
        if aliased:
            for provider_id, _, fingerprint in self._entries:
                if fingerprint == aliased:
                    logger.debug(f"Provider '{name}' resolved via alias '{aliased}'")
                    return provider_id

        desired_loose = normalize_person_name(name)
        for provider_id, candidate, _ in self._entries:
            if not candidate:
                continue
            if candidate in desired_loose or desired_loose in candidate:
                logger.debug(f"Provider '{name}' resolved by containment to '{candidate}'")
                return provider_id

        return None

    def name_for(self, provider_id: str) -> Optional[str]:
        """Directory display name for an identifier."""
        return self.directory.get(provider_id)
