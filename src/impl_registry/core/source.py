"""
ContributionSource interface.

A contribution source discovers the contributor units a documentation build
produced. Each source knows one on-disk layout; the registry itself never
cares where a contribution came from.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator

from .contributor import ContributorUnit


class ContributionSource(ABC):
    """
    Abstract base class for all contribution sources.

    Subclasses must implement discovery and decoding of contributor units
    for their output layout.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this source.

        Returns:
            The name of the source (e.g., "rustdoc-scripts")
        """
        pass

    @abstractmethod
    def iter_units(self) -> Iterator[ContributorUnit]:
        """
        Iterate through the contributor units this source provides.

        Yields:
            ContributorUnit objects, each with a fixed contribution
        """
        pass

    def load_all(self) -> list[ContributorUnit]:
        """Collect every unit. Override for sources with a cheaper bulk path."""
        return list(self.iter_units())
