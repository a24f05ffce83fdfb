"""
Identifier model and contribution payload.

A capability names one trait whose implementors are documented, a unit names
one documentation source (crate), and a contribution carries one contributor
unit's {unit -> implementor descriptors} payload for a single capability.
Descriptors are opaque render-ready markup and are never inspected here.
"""

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from types import MappingProxyType

# Render-ready markup for one implementing type, stored verbatim
ImplementorDescriptor = str

# Name of one documentation unit (a crate)
Unit = str

PATH_SEPARATOR = "::"
SCRIPT_PREFIX = "trait."
SCRIPT_SUFFIX = ".js"


@dataclass(frozen=True, order=True)
class Capability:
    """
    Identifier of one trait/interface.

    Attributes:
        module_path: Module segments leading to the trait (e.g. ("core", "hash"))
        name: Trait name (e.g. "Hasher")
    """
    module_path: tuple[str, ...]
    name: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Capability name must not be empty")
        if any(not segment for segment in self.module_path):
            raise ValueError(f"Capability {self.name} has an empty module segment")

    def __str__(self) -> str:
        return PATH_SEPARATOR.join((*self.module_path, self.name))

    @classmethod
    def parse(cls, text: str) -> "Capability":
        """
        Parse a `a::b::Name` identifier.

        Raises:
            ValueError: If any segment is empty
        """
        segments = text.strip().split(PATH_SEPARATOR)
        if any(not segment for segment in segments):
            raise ValueError(f"Invalid capability identifier: {text!r}")
        return cls(module_path=tuple(segments[:-1]), name=segments[-1])

    @classmethod
    def from_script_path(cls, rel_path: str | PurePosixPath) -> "Capability":
        """
        Derive the capability from a generated script path.

        `core/hash/trait.Hasher.js` becomes `core::hash::Hasher`.

        Raises:
            ValueError: If the file name is not a trait script
        """
        path = PurePosixPath(rel_path)
        filename = path.name
        if not (filename.startswith(SCRIPT_PREFIX) and filename.endswith(SCRIPT_SUFFIX)):
            raise ValueError(f"Not a trait implementors script: {rel_path}")

        name = filename[len(SCRIPT_PREFIX):-len(SCRIPT_SUFFIX)]
        return cls(module_path=tuple(path.parent.parts), name=name)


@dataclass(frozen=True)
class Contribution:
    """
    One contributor unit's payload for exactly one capability.

    Entries map unit -> ordered tuple of descriptors. The mapping is read-only
    and detached from whatever the caller built it from, so a contribution
    never changes after creation.
    """
    capability: Capability
    entries: Mapping[Unit, tuple[ImplementorDescriptor, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    @classmethod
    def from_mapping(
        cls,
        capability: Capability | str,
        mapping: Mapping[Unit, Sequence[ImplementorDescriptor]],
    ) -> "Contribution":
        """Build a contribution, copying the caller's lists into tuples."""
        if isinstance(capability, str):
            capability = Capability.parse(capability)

        entries: dict[Unit, tuple[ImplementorDescriptor, ...]] = {}
        for unit, descriptors in mapping.items():
            if not unit:
                raise ValueError(f"Empty unit name in contribution for {capability}")
            entries[unit] = tuple(descriptors)

        return cls(capability=capability, entries=MappingProxyType(entries))

    @property
    def units(self) -> list[Unit]:
        return list(self.entries)

    def items(self) -> Iterator[tuple[Unit, tuple[ImplementorDescriptor, ...]]]:
        return iter(self.entries.items())

    def __len__(self) -> int:
        return len(self.entries)
