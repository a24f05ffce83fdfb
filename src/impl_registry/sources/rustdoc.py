"""
Contribution source for rustdoc-generated implementor scripts.

rustdoc writes one script per trait under `implementors/`, laid out by the
trait's module path (`implementors/core/hash/trait.Hasher.js`). Each script
declares one array literal of descriptor strings per crate:

    implementors["mio"] = ["impl <a ...>Not</a> for ...","..."];

Only those assignment lines are read. Descriptor strings are decoded as
JSON strings and otherwise kept as-is.
"""

import json
import logging
import re
from collections.abc import Iterator
from pathlib import Path

from impl_registry.core import Capability, Contribution, ContributionSource, ContributorUnit

logger = logging.getLogger(__name__)

ENTRY_PATTERN = re.compile(r'^\s*implementors\["(?P<unit>[^"]+)"\]\s*=\s*(?P<array>\[.*\])\s*;?\s*$')
ENTRY_PREFIX = re.compile(r'^\s*implementors\[')
TRAILING_COMMA = re.compile(r',\s*\]$')


class ScriptFormatError(ValueError):
    """Raised when an implementors entry line cannot be decoded."""

    def __init__(self, source: str, line_no: int, reason: str):
        super().__init__(f"{source}:{line_no}: {reason}")
        self.source = source
        self.line_no = line_no


def parse_script(text: str, capability: Capability, source: str = "<script>") -> Contribution:
    """
    Decode one implementors script into a contribution.

    Args:
        text: Script contents
        capability: Capability the script documents
        source: Name used in error messages

    Returns:
        Contribution with units in declaration order

    Raises:
        ScriptFormatError: If an entry line does not decode
    """
    entries: dict[str, list[str]] = {}

    for line_no, line in enumerate(text.splitlines(), start=1):
        if not ENTRY_PREFIX.match(line):
            continue

        match = ENTRY_PATTERN.match(line)
        if match is None:
            raise ScriptFormatError(source, line_no, "malformed implementors entry")

        array = TRAILING_COMMA.sub("]", match.group("array"))
        try:
            descriptors = json.loads(array)
        except json.JSONDecodeError as e:
            raise ScriptFormatError(source, line_no, f"undecodable descriptor list: {e}") from e

        if not all(isinstance(d, str) for d in descriptors):
            raise ScriptFormatError(source, line_no, "descriptors must be strings")

        # A repeated crate key overwrites, as the script itself would
        entries[match.group("unit")] = descriptors

    return Contribution.from_mapping(capability, entries)


class RustdocScriptSource(ContributionSource):
    """
    Reads `trait.*.js` implementor scripts below a root directory.

    Files are discovered in sorted path order; the host decides the actual
    load order.
    """

    def __init__(self, root: str | Path, pattern: str = "trait.*.js"):
        self.root = Path(root)
        self.pattern = pattern

    @property
    def name(self) -> str:
        return "rustdoc-scripts"

    def iter_units(self) -> Iterator[ContributorUnit]:
        if not self.root.is_dir():
            logger.warning(f"Implementors root {self.root} does not exist, nothing to load")
            return

        for path in sorted(self.root.rglob(self.pattern)):
            if not path.is_file():
                continue

            rel_path = path.relative_to(self.root).as_posix()
            try:
                capability = Capability.from_script_path(rel_path)
            except ValueError:
                logger.debug(f"Skipping {rel_path}: not a trait script")
                continue

            contribution = parse_script(path.read_text(encoding="utf-8"), capability, source=rel_path)
            logger.debug(f"Loaded {capability} with {len(contribution)} unit(s) from {rel_path}")
            yield ContributorUnit(contribution=contribution, source=rel_path)
