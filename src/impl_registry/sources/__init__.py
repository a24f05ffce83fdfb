"""Contribution sources for generated documentation layouts."""

from impl_registry.sources.rustdoc import RustdocScriptSource, ScriptFormatError, parse_script

__all__ = [
    "RustdocScriptSource",
    "ScriptFormatError",
    "parse_script",
]
