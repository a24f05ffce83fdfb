"""Core types, registry and contributor units for implementor aggregation."""

from impl_registry.core.config import (
    ConfigValidationError,
    LoadSettings,
    RegistryConfig,
    RegistrySettings,
    SourceConfig,
    TelemetrySettings,
    build_recorder,
    build_registry,
    load_config,
    validate_config,
)
from impl_registry.core.contributor import ContributorUnit, SubmitPath, submit_all
from impl_registry.core.host import (
    INSTALL_REGISTRAR,
    LoadOrder,
    LoadReport,
    PageLoad,
    order_units,
    with_registrar_at,
)
from impl_registry.core.model import Capability, Contribution, ImplementorDescriptor, Unit
from impl_registry.core.registry import (
    ImplementorIndex,
    ImplementorRegistry,
    MergeResult,
    MergeStatus,
    RegistrarAbsentError,
    RegistrarInstalledError,
    RegistrarState,
    RegistryError,
    get_registry,
    set_registry,
)
from impl_registry.core.source import ContributionSource

__all__ = [
    # model
    "Capability",
    "Contribution",
    "ImplementorDescriptor",
    "Unit",
    # registry
    "ImplementorIndex",
    "ImplementorRegistry",
    "MergeResult",
    "MergeStatus",
    "RegistrarAbsentError",
    "RegistrarInstalledError",
    "RegistrarState",
    "RegistryError",
    "get_registry",
    "set_registry",
    # contributor
    "ContributorUnit",
    "SubmitPath",
    "submit_all",
    # host
    "INSTALL_REGISTRAR",
    "LoadOrder",
    "LoadReport",
    "PageLoad",
    "order_units",
    "with_registrar_at",
    # source
    "ContributionSource",
    # config
    "ConfigValidationError",
    "LoadSettings",
    "RegistryConfig",
    "RegistrySettings",
    "SourceConfig",
    "TelemetrySettings",
    "build_recorder",
    "build_registry",
    "load_config",
    "validate_config",
]
