"""
Builds the merged implementors index from generated scripts.
Reads config/registry.yml, loads every configured source in the configured
order with the registrar installed last, and writes
docs/implementors/index.yml as:
- capability -> {crate -> [descriptor, ...]}
"""
import logging
from pathlib import Path

import yaml

from impl_registry.core import (
    INSTALL_REGISTRAR,
    PageLoad,
    build_recorder,
    build_registry,
    load_config,
    order_units,
)
from impl_registry.sources import RustdocScriptSource

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

config = load_config(Path("config/registry.yml"))
recorder = build_recorder(config)
registry = build_registry(config, recorder=recorder)

units = []
for source_config in config.load.sources:
    units.extend(RustdocScriptSource(source_config.root, source_config.pattern).iter_units())

steps = [*order_units(units, config.load.load_order, config.load.seed), INSTALL_REGISTRAR]
report = PageLoad(registry).run(steps)

out = Path("docs/implementors/index.yml")
out.parent.mkdir(parents=True, exist_ok=True)
out.write_text(yaml.safe_dump(registry.to_dict(), sort_keys=False, allow_unicode=True), encoding="utf-8")
print(
    "index.yml updated; capabilities:", len(registry.capabilities()),
    "units:", len(units),
    "drained:", report.drained,
)
if config.telemetry.collect_stats:
    print("stats:", recorder.get_stats().to_dict())
