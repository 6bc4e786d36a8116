"""Discover server functions and write their bindings to disk."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from seamrpc.compiler.analyzer import DiscoveryResult, FunctionDiscoverer, ScanOptions
from seamrpc.compiler.generator import BindingGenerator, GeneratorOptions
from seamrpc.config.schema import CompilerConfig


@dataclass(slots=True)
class BuildReport:
    output_dir: Path
    discovery: DiscoveryResult
    written: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)

    @property
    def function_count(self) -> int:
        return len(self.discovery.functions)


def build_bindings(
    server_dir: str | Path,
    output_dir: str | Path,
    *,
    scan_options: ScanOptions | None = None,
    generator_options: GeneratorOptions | None = None,
) -> BuildReport:
    """Scan ``server_dir`` and (re)write the generated files in ``output_dir``.

    Files whose content would not change are left untouched so that file
    watchers and build caches see no spurious modification.
    """
    discovery = FunctionDiscoverer(server_dir, scan_options).discover()
    bindings = BindingGenerator(generator_options).generate(discovery.functions)

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    report = BuildReport(output_dir=out, discovery=discovery)
    for name, content in bindings.files().items():
        target = out / name
        if target.exists() and target.read_text(encoding="utf-8") == content:
            report.unchanged.append(name)
            continue
        target.write_text(content, encoding="utf-8")
        report.written.append(name)
        logger.debug("Wrote {}", target)

    logger.info(
        "Generated bindings for {} function(s) in {} ({} written, {} unchanged)",
        report.function_count,
        out,
        len(report.written),
        len(report.unchanged),
    )
    return report


def build_from_config(config: CompilerConfig, base_dir: str | Path | None = None) -> BuildReport:
    """Run ``build_bindings`` with directories resolved against ``base_dir``."""
    base = Path(base_dir) if base_dir is not None else Path.cwd()
    return build_bindings(
        base / config.server_dir,
        base / config.output_dir,
        scan_options=ScanOptions.from_config(config),
        generator_options=GeneratorOptions.from_config(config),
    )
