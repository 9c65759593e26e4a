"""Built-in generation plugins.

``default_plugins()`` returns them in an order that satisfies every declared
dependency, with ``GitPlugin`` last so its ``postGenerate`` handler sees the
finished tree.
"""

from __future__ import annotations

from stackgen.core.plugin import GeneratorPlugin
from stackgen.plugins.analytics import AnalyticsPlugin
from stackgen.plugins.dependency import DependencyPlugin
from stackgen.plugins.entry_point import EntryPointPlugin
from stackgen.plugins.files import FilePlugin
from stackgen.plugins.git import GitPlugin
from stackgen.plugins.integration import IntegrationPlugin
from stackgen.plugins.package_json import PackageJsonPlugin
from stackgen.plugins.readme import ReadmePlugin


def default_plugins() -> list[GeneratorPlugin]:
    return [
        AnalyticsPlugin(),
        PackageJsonPlugin(),
        FilePlugin(),
        IntegrationPlugin(),
        DependencyPlugin(),
        EntryPointPlugin(),
        ReadmePlugin(),
        GitPlugin(),
    ]


__all__ = [
    "AnalyticsPlugin",
    "PackageJsonPlugin",
    "FilePlugin",
    "IntegrationPlugin",
    "DependencyPlugin",
    "EntryPointPlugin",
    "ReadmePlugin",
    "GitPlugin",
    "default_plugins",
]
