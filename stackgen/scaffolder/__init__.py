"""stackgen scaffolder -- the collaborators plugins and stages call into.

Quick usage::

    from stackgen.scaffolder import TemplateRenderer, build_package_json

    renderer = TemplateRenderer()
    files = await renderer.render_layers(config, "/tmp/my-app")
"""

from stackgen.scaffolder.commands import init_git_repo, install_command, install_dependencies
from stackgen.scaffolder.manifest import build_package_json, merge_package_json, write_package_json
from stackgen.scaffolder.structure import create_project_structure, project_directories
from stackgen.scaffolder.templates import TemplateRenderer, build_template_context, template_layers
from stackgen.scaffolder.transaction import FileTransaction

__all__ = [
    "TemplateRenderer",
    "build_template_context",
    "template_layers",
    "build_package_json",
    "merge_package_json",
    "write_package_json",
    "create_project_structure",
    "project_directories",
    "install_command",
    "install_dependencies",
    "init_git_repo",
    "FileTransaction",
]
