"""Tests for the modular generator (preflight pipeline + plugins)."""

from __future__ import annotations

import pytest

from stackgen.config import GeneratorSettings
from stackgen.core.hooks import HookError
from stackgen.core.pipeline import GeneratorPipeline
from stackgen.core.plugin import HookType
from stackgen.generators.modular import GenerationError, ModularGenerator

pytestmark = pytest.mark.unit


@pytest.fixture
def modular(quiet_settings) -> ModularGenerator:
    return ModularGenerator(quiet_settings)


class TestConstruction:
    def test_registers_default_plugins(self, modular):
        assert len(modular.registry) == 8
        assert [s.name for s in modular.pipeline.stages] == ["validateConfig", "createStructure"]

    def test_without_defaults(self, quiet_settings):
        generator = ModularGenerator(quiet_settings, register_defaults=False)
        assert len(generator.registry) == 0

    def test_custom_pipeline(self, quiet_settings):
        pipeline = GeneratorPipeline()
        generator = ModularGenerator(quiet_settings, pipeline=pipeline, register_defaults=False)
        assert generator.pipeline is pipeline

    def test_add_and_remove_pipeline_stage(self, modular):
        async def extra(config, context):
            return None

        modular.add_pipeline_stage("extra", extra, required=False, timeout_ms=100)
        assert modular.pipeline.get_stage("extra").timeout_ms == 100

        modular.remove_pipeline_stage("extra")
        assert modular.pipeline.get_stage("extra") is None


class TestGenerateProject:
    @pytest.mark.asyncio
    async def test_full_run(self, modular, project_config, tmp_project_dir):
        combined = await modular.generate_project(project_config)

        assert combined["success"] is True
        assert set(combined) == {"success", "pipeline", "plugins", "stats", "summary"}
        succeeded = [e["plugin"] for e in combined["plugins"]["success"]]
        assert succeeded == [
            "AnalyticsPlugin",
            "PackageJsonPlugin",
            "FilePlugin",
            "IntegrationPlugin",
            "EntryPointPlugin",
            "ReadmePlugin",
        ]
        skipped = {e["plugin"] for e in combined["plugins"]["skipped"]}
        assert skipped == {"DependencyPlugin", "GitPlugin"}

        for rel in ("package.json", "README.md", "index.js", "generation-report.json"):
            assert (tmp_project_dir / rel).exists(), rel

    @pytest.mark.asyncio
    async def test_summary(self, modular, project_config):
        combined = await modular.generate_project(project_config)
        summary = combined["summary"]

        assert summary["total_stages"] == 2
        assert summary["successful_stages"] == 2
        assert summary["total_plugins"] == 6
        assert summary["failed_plugins"] == 0
        assert summary["success_rate"] == 100.0
        assert summary["errors"] == []

    @pytest.mark.asyncio
    async def test_preflight_failure_raises_and_skips_plugins(
        self, modular, project_config, tmp_project_dir
    ):
        tmp_project_dir.mkdir()
        (tmp_project_dir / "keep.txt").write_text("x", encoding="utf-8")

        with pytest.raises(GenerationError) as exc_info:
            await modular.generate_project(project_config)

        assert "validateConfig" in exc_info.value.errors[0]
        assert not (tmp_project_dir / "package.json").exists()
        assert modular.get_results()["success"] == []
        assert (tmp_project_dir / "keep.txt").read_text(encoding="utf-8") == "x"

    @pytest.mark.asyncio
    async def test_overwrite_allows_non_empty_directory(
        self, modular, project_config, tmp_project_dir
    ):
        tmp_project_dir.mkdir()
        (tmp_project_dir / "keep.txt").write_text("x", encoding="utf-8")

        combined = await modular.generate_project(project_config, overwrite=True)

        assert combined["success"] is True
        assert (tmp_project_dir / "keep.txt").exists()

    @pytest.mark.asyncio
    async def test_failed_plugin_makes_run_unsuccessful(self, modular, project_config, make_plugin):
        modular.register_plugin(make_plugin("Broken", error=RuntimeError("kaput")))

        combined = await modular.generate_project(project_config)

        assert combined["success"] is False
        assert combined["summary"]["errors"] == ["Broken: kaput"]

    @pytest.mark.asyncio
    async def test_generation_stats(self, modular, project_config):
        await modular.generate_project(project_config)
        stats = modular.get_generation_stats()

        assert stats["plugin_count"] == 8
        assert stats["applicable_plugins"] == 6
        assert stats["pipeline_stats"]["successful_stages"] == 2

    def test_generation_stats_before_run(self, modular):
        assert modular.get_generation_stats()["applicable_plugins"] == 0


class TestRollback:
    @staticmethod
    def _failing_post_hook(make_plugin):
        plugin = make_plugin("Late")

        def explode(payload):
            raise RuntimeError("post-generate exploded")

        plugin.register_hook(HookType.POST_GENERATE, explode)
        return plugin

    @pytest.mark.asyncio
    async def test_hook_failure_removes_new_project(
        self, modular, project_config, tmp_project_dir, make_plugin
    ):
        modular.register_plugin(self._failing_post_hook(make_plugin))

        with pytest.raises(HookError):
            await modular.generate_project(project_config)

        assert not tmp_project_dir.exists()

    @pytest.mark.asyncio
    async def test_hook_failure_restores_existing_project(
        self, modular, project_config, tmp_project_dir, make_plugin
    ):
        tmp_project_dir.mkdir()
        (tmp_project_dir / "keep.txt").write_text("x", encoding="utf-8")
        (tmp_project_dir / "package.json").write_text('{"name": "old"}', encoding="utf-8")
        modular.register_plugin(self._failing_post_hook(make_plugin))

        with pytest.raises(HookError):
            await modular.generate_project(project_config, overwrite=True)

        assert sorted(p.name for p in tmp_project_dir.iterdir()) == ["keep.txt", "package.json"]
        assert (tmp_project_dir / "package.json").read_text(encoding="utf-8") == '{"name": "old"}'

    @pytest.mark.asyncio
    async def test_required_stage_failure_removes_skeleton(
        self, modular, project_config, tmp_project_dir
    ):
        async def reject(config, context):
            raise RuntimeError("disk quota")

        modular.add_pipeline_stage("quota", reject, required=True)

        with pytest.raises(GenerationError):
            await modular.generate_project(project_config)

        assert not tmp_project_dir.exists()

    @pytest.mark.asyncio
    async def test_successful_run_commits(self, modular, project_config, tmp_project_dir):
        await modular.generate_project(project_config)

        assert modular.context.transaction.get_summary() == {
            "created_files": 0,
            "created_dirs": 0,
            "modified_files": 0,
        }
        assert (tmp_project_dir / "backend" / ".env.example").exists()

    @pytest.mark.asyncio
    async def test_rollback_disabled_keeps_partial_output(
        self, project_config, tmp_project_dir, make_plugin
    ):
        modular = ModularGenerator(GeneratorSettings(rollback_on_failure=False, verbose=False))
        modular.register_plugin(self._failing_post_hook(make_plugin))

        with pytest.raises(HookError):
            await modular.generate_project(project_config)

        assert (tmp_project_dir / "package.json").exists()


def test_generation_error_message():
    assert str(GenerationError(["a", "b"])) == "a; b"
    assert str(GenerationError([])) == "Generation failed"


def test_settings_default_to_quiet():
    assert ModularGenerator().settings == GeneratorSettings(verbose=False)
