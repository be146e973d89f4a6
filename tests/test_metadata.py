"""Tests for build metadata and the module catalogue."""

from __future__ import annotations

from release_notes_api.config import ModuleConfig
from release_notes_api.metadata import (
    GCP_BUILDER,
    HEROKU_20,
    CiBuildMetadataService,
    ModuleService,
)


class TestCiBuildMetadataService:
    def test_builders(self) -> None:
        metadata = CiBuildMetadataService().get_buildpack_metadata()
        ids = [builder.id for builder in metadata.builders]

        assert ids[0] == GCP_BUILDER
        assert HEROKU_20 in ids
        assert len(set(ids)) == len(ids)

    def test_language_builders_reference_known_builders(self) -> None:
        metadata = CiBuildMetadataService().get_buildpack_metadata()
        known = {builder.id for builder in metadata.builders}

        for language in metadata.language_builder:
            assert language.language_icon
            for entry in language.builder_language_metadata:
                assert entry.id in known

    def test_dockerfile_templates(self) -> None:
        metadata = CiBuildMetadataService().get_dockerfile_template_metadata()
        pairs = {(f.language, f.framework) for f in metadata.language_frameworks}

        assert ("Java", "Maven") in pairs
        assert ("Go", "") in pairs
        assert ("Python", "Django") in pairs


class TestModuleService:
    def test_base_module_from_config(self) -> None:
        service = ModuleService(ModuleConfig(title="CI/CD", assets=["x.png"]))

        [module] = service.get_modules()

        assert module.name == "cicd"
        assert module.title == "CI/CD"
        assert module.assets == ["x.png"]

    def test_v2_catalogue(self) -> None:
        modules = ModuleService().get_modules_v2()

        assert [m.id for m in modules] == [1, 2, 3, 4, 5, 6]
        assert all(m.dependent_modules == [1] for m in modules[1:])

    def test_lookup_by_name(self) -> None:
        service = ModuleService()

        assert service.get_module_by_name("notifier").id == 4
        assert service.get_module_by_name("missing").name == ""
