"""Static metadata served next to the release notes.

- Build-pack builders and the language versions each supports
- Dockerfile templates per language/framework
- The catalogue of installable modules

Everything here is a fixed lookup table; nothing is fetched or stored.
"""

from __future__ import annotations

from enum import StrEnum

from release_notes_api.config import ModuleConfig
from release_notes_api.schemas import (
    Builder,
    BuilderLanguageMetadata,
    BuildPackMetadata,
    DockerfileTemplateMetadata,
    LanguageBuilder,
    LanguageFramework,
    LanguageSupport,
    Module,
    ResourceFilter,
    ResourceIdentifier,
)


class Language(StrEnum):
    NODE = "Node"
    JAVA = "Java"
    PYTHON = "Python"
    PHP = "PHP"
    RUBY = "Ruby"
    GO = "Go"
    DOTNET = ".NET"


class Framework(StrEnum):
    MAVEN = "Maven"
    GRADLE = "Gradle"
    DJANGO = "Django"
    FLASK = "Flask"


_ICONS = {
    Language.JAVA: "https://cdn.devtron.ai/images/ic-Java.png",
    Language.GO: "https://cdn.devtron.ai/images/ic-go.png",
    Language.PYTHON: "https://cdn.devtron.ai/images/ic-python.png",
    Language.NODE: "https://cdn.devtron.ai/images/ic-nodejs.png",
    Language.PHP: "https://cdn.devtron.ai/images/ic-php.png",
    Language.RUBY: "https://cdn.devtron.ai/images/ic-ruby.png",
}

_TEMPLATES_BASE = "https://raw.githubusercontent.com/devtron-labs/devtron"

GCP_BUILDER = "gcr.io/buildpacks/builder:v1"
PAKETO_FULL = "paketobuildpacks/builder:full"
PAKETO_BASE = "paketobuildpacks/builder:base"
PAKETO_TINY = "paketobuildpacks/builder:tiny"
HEROKU_18 = "heroku/buildpacks:18"
HEROKU_20 = "heroku/buildpacks:20"


def _support(language: Language, env_param: str, *versions: str) -> LanguageSupport:
    return LanguageSupport(
        language=language.value, builder_lang_env_param=env_param, versions=list(versions)
    )


def _language_builder(
    language: Language,
    versions: list[str],
    env_params: dict[str, str],
) -> LanguageBuilder:
    return LanguageBuilder(
        language=language.value,
        language_icon=_ICONS[language],
        versions=versions,
        builder_language_metadata=[
            BuilderLanguageMetadata(id=builder_id, builder_lang_env_param=param)
            for builder_id, param in env_params.items()
        ],
    )


def build_dockerfile_template_metadata() -> DockerfileTemplateMetadata:
    frameworks = [
        (Language.JAVA, Framework.MAVEN, "main/sample-docker-templates/java/Maven_Dockerfile"),
        (Language.JAVA, Framework.GRADLE, "main/sample-docker-templates/java/Gradle_Dockerfile"),
        (Language.GO, None, "main/sample-docker-templates/go/Dockerfile"),
        (Language.PYTHON, Framework.DJANGO, "buildpack-support/sample-docker-templates/django/Dockerfile"),
        (Language.PYTHON, Framework.FLASK, "buildpack-support/sample-docker-templates/flask/Dockerfile"),
        (Language.NODE, None, "buildpack-support/sample-docker-templates/node/Dockerfile"),
    ]
    return DockerfileTemplateMetadata(
        language_frameworks=[
            LanguageFramework(
                language=language.value,
                framework=framework.value if framework else "",
                language_icon=_ICONS[language],
                template_url=f"{_TEMPLATES_BASE}/{path}",
            )
            for language, framework, path in frameworks
        ]
    )


def build_buildpack_metadata() -> BuildPackMetadata:
    gcp_env = "GOOGLE_RUNTIME_VERSION"
    paketo_support = [
        _support(Language.JAVA, "BP_JVM_VERSION", "8", "11"),
        _support(Language.NODE, "BP_NODE_VERSION", "16.x", "14.x"),
        _support(Language.PYTHON, "BP_CPYTHON_VERSION", "3.6.*"),
        _support(Language.RUBY, "BP_MRI_VERSION", "2.7.1"),
        _support(Language.DOTNET, "BP_DOTNET_FRAMEWORK_VERSION", "5.0.4"),
        _support(Language.GO, "BP_GO_VERSION", "1.19"),
    ]
    heroku_support = [
        _support(Language.JAVA, "", "8", "11"),
        _support(Language.NODE, "", "16.x", "14.x"),
        _support(Language.RUBY, "", "16.x", "14.x"),
        _support(Language.PYTHON, "", "16.x", "14.x"),
        _support(Language.PHP, "", "16.x", "14.x"),
        _support(Language.GO, "GOVERSION", "16.x", "14.x"),
    ]
    builders = [
        Builder(
            id=GCP_BUILDER,
            language_support=[
                _support(Language.JAVA, gcp_env, "8", "11"),
                *[
                    _support(language, gcp_env, "16.x", "14.x")
                    for language in (
                        Language.NODE,
                        Language.DOTNET,
                        Language.GO,
                        Language.RUBY,
                        Language.PYTHON,
                        Language.PHP,
                    )
                ],
            ],
        ),
        Builder(id=PAKETO_FULL, language_support=paketo_support),
        Builder(id=PAKETO_BASE, language_support=paketo_support),
        Builder(
            id=PAKETO_TINY,
            language_support=[
                _support(Language.JAVA, "BP_JVM_VERSION", "8", "11"),
                _support(Language.GO, "BP_GO_VERSION", "1.18", "1.19"),
            ],
        ),
        Builder(id=HEROKU_18, language_support=heroku_support),
        Builder(id=HEROKU_20, language_support=heroku_support),
    ]

    language_builders = [
        _language_builder(
            Language.JAVA,
            ["8", "11"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_JVM_VERSION",
                PAKETO_BASE: "BP_JVM_VERSION",
                PAKETO_TINY: "BP_JVM_VERSION",
                HEROKU_20: "DEVTRON_LANG_VERSION",
            },
        ),
        _language_builder(
            Language.PYTHON,
            ["3.7.*"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_CPYTHON_VERSION",
                PAKETO_BASE: "BP_CPYTHON_VERSION",
                HEROKU_20: "DEVTRON_LANG_VERSION",
            },
        ),
        _language_builder(
            Language.PHP,
            ["7.4"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_PHP_VERSION",
                PAKETO_BASE: "BP_PHP_VERSION",
                HEROKU_20: "",
            },
        ),
        _language_builder(
            Language.GO,
            ["1.18", "1.19"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_GO_VERSION",
                PAKETO_BASE: "BP_GO_VERSION",
                PAKETO_TINY: "BP_GO_VERSION",
                HEROKU_20: "GOVERSION",
            },
        ),
        _language_builder(
            Language.RUBY,
            ["2.7"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_MRI_VERSION",
                PAKETO_BASE: "BP_MRI_VERSION",
                HEROKU_20: "",
            },
        ),
        _language_builder(
            Language.NODE,
            ["16.x", "18.x"],
            {
                GCP_BUILDER: gcp_env,
                PAKETO_FULL: "BP_NODE_VERSION",
                PAKETO_BASE: "BP_NODE_VERSION",
                HEROKU_20: "DEVTRON_LANG_VERSION",
            },
        ),
    ]
    return BuildPackMetadata(builders=builders, language_builder=language_builders)


class CiBuildMetadataService:
    """Serves build-pack and Dockerfile template metadata.

    The tables are built once; every call returns the same objects.
    """

    def __init__(self) -> None:
        self._buildpack_metadata = build_buildpack_metadata()
        self._dockerfile_template_metadata = build_dockerfile_template_metadata()

    def get_buildpack_metadata(self) -> BuildPackMetadata:
        return self._buildpack_metadata

    def get_dockerfile_template_metadata(self) -> DockerfileTemplateMetadata:
        return self._dockerfile_template_metadata


class ModuleService:
    """Serves the catalogue of installable modules.

    The base "cicd" module is presented from configuration; the other
    integrations are fixed.
    """

    def __init__(self, config: ModuleConfig | None = None) -> None:
        self._config = config or ModuleConfig()

    def _cicd_module(self) -> Module:
        return Module(
            id=1,
            name="cicd",
            base_min_version_supported=self._config.base_min_version_supported,
            is_included_in_legacy_full_package=True,
            description=self._config.description,
            title=self._config.title,
            icon=self._config.icon,
            info=self._config.info,
            assets=list(self._config.assets),
            dependent_modules=[],
        )

    def get_modules(self) -> list[Module]:
        return [self._cicd_module()]

    def get_modules_v2(self) -> list[Module]:
        return [
            self._cicd_module(),
            Module(
                id=2,
                name="argo-cd",
                base_min_version_supported="v0.6.0",
                is_included_in_legacy_full_package=True,
                description=(
                    "GitOps applies version control, collaboration and compliance "
                    "practices to infrastructure automation. Implements GitOps to "
                    "manage the state of Kubernetes applications through Argo CD."
                ),
                title="GitOps (Argo CD)",
                icon="https://cdn.devtron.ai/images/ic-integration-gitops-argocd.png",
                info="Declarative GitOps CD for Kubernetes powered by Argo CD",
                assets=["https://cdn.devtron.ai/images/img-gitops-1.png"],
                dependent_modules=[1],
                resource_filter=ResourceFilter(
                    global_filter=ResourceIdentifier(
                        labels={"app.kubernetes.io/part-of": "argocd"}
                    )
                ),
            ),
            Module(
                id=3,
                name="security.clair",
                base_min_version_supported="v0.6.0",
                is_included_in_legacy_full_package=True,
                description=(
                    "Scans images against a Clair server as part of the CI/CD "
                    "pipeline and blocks deployment of images with blocked "
                    "vulnerabilities."
                ),
                title="Vulnerability Scanning (Clair)",
                icon="https://cdn.devtron.ai/images/ic-integration-security-clair.png",
                info="Seamless integration with Clair for vulnerability scanning of images.",
                assets=[
                    f"https://cdn.devtron.ai/images/img-security-clair-{n}.png"
                    for n in range(1, 5)
                ],
                dependent_modules=[1],
                module_type="security",
            ),
            Module(
                id=4,
                name="notifier",
                base_min_version_supported="v0.6.0",
                is_included_in_legacy_full_package=True,
                description=(
                    "Sends alerts for build and deployment pipelines on trigger, "
                    "success and failure events to Slack, SES or SMTP."
                ),
                title="Notifications",
                icon="https://cdn.devtron.ai/images/ic-integration-notifications.png",
                info="Get notified when build and deployment pipelines start, fail or succeed.",
                assets=[
                    f"https://cdn.devtron.ai/images/img-notification-{n}.png"
                    for n in range(1, 4)
                ],
                dependent_modules=[1],
            ),
            Module(
                id=5,
                name="monitoring.grafana",
                base_min_version_supported="v0.6.0",
                is_included_in_legacy_full_package=True,
                description=(
                    "Shows application metrics like CPU and memory usage, "
                    "throughput, status codes and latency through Grafana."
                ),
                title="Monitoring (Grafana)",
                icon="https://cdn.devtron.ai/images/ic-integration-grafana.png",
                info=(
                    "Enables metrics like CPU, memory, status codes, throughput, "
                    "and latency for applications."
                ),
                assets=[
                    "https://cdn.devtron.ai/images/img-grafana-1.png",
                    "https://cdn.devtron.ai/images/img-grafana-2.png",
                ],
                dependent_modules=[1],
                resource_filter=ResourceFilter(
                    global_filter=ResourceIdentifier(
                        labels={"app.kubernetes.io/name": "grafana"}
                    )
                ),
            ),
            Module(
                id=6,
                name="security.trivy",
                base_min_version_supported="v0.6.18",
                is_included_in_legacy_full_package=True,
                description=(
                    "Scans images with the Trivy CLI as part of the CI/CD pipeline "
                    "and blocks deployment of images with blocked vulnerabilities."
                ),
                title="Vulnerability Scanning (Trivy)",
                icon="https://cdn.devtron.ai/images/ic-integration-security-trivy.png",
                info="Seamless integration with Trivy for vulnerability scanning of images.",
                assets=[
                    f"https://cdn.devtron.ai/images/img-security-clair-{n}.png"
                    for n in range(1, 5)
                ],
                dependent_modules=[1],
                module_type="security",
            ),
        ]

    def get_module_by_name(self, name: str) -> Module:
        """Return the named module, or an empty Module when it is unknown."""
        for module in self.get_modules_v2():
            if module.name == name:
                return module
        return Module()
