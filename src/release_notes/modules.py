"""Static catalog of installable modules.

The catalog is plain metadata. The base `cicd` module is configurable
because its supported version moves with every release; the optional
modules ship with built-in defaults and can be replaced by a YAML file:

    base:
      base_min_version_supported: v0.6.0
      title: Build and Deploy (CI/CD)
    modules:
      - id: 2
        name: argo-cd
        base_min_version_supported: v0.5.3
        dependent_modules: [1]
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from release_notes.schemas import Module

BASE_MODULE_ID = 1
BASE_MODULE_NAME = "cicd"


class ModuleConfig(BaseModel):
    """Configurable fields of the base module."""

    base_min_version_supported: str = ""
    title: str = "Build and Deploy (CI/CD)"
    description: str = (
        "Enables continuous code integration and deployment for applications."
    )
    icon: str = "https://cdn.devtron.ai/images/ic-integration-cicd.png"
    info: str = "Enables continuous code integration and deployment."
    assets: list[str] = Field(default_factory=list)


class ModuleCatalogConfig(BaseModel):
    """Top-level configuration loaded from YAML."""

    base: ModuleConfig = Field(default_factory=ModuleConfig)
    modules: list[Module] | None = None


# HTML fragments, rendered as-is by clients
ARGO_CD_DESCRIPTION = "<div class=\"module-details__feature-info fs-14 fw-4\"><p>GitOps is an operational framework that takes DevOps best practices used for application development such as version control, collaboration, compliance and applies them to infrastructure automation. Similar to how teams use application source code, operations teams that adopt GitOps use configuration files stored as code (infrastructure as code).</p><p>Devtron uses GitOps to automate the process of provisioning infrastructure. GitOps configuration files generate the same infrastructure environment every time it’s deployed, just as application source code generates the same application binaries every time it’s built.</p><h3 class=\"module-details__features-list-heading fs-14 fw-6\">Features:</h3><ul class=\"module-details__features-list pl-22 mb-24\"><li>Implements GitOps to manage the state of Kubernetes applications.</li><li>Simplified and abstracted integration with ArgoCD for GitOps operation.</li><li>No prior knowledge of ArgoCD is required.</li></ul></div>"

SECURITY_CLAIR_DESCRIPTION = "<div class=\"module-details__feature-info fs-14 fw-4\"><p>When you work with containers (Docker) you are not only packaging your application but also part of the OS. It is crucial to know what kind of libraries might be vulnerable in your container. One way to find this information is to look at the Docker registry [Hub or Quay.io] security scan. This means your vulnerable image is already on the Docker registry.</p><p>What you want is a scan as a part of CI/CD pipeline that stops the Docker image push on vulnerabilities:</p><ul class=\"module-details__features-list pl-22 mb-24\" style=\"\n    list-style: decimal;\n\"><li>Build and test your application\n</li><li>Build the container\n</li><li>Test the container for vulnerabilities\n</li><li>Check the vulnerabilities against allowed ones, if everything is allowed then pass otherwise fail\n</li></ul><p>This straightforward process is not that easy to achieve when using the services like Docker Hub or Quay.io. This is because they work asynchronously which makes it harder to do straightforward CI/CD pipeline.</p><h3 class=\"module-details__features-list-heading fs-14 fw-6\">Features:</h3><ul class=\"module-details__features-list pl-22 mb-24\"><li>Scans an image against Clair server</li><li>Compares the vulnerabilities against a whitelist</li><li>Blocks images from deployment if blacklisted / blocked vulnerabilities are detected</li><li>Ability to define hierarchical security policy (Global / Cluster / Environment / Application) to allow / block vulnerabilities based on criticality (High / Moderate / Low)</li><li>Shows security vulnerabilities detected in deployed applications</li></ul></div>"

DEFAULT_MODULES: tuple[Module, ...] = (
    Module(
        id=2,
        name="argo-cd",
        base_min_version_supported="v0.5.3",
        is_included_in_legacy_full_package=True,
        description=ARGO_CD_DESCRIPTION,
        title="GitOps (by Argo CD)",
        icon="https://cdn.devtron.ai/images/ic-integration-gitops-argocd.png",
        info="Declarative GitOps CD for Kubernetes powered by Argo CD",
        assets=["https://cdn.devtron.ai/images/img-gitops-1.png"],
        dependent_modules=[1],
    ),
    Module(
        id=3,
        name="security-clair",
        base_min_version_supported="v0.5.4",
        is_included_in_legacy_full_package=True,
        description=SECURITY_CLAIR_DESCRIPTION,
        title="Vulnerability scanning (Clair)",
        icon="https://cdn.devtron.ai/images/ic-integration-security-clair.png",
        info="Seamless integration with Clair for vulnerability scanning of images.",
        assets=[
            "https://cdn.devtron.ai/images/img-security-clair-1.png",
            "https://cdn.devtron.ai/images/img-security-clair-2.png",
            "https://cdn.devtron.ai/images/img-security-clair-3.png",
            "https://cdn.devtron.ai/images/img-security-clair-4.png",
        ],
        dependent_modules=[1],
    ),
)


def load_module_catalog(path: str | Path | None) -> ModuleCatalogConfig:
    """Load and validate a YAML module catalog.

    Args:
        path: Path to the YAML file, or None for the built-in catalog.

    Returns:
        A validated ModuleCatalogConfig. Returns defaults if the file
        doesn't exist.

    Raises:
        ValueError: If the YAML content is invalid or fails validation.
    """
    if path is None:
        return ModuleCatalogConfig()

    config_path = Path(path)
    if not config_path.exists():
        return ModuleCatalogConfig()

    try:
        raw = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    try:
        return ModuleCatalogConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid module catalog in {path}: {exc}") from exc


class ModuleCatalog:
    """Answers module queries from a ModuleCatalogConfig."""

    def __init__(self, config: ModuleCatalogConfig | None = None) -> None:
        self._config = config or ModuleCatalogConfig()

    def base_module(self) -> Module:
        base = self._config.base
        return Module(
            id=BASE_MODULE_ID,
            name=BASE_MODULE_NAME,
            base_min_version_supported=base.base_min_version_supported,
            is_included_in_legacy_full_package=True,
            description=base.description,
            title=base.title,
            icon=base.icon,
            info=base.info,
            assets=list(base.assets),
            dependent_modules=[],
        )

    def modules(self) -> list[Module]:
        """Modules understood by legacy clients: the base module only."""
        return [self.base_module()]

    def modules_v2(self) -> list[Module]:
        """The base module followed by every optional module."""
        extra = self._config.modules
        if extra is None:
            extra = list(DEFAULT_MODULES)
        return [self.base_module(), *(m.model_copy(deep=True) for m in extra)]

    def module_by_name(self, name: str) -> Module | None:
        for module in self.modules_v2():
            if module.name == name:
                return module
        return None
