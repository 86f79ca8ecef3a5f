"""Static lookup tables for Jenkins to GitLab CI translation.

These tables are plain data. `EngineConfig` carries them into the
resolvers so tests can substitute their own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from ferryman.engine.models import (
    CompatibilityEntry,
    HitConfidence,
    ReferenceKind,
    SupportTier,
    ValueKind,
)

GITLAB_DOCS = "https://docs.gitlab.com/ee"


@dataclass(frozen=True)
class Signature:
    """A capability usage pattern.

    `capability` is either a fixed canonical id or the index of the regex
    group holding the raw name.
    """

    pattern: re.Pattern[str]
    capability: str | int
    confidence: HitConfidence


def _sig(pattern: str, capability: str | int, confidence: HitConfidence) -> Signature:
    return Signature(re.compile(pattern), capability, confidence)


# Specific high-confidence signatures first, the generic catch-all last.
SIGNATURES: tuple[Signature, ...] = (
    _sig(r"@Library\(\s*['\"]([^'\"]+)['\"]", "shared-library", "high"),
    _sig(r"docker\s*\.\s*(build|image|withRegistry|withDockerRegistry|withServer)", "docker-workflow", "high"),
    _sig(r"\bwithDockerRegistry\s*\(", "docker-workflow", "high"),
    _sig(r"\bwithCredentials\s*\(", "credentials-binding", "high"),
    _sig(r"\busernamePassword\s*\(", "credentials-binding", "high"),
    _sig(r"\bstring\s*\(\s*credentialsId", "credentials-binding", "high"),
    _sig(r"\bfile\s*\(\s*credentialsId", "credentials-binding", "high"),
    _sig(r"\bsshUserPrivateKey\s*\(", "credentials-binding", "high"),
    _sig(r"\bsshagent\s*\(", "ssh-agent", "high"),
    _sig(r"\bjunit\b\s*(?:[\('\"]|testResults\s*:)", "junit", "high"),
    _sig(r"\bpublishTestResults\s*\(", "junit", "high"),
    _sig(r"\bpublishHTML\s*\(", "publishhtml", "high"),
    _sig(r"\bjacoco\s*\(", "jacoco", "high"),
    _sig(r"\bcobertura\s*\(", "cobertura", "high"),
    _sig(r"\brecordIssues\s*\(", "warnings-ng", "high"),
    _sig(r"\barchiveArtifacts\b", "archive-artifacts", "high"),
    _sig(r"\bstash\s*\(|\bunstash\s*\(", "stash", "medium"),
    _sig(r"\bslackSend\s*\(", "slack", "high"),
    _sig(r"\bemailext\s*\(", "email-ext", "high"),
    _sig(r"\bmail\s*\(", "email-ext", "medium"),
    _sig(r"\btimeout\s*\(", "build-timeout", "high"),
    _sig(r"\bretry\s*\(", "retry", "high"),
    _sig(r"\bcleanWs\s*\(", "ws-cleanup", "high"),
    _sig(r"\bdeleteDir\s*\(", "ws-cleanup", "high"),
    _sig(r"\block\s*\(", "lockable-resources", "high"),
    _sig(r"\binput\s*\(|\binput\s+message\s*:", "pipeline-input-step", "high"),
    _sig(r"\bbuild\s*\(?\s*job\s*:", "pipeline-build-step", "high"),
    _sig(r"\bwithVault\s*\(", "hashicorp-vault", "high"),
    _sig(r"\bwithAWS\s*\(", "pipeline-aws", "high"),
    _sig(r"\b(withKubeConfig|kubeconfigFile)\s*\(", "kubernetes-cd", "high"),
    _sig(r"\b(withSonarQubeEnv|sonarqube)\s*[\(\{]", "sonarqube", "high"),
    _sig(r"\bwaitForQualityGate\s*\(", "sonarqube", "high"),
    _sig(r"\b(withMaven|mvn)\s*[\(\{]", "maven-invoker", "medium"),
    _sig(r"\b(nodejs|npm|yarn)\s*[\(\{]", "nodejs", "medium"),
    _sig(r"\b(gradle|gradlew|withGradle)\s*[\(\{]", "gradle", "medium"),
    _sig(r"\b(python|pip)\s*[\(\{]", "python", "medium"),
    _sig(r"\b(terraform|tf)\s*[\(\{]", "terraform", "medium"),
    _sig(r"\b(ansible|ansiblePlaybook)\s*[\(\{]", "ansible", "medium"),
    _sig(r"\b(helm|kubectl)\s*[\(\{]", "kubernetes-cd", "medium"),
    _sig(r"\b(checkmarx|cx)\s*[\(\{]", "checkmarx", "high"),
    _sig(r"\b(dependencyCheck|owasp)\s*[\(\{]", "dependency-check", "high"),
    _sig(r"\b(selenium|webdriver)\s*[\(\{]", "selenium", "medium"),
    _sig(r"\b(cypress)\s*[\(\{]", "cypress", "high"),
    _sig(r"\b(gatling|jmeter)\s*[\(\{]", "performance", "medium"),
    _sig(r"\b(s3Upload|s3Download)\s*\(", "s3", "high"),
    _sig(r"\b(azureUpload)\s*\(", "azure-storage", "high"),
    _sig(r"\b(googleStorageUpload)\s*\(", "google-cloud-storage", "high"),
    _sig(r"\b(nexusArtifactUploader|nexusPublisher)\s*\(", "nexus-artifact-uploader", "high"),
    _sig(r"\b(rtUpload|rtServer|rtMavenRun)\s*\(", "artifactory", "high"),
    _sig(r"\b(xcodebuild|xcode)\s*[\(\{]", "xcode", "high"),
    _sig(r"\b(androidEmulator)\s*[\(\{]", "android-emulator", "medium"),
    _sig(r"\b(dotnet|msbuild)\s*[\(\{]", "dotnet", "medium"),
    _sig(r"\b([a-zA-Z][a-zA-Z0-9_-]*)\s*\{", 1, "low"),
)

# Structural DSL keywords and shell tools that look like capabilities but
# are not. Compared case-insensitively against the raw matched name.
EXCLUDED_TOKENS: frozenset[str] = frozenset(
    {
        # language keywords
        "if", "else", "for", "while", "try", "catch", "finally", "switch", "case",
        "def", "var", "let", "const", "function", "return", "class", "static",
        "true", "false", "null", "undefined", "string", "number",
        "echo", "print", "println", "log", "error", "warn", "info", "debug",
        # pipeline structure
        "pipeline", "agent", "node", "stage", "stages", "steps", "step", "script",
        "post", "always", "success", "failure", "unstable", "aborted", "changed",
        "fixed", "regression", "cleanup", "properties", "parameters", "triggers",
        "when", "not", "branch", "environment", "tools", "options", "input",
        "matrix", "axes", "axis", "exclude", "excludes", "parallel", "expression",
        "allof", "anyof", "changerequest", "buildingtag", "tag", "dir", "ws",
        "container", "label", "dockerfile", "kubernetes", "any", "none",
        "unsuccessful", "notbuilt", "libraries", "catcherror", "withenv", "inside",
        # closure iteration
        "each", "eachwithindex", "collect", "find", "findall", "with", "times", "it",
        # shell tools
        "sh", "bat", "powershell", "pwsh", "cmd", "npm", "mvn", "gradle", "make",
        "cmake", "docker", "kubectl", "helm", "python", "pip", "git", "curl",
        # common directory names
        "src", "test", "build", "target", "dist", "bin", "lib", "config",
    }
)

# Synonymous call forms collapsed into one canonical id. Keys are lowercase.
PLUGIN_ALIASES: MappingProxyType[str, str] = MappingProxyType(
    {
        "docker": "docker-workflow",
        "docker-build-step": "docker-workflow",
        "docker-build": "docker-workflow",
        "docker-pipeline": "docker-workflow",
        "withdockerregistry": "docker-workflow",
        "withdockerserver": "docker-workflow",
        "withcredentials": "credentials-binding",
        "usernamepassword": "credentials-binding",
        "credentials": "credentials-binding",
        "publishtestresults": "junit",
        "testresults": "junit",
        "archiveartifacts": "archive-artifacts",
        "artifacts": "archive-artifacts",
        "slacksend": "slack",
        "emailext": "email-ext",
        "mail": "email-ext",
        "cleanws": "ws-cleanup",
        "deletedir": "ws-cleanup",
        "withmaven": "maven-invoker",
        "maven": "maven-invoker",
        "mvn": "maven-invoker",
        "withgradle": "gradle",
        "withsonarqubeenv": "sonarqube",
        "sonar": "sonarqube",
        "timeout": "build-timeout",
        "withvault": "hashicorp-vault",
        "vault": "hashicorp-vault",
        "withkubeconfig": "kubernetes-cd",
        "kubernetes-cli": "kubernetes-cd",
        "withaws": "pipeline-aws",
        "sshagent": "ssh-agent",
        "@library": "shared-library",
        "library": "shared-library",
        "lock": "lockable-resources",
        "node-js": "nodejs",
        "nodejs-plugin": "nodejs",
    }
)

COMPATIBILITY_TABLE: MappingProxyType[str, CompatibilityEntry] = MappingProxyType(
    {
        "credentials-binding": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="CI/CD variables",
            note="Store secrets as masked, protected CI/CD variables.",
            documentation=f"{GITLAB_DOCS}/ci/variables/",
        ),
        "docker-workflow": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="Docker executor with docker:dind service",
            note="Build and push images from a job using the Docker-in-Docker service.",
            documentation=f"{GITLAB_DOCS}/ci/docker/using_docker_build.html",
        ),
        "junit": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="artifacts:reports:junit",
            note="Publish JUnit XML with artifacts:reports:junit.",
            documentation=f"{GITLAB_DOCS}/ci/testing/unit_test_reports.html",
        ),
        "archive-artifacts": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="artifacts:paths",
            note="Declare artifacts:paths on the producing job.",
            documentation=f"{GITLAB_DOCS}/ci/jobs/job_artifacts.html",
        ),
        "stash": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="artifacts with needs/dependencies",
            note="Pass files between jobs as artifacts instead of stash/unstash.",
            documentation=f"{GITLAB_DOCS}/ci/jobs/job_artifacts.html",
        ),
        "build-timeout": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="timeout",
            note="Use the job or default timeout keyword.",
            documentation=f"{GITLAB_DOCS}/ci/yaml/#timeout",
        ),
        "retry": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="retry",
            note="Use the retry keyword (maximum of 2 automatic retries).",
            documentation=f"{GITLAB_DOCS}/ci/yaml/#retry",
        ),
        "ws-cleanup": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="Fresh clone per job",
            note="Jobs start from a clean checkout; adjust GIT_STRATEGY or GIT_CLEAN_FLAGS if needed.",
            documentation=f"{GITLAB_DOCS}/ci/runners/configure_runners.html",
        ),
        "pipeline-input-step": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="when: manual",
            note="Replace interactive input with a manual job.",
            documentation=f"{GITLAB_DOCS}/ci/jobs/job_control.html",
        ),
        "pipeline-build-step": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="trigger",
            note="Replace downstream builds with trigger jobs.",
            documentation=f"{GITLAB_DOCS}/ci/pipelines/downstream_pipelines.html",
        ),
        "lockable-resources": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="resource_group",
            note="Serialize jobs with resource_group.",
            documentation=f"{GITLAB_DOCS}/ci/resource_groups/",
        ),
        "maven-invoker": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="maven image",
            note="Run Maven inside a maven image with a cached local repository.",
            documentation=f"{GITLAB_DOCS}/ci/caching/",
        ),
        "gradle": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="gradle image",
            note="Run Gradle inside a gradle image with cached .gradle directories.",
            documentation=f"{GITLAB_DOCS}/ci/caching/",
        ),
        "nodejs": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="node image",
            note="Run Node.js tooling inside a node image with cached node_modules.",
            documentation=f"{GITLAB_DOCS}/ci/caching/",
        ),
        "python": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="python image",
            note="Run Python tooling inside a python image with a cached pip directory.",
            documentation=f"{GITLAB_DOCS}/ci/caching/",
        ),
        "dotnet": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="dotnet sdk image",
            note="Run dotnet inside the .NET SDK image.",
        ),
        "cobertura": CompatibilityEntry(
            tier=SupportTier.NATIVE,
            equivalent="artifacts:reports:coverage_report",
            note="Publish Cobertura XML as a coverage report artifact.",
            documentation=f"{GITLAB_DOCS}/ci/testing/test_coverage_visualization.html",
        ),
        "jacoco": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="artifacts:reports:coverage_report",
            note="Convert JaCoCo XML to Cobertura format before publishing.",
            documentation=f"{GITLAB_DOCS}/ci/testing/test_coverage_visualization.html",
        ),
        "sonarqube": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="sonar-scanner job",
            include="template: Jobs/Code-Quality.gitlab-ci.yml",
            note="Run the SonarQube scanner in a job; SONAR_HOST_URL and SONAR_TOKEN become variables.",
            documentation=f"{GITLAB_DOCS}/ci/testing/code_quality.html",
        ),
        "dependency-check": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="Dependency Scanning",
            include="template: Jobs/Dependency-Scanning.gitlab-ci.yml",
            note="Replace OWASP Dependency-Check with the Dependency Scanning template.",
            documentation=f"{GITLAB_DOCS}/user/application_security/dependency_scanning/",
        ),
        "checkmarx": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="SAST",
            include="template: Jobs/SAST.gitlab-ci.yml",
            note="Use the SAST template, or call the Checkmarx CLI from a job.",
            documentation=f"{GITLAB_DOCS}/user/application_security/sast/",
        ),
        "terraform": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="Terraform templates",
            include="template: Terraform/Base.gitlab-ci.yml",
            note="Use the Terraform base template and GitLab-managed Terraform state.",
            documentation=f"{GITLAB_DOCS}/user/infrastructure/iac/",
        ),
        "kubernetes-cd": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="kubectl/helm job with a cluster agent",
            note="Deploy from a job using the GitLab agent for Kubernetes or a file-typed KUBECONFIG.",
            documentation=f"{GITLAB_DOCS}/user/clusters/agent/ci_cd_workflow.html",
        ),
        "shared-library": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="include:project",
            note="Move shared library steps into reusable CI templates pulled in with include:project.",
            documentation=f"{GITLAB_DOCS}/ci/yaml/includes.html",
        ),
        "hashicorp-vault": CompatibilityEntry(
            tier=SupportTier.TEMPLATED,
            equivalent="secrets:vault",
            note="Use the secrets:vault keyword with ID tokens.",
            documentation=f"{GITLAB_DOCS}/ci/secrets/",
        ),
        "slack": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="Slack notifications integration",
            note="Pipeline events can notify Slack via the integration; custom messages need a webhook job.",
            documentation=f"{GITLAB_DOCS}/user/project/integrations/gitlab_slack_application.html",
            alternative="curl to an incoming webhook stored in SLACK_WEBHOOK_URL",
        ),
        "email-ext": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="Pipeline emails integration",
            note="Pipeline status emails are configured in project integrations, not in YAML.",
            documentation=f"{GITLAB_DOCS}/user/project/integrations/pipeline_status_emails.html",
            alternative="send mail from a job with a small SMTP client",
        ),
        "publishhtml": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="artifacts:expose_as or Pages",
            note="Expose HTML reports as artifacts or publish them with GitLab Pages.",
            documentation=f"{GITLAB_DOCS}/ci/yaml/#artifactsexpose_as",
        ),
        "warnings-ng": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="Code Quality report",
            note="Convert analyzer output to the Code Quality report format.",
            documentation=f"{GITLAB_DOCS}/ci/testing/code_quality.html",
        ),
        "ssh-agent": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="ssh-agent in before_script",
            note="Start ssh-agent in the job and load a file-typed SSH key variable.",
            documentation=f"{GITLAB_DOCS}/ci/ssh_keys/",
        ),
        "pipeline-aws": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="aws-cli image with OIDC",
            note="Authenticate with ID tokens or AWS credential variables and call the AWS CLI.",
            documentation=f"{GITLAB_DOCS}/ci/cloud_services/aws/",
        ),
        "s3": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="aws s3 cp from an aws-cli job",
            note="Upload with the AWS CLI from a job.",
            documentation=f"{GITLAB_DOCS}/ci/cloud_services/aws/",
        ),
        "azure-storage": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="az storage from an azure-cli job",
            note="Upload with the Azure CLI from a job.",
        ),
        "google-cloud-storage": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="gsutil from a cloud-sdk job",
            note="Upload with gsutil from a job.",
        ),
        "nexus-artifact-uploader": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="Package registry or curl upload",
            note="Publish to the GitLab package registry or upload to Nexus with curl.",
            documentation=f"{GITLAB_DOCS}/user/packages/package_registry/",
        ),
        "artifactory": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="JFrog CLI job",
            note="Call the JFrog CLI from a job.",
        ),
        "ansible": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="ansible image job",
            note="Run ansible-playbook from a job with inventory and keys as variables.",
        ),
        "selenium": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="selenium service container",
            note="Run browsers as job services.",
            documentation=f"{GITLAB_DOCS}/ci/services/",
        ),
        "cypress": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="cypress image job",
            note="Run Cypress inside the cypress/browsers image.",
        ),
        "performance": CompatibilityEntry(
            tier=SupportTier.LIMITED,
            equivalent="Load Performance Testing",
            include="template: Verify/Load-Performance-Testing.gitlab-ci.yml",
            note="Port load tests to k6 or run the existing tool in a job.",
            documentation=f"{GITLAB_DOCS}/ci/testing/load_performance_testing.html",
        ),
        "xcode": CompatibilityEntry(
            tier=SupportTier.UNSUPPORTED,
            note="Requires a macOS runner; no hosted equivalent is assumed.",
            alternative="self-managed macOS runner",
        ),
        "android-emulator": CompatibilityEntry(
            tier=SupportTier.UNSUPPORTED,
            note="Emulators need a runner with KVM access.",
            alternative="self-managed runner with hardware virtualization",
        ),
    }
)

TIER_WEIGHTS: MappingProxyType[SupportTier, int] = MappingProxyType(
    {
        SupportTier.NATIVE: 100,
        SupportTier.TEMPLATED: 85,
        SupportTier.LIMITED: 60,
        SupportTier.UNSUPPORTED: 0,
    }
)

TIER_PRIORITY: MappingProxyType[SupportTier, int] = MappingProxyType(
    {
        SupportTier.NATIVE: 1,
        SupportTier.TEMPLATED: 2,
        SupportTier.LIMITED: 3,
        SupportTier.UNSUPPORTED: 4,
    }
)

HIT_CONFIDENCE_VALUES: MappingProxyType[str, float] = MappingProxyType(
    {"high": 1.0, "medium": 0.75, "low": 0.4}
)


# Credential reference syntax, evaluated in order.


@dataclass(frozen=True)
class ReferencePattern:
    pattern: re.Pattern[str]
    kind: ReferenceKind
    description: str


def _ref(pattern: str, kind: ReferenceKind, description: str) -> ReferencePattern:
    return ReferencePattern(re.compile(pattern), kind, description)


SECRET_SUFFIXES = r"(?:_KEY|_TOKEN|_PASS|_PASSWORD|_SECRET|_CERT|_PEM|_PRIVATE|_PUBLIC)"

# Environment names that hold a secret by convention.
SECRET_NAME = re.compile(rf"^[A-Z0-9_]*{SECRET_SUFFIXES}$")

REFERENCE_PATTERNS: tuple[ReferencePattern, ...] = (
    _ref(r"\bcredentials\(\s*['\"]([^'\"]+)['\"]\s*\)", ReferenceKind.STEP, "credentials() lookup"),
    _ref(
        r"\busernamePassword\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]",
        ReferenceKind.USERNAME_PASSWORD,
        "Username/password binding",
    ),
    _ref(
        r"\bsshUserPrivateKey\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]",
        ReferenceKind.SSH_USER_PRIVATE_KEY,
        "SSH private key binding",
    ),
    _ref(r"\bfile\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]", ReferenceKind.FILE, "Secret file binding"),
    _ref(
        r"\bcertificate\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]",
        ReferenceKind.FILE,
        "Certificate binding",
    ),
    _ref(r"\bstring\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]", ReferenceKind.STRING, "Secret text binding"),
    _ref(
        r"\bwithCredentials\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]",
        ReferenceKind.WITH_CREDENTIALS,
        "withCredentials block",
    ),
    _ref(
        r"docker\.withRegistry\([^,]*,\s*['\"]([^'\"]+)['\"]\s*\)",
        ReferenceKind.STEP,
        "Docker registry credentials",
    ),
    _ref(
        r"\b(?:kubeconfigFile|withKubeConfig)\([^)]*credentialsId:\s*['\"]([^'\"]+)['\"]",
        ReferenceKind.FILE,
        "Kubernetes config file",
    ),
    _ref(r"\bwithAWS\([^)]*credentials:\s*['\"]([^'\"]+)['\"]", ReferenceKind.STEP, "AWS credentials"),
    _ref(r"\bvaultCredentialId:\s*['\"]([^'\"]+)['\"]", ReferenceKind.STEP, "Vault access credentials"),
    _ref(rf"\benv\.([A-Z0-9_]+{SECRET_SUFFIXES})\b", ReferenceKind.ENV, "Secret-like environment variable"),
    _ref(
        rf"\$\{{?([A-Z0-9_]+{SECRET_SUFFIXES})(?![A-Za-z0-9_])\}}?",
        ReferenceKind.ENV,
        "Secret-like environment variable reference",
    ),
)


@dataclass(frozen=True)
class Classifier:
    """Rule mapping a credential id to a target variable shape.

    Classifiers with `children` expand into one spec per child suffix and
    the parent spec is not emitted.
    """

    name: str
    pattern: re.Pattern[str]
    value_kind: ValueKind
    masked: bool
    protected: bool
    description: str
    children: tuple[tuple[str, str], ...] = ()


def _cls(
    name: str,
    pattern: str,
    value_kind: ValueKind,
    masked: bool,
    description: str,
    children: tuple[tuple[str, str], ...] = (),
) -> Classifier:
    return Classifier(name, re.compile(pattern), value_kind, masked, True, description, children)


_USER_PASS = (("USER", "Username part"), ("PASS", "Password part"))

# Order matters: the first matching classifier wins.
CREDENTIAL_CLASSIFIERS: tuple[Classifier, ...] = (
    _cls(
        "username-password",
        r".*(?:user|username|usr|login|account).*(?:pass|password|pwd).*",
        ValueKind.TEXT,
        True,
        "Username/password credential pair",
        _USER_PASS,
    ),
    _cls(
        "registry",
        r".*\b(?:docker|registry|repo|harbor|ecr|gcr)\b.*",
        ValueKind.TEXT,
        True,
        "Container registry credentials",
        (("USER", "Registry username"), ("PASS", "Registry password")),
    ),
    _cls("token", r".*(?:token|key|api|secret|auth).*", ValueKind.TEXT, True, "API token or secret key"),
    _cls(
        "file",
        r".*(?:cert|certificate|pem|p12|pfx|jks|keystore|config|kubeconfig|ssh|rsa|key).*file.*",
        ValueKind.FILE,
        False,
        "File credential (certificate, key, or config)",
    ),
    _cls("ssh-key", r".*(?:ssh|rsa|private.*key|pub.*key).*", ValueKind.TEXT, True, "SSH private key"),
    _cls(
        "database",
        r".*(?:db|database|mysql|postgres|oracle|sql|mongo).*",
        ValueKind.TEXT,
        True,
        "Database credentials",
        (
            ("USER", "Database username"),
            ("PASS", "Database password"),
            ("HOST", "Database host"),
            ("NAME", "Database name"),
        ),
    ),
    _cls("cloud", r".*(?:aws|azure|gcp|google|cloud).*", ValueKind.TEXT, True, "Cloud provider credentials"),
)

# Fallbacks by reference kind when no classifier matches.
KIND_DEFAULT_CLASSIFIERS: MappingProxyType[ReferenceKind, Classifier] = MappingProxyType(
    {
        ReferenceKind.FILE: _cls("file-binding", r".*", ValueKind.FILE, False, "File credential"),
        ReferenceKind.SSH_USER_PRIVATE_KEY: _cls(
            "file-binding", r".*", ValueKind.FILE, False, "File credential"
        ),
        ReferenceKind.USERNAME_PASSWORD: _cls(
            "username-password-binding",
            r".*",
            ValueKind.TEXT,
            True,
            "Username/password credential",
            (("USER", "Username"), ("PASS", "Password")),
        ),
    }
)

GENERIC_CLASSIFIER = _cls("generic", r".*", ValueKind.TEXT, True, "Secret credential")
