"""Tests for GitLab configuration synthesis."""

from datetime import datetime

import pytest
import yaml
from pipeline_samples import DECLARATIVE

from ferryman.engine.credentials import CredentialResolver
from ferryman.engine.extractor import extract
from ferryman.engine.models import (
    ConditionalGuard,
    FeatureSet,
    Parameter,
    PluginVerdict,
    RetentionPolicy,
    SupportTier,
    ValueKind,
    VariableSpec,
)
from ferryman.engine.plugins import PluginResolver
from ferryman.engine.synthesizer import (
    REVIEW_MARKER,
    ConfigurationSynthesizer,
    lint_configuration,
    select_stages,
)


@pytest.fixture
def synthesizer() -> ConfigurationSynthesizer:
    return ConfigurationSynthesizer()


def _verdict(capability: str, tier: SupportTier = SupportTier.NATIVE, confidence: float = 1.0) -> PluginVerdict:
    return PluginVerdict(id=capability, tier=tier, note="Note.", hits=(), confidence=confidence)


def _render(
    synthesizer: ConfigurationSynthesizer,
    features: FeatureSet | None = None,
    verdicts: list[PluginVerdict] | None = None,
    specs: list[VariableSpec] | None = None,
    tier: str = "simple",
    generated_at: datetime | None = None,
) -> str:
    return synthesizer.synthesize(features or FeatureSet(), verdicts or [], specs or [], tier, generated_at)


def _declarative(synthesizer: ConfigurationSynthesizer, generated_at: datetime) -> str:
    plugins = PluginResolver()
    credentials = CredentialResolver()
    features = extract(DECLARATIVE)
    verdicts = plugins.resolve(plugins.scan(DECLARATIVE))
    specs = credentials.resolve(credentials.scan(DECLARATIVE))
    tier = plugins.complexity_tier(verdicts, features)
    return synthesizer.synthesize(features, verdicts, specs, tier, generated_at)


class TestStages:
    """Stage list selection."""

    def test_tiers(self) -> None:
        assert select_stages("simple", []) == ("build", "test")
        assert select_stages("medium", []) == ("build", "test", "quality", "deploy")
        assert select_stages("complex", []) == ("prepare", "build", "test", "quality", "deploy", "cleanup")

    def test_container_build_adds_package(self) -> None:
        stages = select_stages("complex", [_verdict("docker-workflow")])

        assert stages == ("prepare", "build", "test", "quality", "package", "deploy", "cleanup")


class TestMinimalOutput:
    """Output for input with no recognised structure."""

    def test_empty_features_are_valid(self, synthesizer: ConfigurationSynthesizer) -> None:
        text = _render(synthesizer)
        document = yaml.safe_load(text)

        assert document["stages"] == ["build", "test"]
        assert set(document) >= {"build:app", "test:unit"}
        assert document["default"]["image"] == "alpine:3.19"
        assert "variables" not in document
        assert lint_configuration(text).valid

    def test_generic_build_is_flagged(self, synthesizer: ConfigurationSynthesizer) -> None:
        text = _render(synthesizer)

        assert f"# {REVIEW_MARKER} No build tool detected" in text

    def test_images_carry_digest_advice(self, synthesizer: ConfigurationSynthesizer) -> None:
        text = _render(synthesizer)

        assert f"  # {REVIEW_MARKER} Images are pinned by tag; pin them by digest" in text
        assert yaml.safe_load(text)["default"]["image"] == "alpine:3.19"


class TestDeclarativeOutput:
    """Full synthesis over the declarative sample."""

    def test_document_structure(self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime) -> None:
        document = yaml.safe_load(_declarative(synthesizer, fixed_time))

        assert document["stages"] == ["build", "test", "quality", "deploy"]
        jobs = {name for name, body in document.items() if isinstance(body, dict) and "stage" in body}
        assert jobs == {
            "build:app",
            "test:unit",
            "test:matrix",
            "parallel:lint",
            "parallel:security-scan",
            "deploy:staging",
            "notify:failure",
        }

    def test_default_block(self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime) -> None:
        text = _declarative(synthesizer, fixed_time)
        default = yaml.safe_load(text)["default"]

        assert default["image"].startswith("maven:")
        assert default["timeout"] == "2m"
        assert default["retry"] == 2
        assert default["artifacts"] == {"expire_in": "14 days"}
        assert f"# {REVIEW_MARKER} Jenkins retried 3 times" in text

    def test_jobs(self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime) -> None:
        document = yaml.safe_load(_declarative(synthesizer, fixed_time))

        assert document["test:unit"]["artifacts"]["reports"]["junit"] == "target/surefire-reports/TEST-*.xml"
        assert document["test:matrix"]["parallel"]["matrix"] == [
            {"PLATFORM": ["linux", "windows"], "JDK": ["17", "21"]}
        ]
        assert document["parallel:lint"]["needs"] == ["build:app"]
        assert document["deploy:staging"]["rules"] == [{"if": '$CI_COMMIT_BRANCH == "main"'}]
        assert document["notify:failure"]["stage"] == ".post"
        assert document["notify:failure"]["when"] == "on_failure"

    def test_variables(self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime) -> None:
        text = _declarative(synthesizer, fixed_time)
        variables = yaml.safe_load(text)["variables"]

        assert variables["APP_NAME"] == "orders"
        assert variables["TARGET"] == {
            "value": "staging",
            "options": ["staging", "production"],
            "description": "Deploy target",
        }
        assert variables["RUN_E2E"]["value"] == "false"
        assert "MAVEN_OPTS" in variables
        assert "# DOCKER_HUB_CREDS_USER: <ADD_VALUE> (text, masked, protected, scope *)" in text
        assert not any(key.startswith("DOCKER_HUB") for key in variables)

    def test_header_and_workflow(self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime) -> None:
        text = _declarative(synthesizer, fixed_time)

        assert text.startswith("# GitLab CI/CD configuration converted from a Jenkins pipeline\n")
        assert "# Readiness score: 92/100" in text
        assert "# Generated on: 2024-01-02T03:04:05+00:00" in text
        assert yaml.safe_load(text)["workflow"]["rules"][0] == {"if": '$CI_PIPELINE_SOURCE == "web"'}

    def test_low_confidence_verdict_is_flagged(
        self, synthesizer: ConfigurationSynthesizer, fixed_time: datetime
    ) -> None:
        text = _declarative(synthesizer, fixed_time)

        assert f"# {REVIEW_MARKER} slack resolved with confidence 0.60" in text
        assert f"# {REVIEW_MARKER} Shared library 'shared-pipeline'" in text

    def test_deterministic_apart_from_timestamp(self, synthesizer: ConfigurationSynthesizer) -> None:
        first = _declarative(synthesizer, datetime(2024, 1, 1))
        second = _declarative(synthesizer, datetime(2025, 6, 1))

        def strip(text: str) -> list[str]:
            return [line for line in text.splitlines() if not line.startswith("# Generated on:")]

        assert first != second
        assert strip(first) == strip(second)


class TestSecrets:
    """Secret values never reach the configuration."""

    def test_environment_literal_for_credential_is_withheld(self) -> None:
        script = """pipeline {
    agent any
    environment {
        DB_PASSWORD = 'hunter2'
    }
    stages {
        stage('Build') {
            steps { sh 'psql -p ${DB_PASSWORD}' }
        }
    }
}"""
        plugins = PluginResolver()
        credentials = CredentialResolver()
        specs = credentials.resolve(credentials.scan(script))

        text = ConfigurationSynthesizer().synthesize(
            extract(script), plugins.resolve(plugins.scan(script)), specs, "simple"
        )

        assert "hunter2" not in text
        assert "# DB_PASSWORD: provided as a CI/CD variable" in text
        assert lint_configuration(text).valid

    def test_secret_named_literal_without_reference(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(environment=(("API_TOKEN", "abc123"), ("MODE", "fast")))

        text = _render(synthesizer, features)

        assert "abc123" not in text
        assert f"# {REVIEW_MARKER} API_TOKEN: <ADD_VALUE>" in text
        assert yaml.safe_load(text)["variables"] == {"MODE": "fast"}

    def test_password_parameter_has_no_default(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(parameters=(Parameter("DEPLOY_PW", "password", default="letmein"),))

        text = _render(synthesizer, features)

        assert "letmein" not in text
        assert yaml.safe_load(text)["variables"] == {}

    def test_secret_named_parameter_default_is_withheld(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(
            parameters=(Parameter("API_TOKEN", "string", default="abc123"), Parameter("MODE", "string", default="fast"))
        )

        text = _render(synthesizer, features)

        assert "abc123" not in text
        assert f"# {REVIEW_MARKER} API_TOKEN: <ADD_VALUE> (default removed" in text
        assert yaml.safe_load(text)["variables"] == {"MODE": "fast"}

    def test_control_characters_stay_readable(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(environment=(("GREETING", "hi\x7fthere\x85caf\u00e9"),))

        text = _render(synthesizer, features)

        assert lint_configuration(text).valid
        assert "caf\u00e9" in text
        assert yaml.safe_load(text)["variables"] == {"GREETING": "hi\x7fthere\x85caf\u00e9"}

    def test_generic_spec_is_flagged(self, synthesizer: ConfigurationSynthesizer) -> None:
        spec = VariableSpec(
            source_id="mystery",
            key="MYSTERY",
            value_kind=ValueKind.FILE,
            masked=False,
            protected=True,
            scope="*",
            description="Secret credential",
            classifier="generic",
        )

        text = _render(synthesizer, specs=[spec])

        assert f"# {REVIEW_MARKER} MYSTERY: type could not be inferred for 'mystery'" in text
        assert "# MYSTERY: <BASE64_FILE_CONTENT> (file, protected, scope *)" in text


class TestCapabilityJobs:
    """Stub jobs, includes and advisories per capability."""

    def test_docker_package_job(self, synthesizer: ConfigurationSynthesizer) -> None:
        text = _render(synthesizer, verdicts=[_verdict("docker-workflow")], tier="complex")
        document = yaml.safe_load(text)

        assert document["package:docker"]["stage"] == "package"
        assert document["package:docker"]["services"] == ["docker:24.0.7-dind"]
        assert lint_configuration(text).valid

    def test_includes_are_sorted_and_unique(self, synthesizer: ConfigurationSynthesizer) -> None:
        verdicts = [
            PluginVerdict("sast", SupportTier.TEMPLATED, "n", (), 0.85, include="template: Jobs/SAST.gitlab-ci.yml"),
            PluginVerdict("dep", SupportTier.TEMPLATED, "n", (), 0.85, include="template: Jobs/Dependency-Scanning.gitlab-ci.yml"),
            PluginVerdict("sast2", SupportTier.TEMPLATED, "n", (), 0.85, include="template: Jobs/SAST.gitlab-ci.yml"),
        ]

        text = _render(synthesizer, verdicts=verdicts)

        assert yaml.safe_load(text)["include"] == [
            {"template": "Jobs/Dependency-Scanning.gitlab-ci.yml"},
            {"template": "Jobs/SAST.gitlab-ci.yml"},
        ]

    def test_unsupported_capability_becomes_comment(self, synthesizer: ConfigurationSynthesizer) -> None:
        text = _render(synthesizer, verdicts=[_verdict("xcode", SupportTier.UNSUPPORTED, 0.0)])

        assert f"# {REVIEW_MARKER} xcode resolved with confidence 0.00" in text
        assert "# xcode (unsupported): no direct equivalent. Note." in text

    def test_absorbed_capability_with_low_confidence_is_flagged(
        self, synthesizer: ConfigurationSynthesizer
    ) -> None:
        text = _render(synthesizer, verdicts=[_verdict("lockable-resources", confidence=0.4)])

        assert f"# {REVIEW_MARKER} lockable-resources resolved with confidence 0.40" in text
        assert "# lockable-resources (native):" in text
        assert lint_configuration(text).valid

    def test_absorbed_capability_with_high_confidence_is_silent(
        self, synthesizer: ConfigurationSynthesizer
    ) -> None:
        text = _render(synthesizer, verdicts=[_verdict("maven-invoker", confidence=0.95)])

        assert "maven-invoker" not in text
        assert yaml.safe_load(text)["default"]["image"].startswith("maven:")

    def test_slack_stub_without_post_actions(self, synthesizer: ConfigurationSynthesizer) -> None:
        verdict = PluginVerdict(
            "slack", SupportTier.LIMITED, "Note.", (), 0.6, alternative="curl to a webhook"
        )

        document = yaml.safe_load(_render(synthesizer, verdicts=[verdict]))

        assert document["notify:slack"]["stage"] == ".post"
        assert document["notify:slack"]["when"] == "always"


class TestGuards:
    """`when` conditions."""

    def test_branch_glob_becomes_regex_rule(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(guards=(ConditionalGuard("branch", "release/*", "Deploy"),))

        text = _render(synthesizer, features, tier="medium")

        rules = yaml.safe_load(text)["deploy:staging"]["rules"]
        assert rules == [{"if": r"$CI_COMMIT_BRANCH =~ /^release\/.*$/"}]

    def test_expression_guard_is_flagged(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(guards=(ConditionalGuard("expression", "return params.GO", "Deploy"),))

        text = _render(synthesizer, features, tier="medium")

        assert f"# {REVIEW_MARKER} Jenkins expression guard not translated: return params.GO" in text
        assert yaml.safe_load(text)["deploy:staging"]["rules"] == [
            {"if": "$CI_COMMIT_BRANCH == $CI_DEFAULT_BRANCH"}
        ]

    def test_input_step_makes_deploy_manual(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(guards=(ConditionalGuard("tag", "v*", "Release"),))

        document = yaml.safe_load(
            _render(synthesizer, features, verdicts=[_verdict("pipeline-input-step")], tier="medium")
        )

        assert document["deploy:staging"]["rules"] == [{"if": "$CI_COMMIT_TAG", "when": "manual"}]

    def test_non_deploy_guard_is_advisory(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(guards=(ConditionalGuard("branch", "main", "Lint"),))

        text = _render(synthesizer, features)

        assert f"# {REVIEW_MARKER} Condition on stage 'Lint' (branch main)" in text


class TestRetention:
    """Artifact expiry from the build discarder."""

    def test_artifact_days_win(self, synthesizer: ConfigurationSynthesizer) -> None:
        features = FeatureSet(retention=RetentionPolicy(days_to_keep=30, artifact_days_to_keep=1))

        document = yaml.safe_load(_render(synthesizer, features))

        assert document["default"]["artifacts"] == {"expire_in": "1 day"}


class TestLint:
    """Structural checks."""

    def test_invalid_yaml(self) -> None:
        report = lint_configuration("stages: [build\n")

        assert not report.valid
        assert report.errors[0].startswith("Invalid YAML")

    def test_not_a_mapping(self) -> None:
        assert lint_configuration("- a\n- b\n").errors == ("Configuration must be a mapping",)

    def test_structural_errors(self) -> None:
        text = """
stages: [build]
job-a:
  stage: deploy
  script: [echo]
job-b:
  stage: build
  needs: [missing]
"""

        report = lint_configuration(text)

        assert not report.valid
        assert "Job job-a uses undeclared stage deploy" in report.errors
        assert "Job job-b has no script" in report.errors
        assert "Job job-b needs unknown job missing" in report.errors

    def test_no_stages_or_jobs(self) -> None:
        report = lint_configuration("variables: {}\n")

        assert report.errors == ("No stages defined", "No jobs defined")
