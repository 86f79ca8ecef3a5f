"""Tests for credential detection and variable planning."""

import re

import pytest
from pipeline_samples import DECLARATIVE, SCRIPTED

from ferryman.engine.credentials import (
    FILE_PLACEHOLDER,
    VALUE_PLACEHOLDER,
    CredentialResolver,
    CustomMapping,
    ResolveOptions,
)
from ferryman.engine.models import CredentialHit, ReferenceKind, ValueKind, VariableSpec

KEY_GRAMMAR = re.compile(r"^[A-Z_][A-Z0-9_]*$")


@pytest.fixture
def resolver() -> CredentialResolver:
    return CredentialResolver()


def _hit(source_id: str, kind: ReferenceKind = ReferenceKind.STEP, line: int = 1) -> CredentialHit:
    return CredentialHit(source_id=source_id, line=line, kind=kind, matched_text=source_id)


def _spec(key: str, **overrides: object) -> VariableSpec:
    values: dict[str, object] = {
        "source_id": key.lower(),
        "key": key,
        "value_kind": ValueKind.TEXT,
        "masked": True,
        "protected": True,
        "scope": "*",
        "description": "",
        "classifier": "token",
    }
    values.update(overrides)
    return VariableSpec(**values)


class TestScanning:
    """Reference detection."""

    def test_single_credentials_call(self, resolver: CredentialResolver) -> None:
        hits = resolver.scan("pipeline {\n  environment {\n    TOKEN = credentials('my-secret-id')\n  }\n}")

        assert len(hits) == 1
        assert hits[0].source_id == "my-secret-id"
        assert hits[0].kind == ReferenceKind.STEP
        assert hits[0].line == 3

    def test_repeated_reference_keeps_earliest_line(self, resolver: CredentialResolver) -> None:
        text = """pipeline {
    stages {
        stage('One') {
            environment { A = credentials('my-secret') }
            steps { sh 'echo one' }
        }
        stage('Two') {
            environment {
                B = credentials('my-secret')
                C = credentials('my-secret')
            }
        }
    }
}"""

        hits = resolver.scan(text)

        assert len(hits) == 1
        assert hits[0].line == 4

    def test_typed_binding_wins_on_same_line(self, resolver: CredentialResolver) -> None:
        hits = resolver.scan(DECLARATIVE)

        assert [(h.source_id, h.kind) for h in hits] == [
            ("docker-hub-creds", ReferenceKind.STEP),
            ("deploy-user-pass", ReferenceKind.USERNAME_PASSWORD),
        ]

    def test_docker_registry_credentials(self, resolver: CredentialResolver) -> None:
        hits = resolver.scan(SCRIPTED)

        assert [h.source_id for h in hits] == ["registry-creds"]

    def test_secret_like_environment_reference(self, resolver: CredentialResolver) -> None:
        hits = resolver.scan("sh 'curl -H \"Authorization: ${API_TOKEN}\" $DEPLOY_KEY_FILE'\necho env.NPM_TOKEN")

        assert [(h.source_id, h.kind) for h in hits] == [
            ("API_TOKEN", ReferenceKind.ENV),
            ("NPM_TOKEN", ReferenceKind.ENV),
        ]

    def test_commented_references_are_ignored(self, resolver: CredentialResolver) -> None:
        text = "// credentials('old-one')\n/* credentials('older') */\nx = credentials('live')"

        assert [h.source_id for h in resolver.scan(text)] == ["live"]

    def test_non_pipeline_input(self, resolver: CredentialResolver) -> None:
        assert resolver.scan("") == []
        assert resolver.scan("just some prose about credentials") == []
        assert resolver.resolve([]) == []


class TestResolution:
    """Classifier selection and key synthesis."""

    def test_token_classifier(self, resolver: CredentialResolver) -> None:
        (spec,) = resolver.resolve([_hit("my-secret-id")])

        assert spec.key == "MY_SECRET_ID"
        assert spec.classifier == "token"
        assert spec.masked is True
        assert spec.protected is True
        assert spec.scope == "*"
        assert "my-secret-id" in spec.description

    def test_composite_expands_into_children_only(self, resolver: CredentialResolver) -> None:
        specs = resolver.resolve([_hit("docker-hub-creds")])

        assert [s.key for s in specs] == ["DOCKER_HUB_CREDS_PASS", "DOCKER_HUB_CREDS_USER"]
        assert all(s.masked for s in specs)
        assert all(s.source_id == "docker-hub-creds" for s in specs)

    def test_tree_keeps_parent_with_children(self, resolver: CredentialResolver) -> None:
        (parent,) = resolver.resolve_tree([_hit("docker-hub-creds")])

        assert parent.key == "DOCKER_HUB_CREDS"
        assert [c.key for c in parent.children] == ["DOCKER_HUB_CREDS_USER", "DOCKER_HUB_CREDS_PASS"]

    def test_username_password_binding_default(self, resolver: CredentialResolver) -> None:
        specs = resolver.resolve([_hit("deploy", ReferenceKind.USERNAME_PASSWORD)])

        assert [s.key for s in specs] == ["DEPLOY_PASS", "DEPLOY_USER"]
        assert {s.classifier for s in specs} == {"username-password-binding"}

    def test_file_binding_default(self, resolver: CredentialResolver) -> None:
        (spec,) = resolver.resolve([_hit("signing", ReferenceKind.FILE)])

        assert spec.value_kind == ValueKind.FILE
        assert spec.masked is False

    def test_generic_fallback_needs_review(self, resolver: CredentialResolver) -> None:
        (spec,) = resolver.resolve([_hit("mystery")])

        assert spec.classifier == "generic"
        assert resolver.needs_review(spec)

    def test_reserved_prefix_is_application_marked(self, resolver: CredentialResolver) -> None:
        (spec,) = resolver.resolve([_hit("CI_SECRET")])

        assert spec.key == "APP_CI_SECRET"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("my.weird id!!", "MY_WEIRD_ID"),
            ("9lives", "VAR_9LIVES"),
            ("---", "UNNAMED_SECRET"),
            ("ci-build", "APP_CI_BUILD"),
        ],
    )
    def test_sanitize_key(self, resolver: CredentialResolver, raw: str, expected: str) -> None:
        assert resolver.sanitize_key(raw) == expected

    def test_long_keys_are_truncated(self, resolver: CredentialResolver) -> None:
        specs = resolver.resolve([_hit("token-" + "x" * 400, ReferenceKind.STRING)])

        assert all(len(s.key) <= 255 for s in specs)

    def test_collision_keeps_first(self, resolver: CredentialResolver) -> None:
        specs = resolver.resolve([_hit("api-token", line=1), _hit("API_TOKEN", line=5)])

        assert len(specs) == 1
        assert specs[0].source_id == "api-token"

    def test_custom_mapping_overrides(self, resolver: CredentialResolver) -> None:
        options = ResolveOptions(
            environment_scope="production",
            force_protected=False,
            custom_mappings={"my-secret-id": CustomMapping(key="RENAMED", masked=False, scope="staging")},
        )

        specs = resolver.resolve([_hit("my-secret-id"), _hit("other-token")], options)

        by_key = {s.key: s for s in specs}
        assert by_key["RENAMED"].masked is False
        assert by_key["RENAMED"].scope == "staging"
        assert by_key["OTHER_TOKEN"].scope == "production"
        assert by_key["OTHER_TOKEN"].protected is True

    def test_every_emitted_key_follows_grammar(self, resolver: CredentialResolver) -> None:
        hits = [_hit(raw) for raw in ("a b", "CI_X", "0day", "ß", "db-main", "x" * 300)]

        for spec in resolver.resolve(hits):
            assert KEY_GRAMMAR.match(spec.key)
            assert not spec.key.startswith("CI_")


class TestValidation:
    """Naming checks on specs and raw ids."""

    def test_clean_specs(self, resolver: CredentialResolver) -> None:
        report = resolver.validate(resolver.resolve([_hit("docker-hub-creds")]))

        assert report.valid
        assert report.errors == ()

    def test_errors_and_warnings(self, resolver: CredentialResolver) -> None:
        specs = [
            _spec("lower"),
            _spec("DUP"),
            _spec("DUP"),
            _spec("CI_TOKEN"),
            _spec("CERT", value_kind=ValueKind.FILE, masked=True),
            _spec("L" * 120),
        ]

        report = resolver.validate(specs)

        assert not report.valid
        assert "Invalid variable key format: lower" in report.errors
        assert "Duplicate variable key: DUP" in report.errors
        assert any("CI_TOKEN" in w for w in report.warnings)
        assert "File variable CERT cannot be masked" in report.warnings
        assert any("very long" in w for w in report.warnings)

    def test_check_reserved_prefix(self, resolver: CredentialResolver) -> None:
        check = resolver.check_credential_id("CI_SECRET")

        assert not check.valid
        assert any("reserved prefix" in issue for issue in check.issues)
        assert check.suggested_key == "APP_CI_SECRET"

    def test_check_format(self, resolver: CredentialResolver) -> None:
        check = resolver.check_credential_id("my-secret")

        assert not check.valid
        assert check.suggested_key == "MY_SECRET"
        assert resolver.check_credential_id("GOOD_NAME").valid


class TestUsageAnalysis:
    """Hit statistics and recommendations."""

    def test_counts_and_recommendations(self) -> None:
        hits = [
            _hit("API_TOKEN", ReferenceKind.ENV),
            _hit("deploy", ReferenceKind.USERNAME_PASSWORD),
            _hit("key", ReferenceKind.FILE),
        ]

        analysis = CredentialResolver.analyze_usage(hits)

        assert analysis.total == 3
        assert analysis.by_kind == {"env": 1, "file": 1, "usernamePassword": 1}
        assert analysis.potential_secrets == ("API_TOKEN",)
        assert len(analysis.recommendations) == 4

    def test_empty(self) -> None:
        analysis = CredentialResolver.analyze_usage([])

        assert analysis.total == 0
        assert analysis.recommendations == ()


class TestProvisioningArtifacts:
    """Env file, curl snippet and provisioning script."""

    def test_env_file_uses_placeholders(self, resolver: CredentialResolver) -> None:
        specs = [_spec("API_TOKEN"), _spec("KUBECONFIG", value_kind=ValueKind.FILE, masked=False)]

        text = resolver.render_env_file(specs)

        assert f"API_TOKEN={VALUE_PLACEHOLDER}" in text
        assert f"KUBECONFIG={FILE_PLACEHOLDER}" in text
        assert "[text, masked, protected] scope=*" in text

    def test_curl_snippet(self, resolver: CredentialResolver) -> None:
        snippet = resolver.curl_snippet(_spec("API_TOKEN"), project_id="42")

        assert '"https://gitlab.com/api/v4/projects/42/variables"' in snippet
        assert "--form key=API_TOKEN" in snippet
        assert "--form 'environment_scope=*'" in snippet

    def test_script_batches(self, resolver: CredentialResolver) -> None:
        specs = [_spec(f"KEY_{i}") for i in range(5)]

        script = resolver.render_provisioning_script(specs, project_id="7", batch_size=2)

        assert script.startswith("#!/usr/bin/env bash\n")
        assert 'PROJECT_ID="${PROJECT_ID:-7}"' in script
        assert 'DRY_RUN="${DRY_RUN:-true}"' in script
        assert script.count("# Batch ") == 3
        assert script.count("sleep 1") == 2
        assert "create_variable KEY_0 '<ADD_VALUE>' env_var true true '*'" in script
        assert 'echo "Processed 5 variable(s)"' in script

    def test_batch_size_is_clamped(self, resolver: CredentialResolver) -> None:
        specs = [_spec(f"KEY_{i}") for i in range(3)]

        assert resolver.render_provisioning_script(specs, batch_size=0).count("# Batch ") == 3
        assert resolver.render_provisioning_script(specs, batch_size=500).count("# Batch ") == 1

    def test_live_mode(self, resolver: CredentialResolver) -> None:
        script = resolver.render_provisioning_script([], dry_run=False)

        assert 'DRY_RUN="${DRY_RUN:-false}"' in script
        assert "# Batch" not in script
