"""Credential reference detection and CI/CD variable planning."""

from __future__ import annotations

import logging
import re
import shlex
from collections import Counter
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from ferryman.engine.extractor import line_of, strip_comments
from ferryman.engine.mappings import (
    CREDENTIAL_CLASSIFIERS,
    GENERIC_CLASSIFIER,
    KIND_DEFAULT_CLASSIFIERS,
    REFERENCE_PATTERNS,
    Classifier,
    ReferencePattern,
)
from ferryman.engine.models import (
    CredentialHit,
    IdCheck,
    ReferenceKind,
    ValidationReport,
    ValueKind,
    VariableSpec,
)

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Z_][A-Z0-9_]*$")
VALUE_PLACEHOLDER = "<ADD_VALUE>"
FILE_PLACEHOLDER = "<BASE64_FILE_CONTENT>"
FALLBACK_KEY = "UNNAMED_SECRET"
GITLAB_API_URL = "https://gitlab.com/api/v4"


@dataclass(frozen=True)
class CustomMapping:
    """Per-credential overrides; None leaves the inferred value."""

    key: str | None = None
    value_kind: ValueKind | None = None
    masked: bool | None = None
    protected: bool | None = None
    scope: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ResolveOptions:
    environment_scope: str = "*"
    force_protected: bool = True
    custom_mappings: Mapping[str, CustomMapping] = field(default_factory=dict)


@dataclass(frozen=True)
class UsageAnalysis:
    total: int
    by_kind: dict[str, int]
    potential_secrets: tuple[str, ...]
    recommendations: tuple[str, ...]


class CredentialResolver:
    """Finds credential references and plans the variables that replace them."""

    def __init__(
        self,
        reference_patterns: Sequence[ReferencePattern] = REFERENCE_PATTERNS,
        classifiers: Sequence[Classifier] = CREDENTIAL_CLASSIFIERS,
        kind_defaults: Mapping[ReferenceKind, Classifier] = KIND_DEFAULT_CLASSIFIERS,
        generic_classifier: Classifier = GENERIC_CLASSIFIER,
        reserved_prefix: str = "CI_",
        app_marker: str = "APP_",
        max_key_length: int = 255,
        warn_key_length: int = 100,
    ) -> None:
        self.reference_patterns = tuple(reference_patterns)
        self.classifiers = tuple(classifiers)
        self.kind_defaults = kind_defaults
        self.generic_classifier = generic_classifier
        self.reserved_prefix = reserved_prefix
        self.app_marker = app_marker
        self.max_key_length = max_key_length
        self.warn_key_length = warn_key_length

    # Scanning

    def scan(self, text: str) -> list[CredentialHit]:
        """Find credential references, one hit per source id.

        Args:
            text: Raw pipeline script

        Returns:
            Hits ordered by line; the earliest reference of each id wins
        """
        source = strip_comments(text)
        found: list[tuple[int, int, CredentialHit]] = []
        for order, reference in enumerate(self.reference_patterns):
            for match in reference.pattern.finditer(source):
                source_id = match.group(1).strip()
                if not source_id:
                    continue
                line = line_of(source, match.start(1))
                found.append(
                    (
                        line,
                        order,
                        CredentialHit(
                            source_id=source_id,
                            line=line,
                            kind=reference.kind,
                            matched_text=" ".join(match.group(0).split()),
                            context=reference.description,
                        ),
                    )
                )
        found.sort(key=lambda item: (item[0], item[1]))
        first: dict[str, CredentialHit] = {}
        for _, _, hit in found:
            first.setdefault(hit.source_id, hit)
        return list(first.values())

    # Resolution

    def classify(self, hit: CredentialHit) -> Classifier:
        lowered = hit.source_id.lower()
        for classifier in self.classifiers:
            if classifier.pattern.match(lowered):
                return classifier
        return self.kind_defaults.get(hit.kind, self.generic_classifier)

    def sanitize_key(self, raw: str) -> str:
        key = re.sub(r"[^A-Z0-9_]+", "_", raw.upper())
        key = re.sub(r"_+", "_", key).strip("_")
        if not key:
            key = FALLBACK_KEY
        if key[0].isdigit():
            key = f"VAR_{key}"
        if key.startswith(self.reserved_prefix):
            key = f"{self.app_marker}{key}"
        return key[: self.max_key_length].rstrip("_") or FALLBACK_KEY

    def _child_key(self, base: str, suffix: str) -> str:
        room = self.max_key_length - len(suffix) - 1
        return f"{base[:room].rstrip('_')}_{suffix}"

    def resolve_tree(
        self, hits: Sequence[CredentialHit], options: ResolveOptions | None = None
    ) -> list[VariableSpec]:
        """Resolve hits into specs, keeping composite children nested."""
        options = options or ResolveOptions()
        return [self._spec(hit, options) for hit in hits]

    def resolve(
        self, hits: Sequence[CredentialHit], options: ResolveOptions | None = None
    ) -> list[VariableSpec]:
        """Resolve hits into the flat list of variables to provision.

        Composite credentials contribute their children only. Specs that
        sanitize to an already used key are dropped.
        """
        emitted: dict[str, VariableSpec] = {}
        for spec in self.resolve_tree(hits, options):
            for candidate in spec.children or (spec,):
                if candidate.key in emitted:
                    logger.debug(
                        "Dropping %s: key %s already used by %s",
                        candidate.source_id,
                        candidate.key,
                        emitted[candidate.key].source_id,
                    )
                    continue
                emitted[candidate.key] = candidate
        return sorted(emitted.values(), key=lambda s: s.key)

    def _spec(self, hit: CredentialHit, options: ResolveOptions) -> VariableSpec:
        custom = options.custom_mappings.get(hit.source_id, CustomMapping())
        classifier = self.classify(hit)
        key = self.sanitize_key(custom.key or hit.source_id)
        masked = classifier.masked if custom.masked is None else custom.masked
        protected = (
            options.force_protected or classifier.protected
            if custom.protected is None
            else custom.protected
        )
        scope = custom.scope or options.environment_scope
        description = custom.description or f"{classifier.description} (from Jenkins: {hit.source_id})"
        value_kind = custom.value_kind or classifier.value_kind
        children = tuple(
            VariableSpec(
                source_id=hit.source_id,
                key=self._child_key(key, suffix),
                value_kind=value_kind,
                masked=masked,
                protected=protected,
                scope=scope,
                description=f"{child_description} (from Jenkins: {hit.source_id})",
                classifier=classifier.name,
            )
            for suffix, child_description in classifier.children
        )
        return VariableSpec(
            source_id=hit.source_id,
            key=key,
            value_kind=value_kind,
            masked=masked,
            protected=protected,
            scope=scope,
            description=description,
            classifier=classifier.name,
            children=children,
        )

    def needs_review(self, spec: VariableSpec) -> bool:
        return spec.classifier == self.generic_classifier.name

    # Validation

    def validate(self, specs: Sequence[VariableSpec]) -> ValidationReport:
        errors: list[str] = []
        warnings: list[str] = []
        seen: set[str] = set()
        for spec in specs:
            if spec.key in seen:
                errors.append(f"Duplicate variable key: {spec.key}")
            seen.add(spec.key)
            if not KEY_PATTERN.match(spec.key):
                errors.append(f"Invalid variable key format: {spec.key}")
            if len(spec.key) > self.max_key_length:
                errors.append(f"Variable key exceeds {self.max_key_length} characters: {spec.key}")
            if spec.key.startswith(self.reserved_prefix):
                warnings.append(
                    f"Variable {spec.key} starts with {self.reserved_prefix} (GitLab reserved prefix)"
                )
            if len(spec.key) > self.warn_key_length:
                warnings.append(f"Variable key is very long: {spec.key}")
            if spec.value_kind == ValueKind.FILE and spec.masked:
                warnings.append(f"File variable {spec.key} cannot be masked")
        return ValidationReport(valid=not errors, errors=tuple(errors), warnings=tuple(warnings))

    def check_credential_id(self, credential_id: str) -> IdCheck:
        """Report naming problems a raw id would have as a variable key."""
        issues: list[str] = []
        if not KEY_PATTERN.match(credential_id):
            issues.append(
                "Variable name must use uppercase letters, digits and underscores, "
                "and must not start with a digit"
            )
        if len(credential_id) > self.max_key_length:
            issues.append(f"Variable name exceeds {self.max_key_length} characters")
        if credential_id.upper().startswith(self.reserved_prefix):
            issues.append(
                f"Variable name cannot start with {self.reserved_prefix} (reserved prefix)"
            )
        return IdCheck(
            valid=not issues,
            issues=tuple(issues),
            suggested_key=self.sanitize_key(credential_id),
        )

    @staticmethod
    def analyze_usage(hits: Sequence[CredentialHit]) -> UsageAnalysis:
        by_kind = Counter(hit.kind.value for hit in hits)
        potential = tuple(hit.source_id for hit in hits if hit.kind == ReferenceKind.ENV)
        recommendations: list[str] = []
        if potential:
            recommendations.append(
                f"Review {len(potential)} environment variable(s) that look like secrets; "
                "they may need to become masked variables."
            )
        if by_kind.get(ReferenceKind.FILE.value) or by_kind.get(ReferenceKind.SSH_USER_PRIVATE_KEY.value):
            recommendations.append("Upload file and SSH key credentials as file-type variables.")
        if by_kind.get(ReferenceKind.USERNAME_PASSWORD.value):
            recommendations.append("Username/password credentials are split into _USER and _PASS variables.")
        if hits:
            recommendations.append("Protect production secrets and limit them to protected branches.")
        return UsageAnalysis(
            total=len(hits),
            by_kind=dict(sorted(by_kind.items())),
            potential_secrets=potential,
            recommendations=tuple(recommendations),
        )

    # Provisioning artifacts

    @staticmethod
    def placeholder(spec: VariableSpec) -> str:
        return FILE_PLACEHOLDER if spec.value_kind == ValueKind.FILE else VALUE_PLACEHOLDER

    def render_env_file(self, specs: Sequence[VariableSpec]) -> str:
        lines = [
            "# GitLab CI/CD variables converted from Jenkins credentials",
            "# Replace every placeholder, then create the variables under",
            "# Settings > CI/CD > Variables or with the provisioning script.",
            f"# File variables take the file content ({FILE_PLACEHOLDER}).",
            "",
        ]
        for spec in specs:
            flags = [spec.value_kind.value]
            if spec.masked:
                flags.append("masked")
            if spec.protected:
                flags.append("protected")
            lines.append(f"# {spec.description} [{', '.join(flags)}] scope={spec.scope}")
            lines.append(f"{spec.key}={self.placeholder(spec)}")
            lines.append("")
        return "\n".join(lines)

    def curl_snippet(self, spec: VariableSpec, project_id: str = "${PROJECT_ID}") -> str:
        form = [
            f"key={spec.key}",
            f"value={self.placeholder(spec)}",
            f"variable_type={'file' if spec.value_kind == ValueKind.FILE else 'env_var'}",
            f"masked={str(spec.masked).lower()}",
            f"protected={str(spec.protected).lower()}",
            f"environment_scope={spec.scope}",
        ]
        parts = [
            "curl --request POST",
            '--header "PRIVATE-TOKEN: ${GITLAB_TOKEN}"',
            f'"{GITLAB_API_URL}/projects/{project_id}/variables"',
        ]
        parts.extend(f"--form {shlex.quote(item)}" for item in form)
        return " \\\n  ".join(parts)

    def render_provisioning_script(
        self,
        specs: Sequence[VariableSpec],
        project_id: str = "",
        dry_run: bool = True,
        batch_size: int = 10,
    ) -> str:
        """Render a bash script that creates the variables through the API.

        Args:
            specs: Variables to create
            project_id: Default project id (PROJECT_ID env overrides it)
            dry_run: Default dry-run mode (DRY_RUN env overrides it)
            batch_size: Variables per batch, clamped to 1..50

        Returns:
            Script text; values are placeholders that must be filled in
        """
        batch_size = max(1, min(50, batch_size))
        lines = [
            "#!/usr/bin/env bash",
            "# Create GitLab CI/CD variables converted from Jenkins credentials.",
            "# Fill in every placeholder value before running without DRY_RUN.",
            "set -euo pipefail",
            "",
            f'GITLAB_API_URL="${{GITLAB_API_URL:-{GITLAB_API_URL}}}"',
            f'PROJECT_ID="${{PROJECT_ID:-{project_id}}}"',
            f'DRY_RUN="${{DRY_RUN:-{"true" if dry_run else "false"}}}"',
            "",
            'if [ -z "${GITLAB_TOKEN:-}" ]; then',
            '  echo "GITLAB_TOKEN is not set" >&2',
            "  exit 1",
            "fi",
            'if [ -z "${PROJECT_ID}" ]; then',
            '  echo "PROJECT_ID is not set" >&2',
            "  exit 1",
            "fi",
            "",
            "create_variable() {",
            '  local key="$1" value="$2" type="$3" masked="$4" protected="$5" scope="$6"',
            '  if [ "${DRY_RUN}" = "true" ]; then',
            '    echo "[DRY RUN] Would create ${key} (${type}, masked=${masked}, protected=${protected}, scope=${scope})"',
            "    return 0",
            "  fi",
            '  curl --silent --show-error --fail --request POST \\',
            '    --header "PRIVATE-TOKEN: ${GITLAB_TOKEN}" \\',
            '    "${GITLAB_API_URL}/projects/${PROJECT_ID}/variables" \\',
            '    --form "key=${key}" \\',
            '    --form "value=${value}" \\',
            '    --form "variable_type=${type}" \\',
            '    --form "masked=${masked}" \\',
            '    --form "protected=${protected}" \\',
            '    --form "environment_scope=${scope}" > /dev/null',
            '  echo "Created ${key}"',
            "}",
            "",
            'if [ "${DRY_RUN}" = "true" ]; then',
            '  echo "DRY RUN MODE - no variables will be created"',
            "fi",
        ]
        batches = [specs[i : i + batch_size] for i in range(0, len(specs), batch_size)]
        for number, batch in enumerate(batches, start=1):
            lines.extend(["", f"# Batch {number}"])
            for spec in batch:
                variable_type = "file" if spec.value_kind == ValueKind.FILE else "env_var"
                lines.append(
                    "create_variable "
                    + " ".join(
                        shlex.quote(arg)
                        for arg in (
                            spec.key,
                            self.placeholder(spec),
                            variable_type,
                            str(spec.masked).lower(),
                            str(spec.protected).lower(),
                            spec.scope,
                        )
                    )
                )
            if number < len(batches):
                lines.append("sleep 1")
        lines.extend(["", f'echo "Processed {len(specs)} variable(s)"', ""])
        return "\n".join(lines)
