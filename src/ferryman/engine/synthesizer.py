"""GitLab CI/CD configuration synthesis.

The output is assembled as text rather than dumped from a dict so the
advisory comments can sit right next to the entries they describe.
Each recognised capability has its own stub function, so its image,
variables and defaults can be tuned without a templating layer.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

import yaml

from ferryman.engine.mappings import SECRET_NAME
from ferryman.engine.models import (
    ComplexityTier,
    ConditionalGuard,
    FeatureSet,
    LintReport,
    Parameter,
    PluginVerdict,
    ValueKind,
    VariableSpec,
)
from ferryman.engine.plugins import PluginResolver

logger = logging.getLogger(__name__)

REVIEW_MARKER = "[REVIEW]"
MAX_RETRY = 2
VALUE_PLACEHOLDER = "<ADD_VALUE>"
FILE_PLACEHOLDER = "<BASE64_FILE_CONTENT>"

# Version-pinned images; bump deliberately and pin by digest where required.
IMAGES = {
    "alpine": "alpine:3.19",
    "docker": "docker:24.0.7",
    "docker-dind": "docker:24.0.7-dind",
    "sonar-scanner": "sonarsource/sonar-scanner-cli:5.0",
    "kubectl": "bitnami/kubectl:1.29",
    "terraform": "hashicorp/terraform:1.7",
    "aws-cli": "amazon/aws-cli:2.15.0",
    "python": "python:3.12-slim",
    "curl": "curlimages/curl:8.5.0",
    "cypress": "cypress/included:13.6.4",
}

BASE_STAGES: dict[ComplexityTier, tuple[str, ...]] = {
    "simple": ("build", "test"),
    "medium": ("build", "test", "quality"),
    "complex": ("prepare", "build", "test", "quality"),
}

_POST_PHASE_WHEN = {
    "success": "on_success",
    "fixed": "on_success",
    "failure": "on_failure",
    "unstable": "on_failure",
    "regression": "on_failure",
    "always": "always",
    "changed": "always",
    "aborted": "always",
    "cleanup": "always",
}

_RESERVED_TOP_LEVEL = frozenset(
    {"stages", "variables", "default", "include", "workflow", "image", "services", "cache",
     "before_script", "after_script"}
)


@dataclass(frozen=True)
class BuildTool:
    name: str
    image: str
    cache_paths: tuple[str, ...] = ()
    variables: tuple[tuple[str, str], ...] = ()
    build: tuple[str, ...] = ()
    test: tuple[str, ...] = ()
    artifact_paths: tuple[str, ...] = ()
    junit_path: str = "**/test-results/*.xml"


BUILD_TOOLS: dict[str, BuildTool] = {
    "maven-invoker": BuildTool(
        name="maven",
        image="maven:3.9.6-eclipse-temurin-17",
        cache_paths=(".m2/repository/",),
        variables=(("MAVEN_OPTS", "-Dmaven.repo.local=$CI_PROJECT_DIR/.m2/repository"),),
        build=("mvn -B -DskipTests package",),
        test=("mvn -B test",),
        artifact_paths=("target/*.jar",),
        junit_path="target/surefire-reports/TEST-*.xml",
    ),
    "gradle": BuildTool(
        name="gradle",
        image="gradle:8.5-jdk17",
        cache_paths=(".gradle/",),
        variables=(("GRADLE_USER_HOME", "$CI_PROJECT_DIR/.gradle"),),
        build=("gradle assemble",),
        test=("gradle test",),
        artifact_paths=("build/libs/",),
        junit_path="build/test-results/test/TEST-*.xml",
    ),
    "nodejs": BuildTool(
        name="node",
        image="node:20.11-alpine",
        cache_paths=("node_modules/",),
        build=("npm ci", "npm run build --if-present"),
        test=("npm test",),
        artifact_paths=("dist/",),
        junit_path="junit.xml",
    ),
    "python": BuildTool(
        name="python",
        image="python:3.12-slim",
        cache_paths=(".cache/pip/",),
        variables=(("PIP_CACHE_DIR", "$CI_PROJECT_DIR/.cache/pip"),),
        build=("pip install -r requirements.txt",),
        test=("python -m pytest --junitxml=report.xml",),
        junit_path="report.xml",
    ),
    "dotnet": BuildTool(
        name="dotnet",
        image="mcr.microsoft.com/dotnet/sdk:8.0",
        build=("dotnet build --configuration Release",),
        test=("dotnet test --logger junit",),
        junit_path="**/TestResults/*.xml",
    ),
}

# Checked in this order; the first present verdict picks the image.
_BUILD_TOOL_PRIORITY = ("maven-invoker", "gradle", "nodejs", "python", "dotnet")

GENERIC_BUILD = BuildTool(
    name="generic",
    image=IMAGES["alpine"],
    build=('echo "Port the Jenkins build steps here"',),
    test=('echo "Port the Jenkins test steps here"',),
)


@dataclass
class Job:
    """One job being assembled; rendered once all fields are set."""

    name: str
    stage: str
    script: list[str] = field(default_factory=list)
    image: str | None = None
    image_entrypoint: bool = False
    services: list[str] = field(default_factory=list)
    variables: list[tuple[str, str]] = field(default_factory=list)
    before_script: list[str] = field(default_factory=list)
    needs: list[str] | None = None
    rules: list[tuple[str, str | None]] = field(default_factory=list)
    when: str | None = None
    environment: str | None = None
    resource_group: str | None = None
    matrix: Sequence[tuple[str, tuple[str, ...]]] = ()
    artifacts: list[str] = field(default_factory=list)
    trigger: str | None = None
    allow_failure: bool = False
    comments: list[str] = field(default_factory=list)


@dataclass
class _Context:
    features: FeatureSet
    verdicts: dict[str, PluginVerdict]
    stages: tuple[str, ...]
    tool: BuildTool
    jobs: list[Job] = field(default_factory=list)

    def has(self, capability: str) -> bool:
        return capability in self.verdicts

    def stage_for(self, *preferred: str) -> str:
        for stage in preferred:
            if stage in self.stages:
                return stage
        return self.stages[-1]


# Characters the YAML reader refuses or folds as line breaks; JSON leaves them raw.
_UNREADABLE = re.compile("[\x7f-\x9f\u2028\u2029\ud800-\udfff\ufffe\uffff]")


def quote(value: str) -> str:
    """Double-quoted YAML scalar."""
    text = json.dumps(value, ensure_ascii=False)
    return _UNREADABLE.sub(lambda m: f"\\u{ord(m.group()):04x}", text)


def _single_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _yaml_key(name: str) -> str:
    return name if re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", name) else quote(name)


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "stage"


def _variable_name(name: str) -> str:
    key = re.sub(r"[^A-Z0-9_]+", "_", name.upper()).strip("_")
    return key if key and not key[0].isdigit() else f"VAR_{key}"


def _groovy_to_shell(value: str) -> str:
    """Rewrite `${env.X}` and `${params.X}` references to `${X}`."""
    return re.sub(r"\$\{(?:env|params)\.([A-Za-z_][A-Za-z0-9_]*)\}", r"${\1}", value)


def _retention_expiry(features: FeatureSet) -> str | None:
    days = features.retention.artifact_days_to_keep or features.retention.days_to_keep
    if days:
        return f"{days} day" if days == 1 else f"{days} days"
    return None


def select_stages(tier: ComplexityTier, verdicts: Sequence[PluginVerdict]) -> tuple[str, ...]:
    """Pick the stage list for a complexity tier."""
    stages = list(BASE_STAGES.get(tier, BASE_STAGES["simple"]))
    if any(v.id == "docker-workflow" for v in verdicts):
        stages.append("package")
    if tier != "simple":
        stages.append("deploy")
    if tier == "complex":
        stages.append("cleanup")
    return tuple(stages)


# Capability stubs


def _docker_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="package:docker",
        stage=ctx.stage_for("package", "build"),
        image=IMAGES["docker"],
        services=[IMAGES["docker-dind"]],
        variables=[("DOCKER_TLS_CERTDIR", "/certs")],
        before_script=[
            'echo "$CI_REGISTRY_PASSWORD" | docker login -u "$CI_REGISTRY_USER" --password-stdin "$CI_REGISTRY"',
        ],
        script=[
            'docker build -t "$CI_REGISTRY_IMAGE:$CI_COMMIT_SHORT_SHA" .',
            'docker push "$CI_REGISTRY_IMAGE:$CI_COMMIT_SHORT_SHA"',
        ],
        needs=["build:app"],
    )


def _sonar_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="quality:sonar",
        stage=ctx.stage_for("quality", "test"),
        image=IMAGES["sonar-scanner"],
        image_entrypoint=True,
        variables=[("SONAR_USER_HOME", "${CI_PROJECT_DIR}/.sonar"), ("GIT_DEPTH", "0")],
        script=['sonar-scanner -Dsonar.host.url="$SONAR_HOST_URL" -Dsonar.token="$SONAR_TOKEN"'],
        needs=["build:app"],
        allow_failure=True,
        comments=["Define SONAR_HOST_URL and SONAR_TOKEN as CI/CD variables."],
    )


def _kubernetes_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="deploy:kubernetes",
        stage=ctx.stage_for("deploy", "test"),
        image=IMAGES["kubectl"],
        image_entrypoint=True,
        script=["kubectl apply -f k8s/"],
        needs=["build:app"],
        environment="staging",
        when="manual",
        comments=["Provide KUBECONFIG as a file variable or connect the GitLab agent for Kubernetes."],
    )


def _terraform_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="terraform:plan",
        stage=ctx.stage_for("build"),
        image=IMAGES["terraform"],
        image_entrypoint=True,
        script=["terraform init -input=false", "terraform plan -input=false -out=plan.tfplan"],
        artifacts=["paths:", "  - plan.tfplan"],
    )


def _ansible_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="deploy:ansible",
        stage=ctx.stage_for("deploy", "test"),
        image=IMAGES["python"],
        before_script=["pip install ansible"],
        script=["ansible-playbook -i inventory playbook.yml"],
        when="manual",
        comments=["Provide the inventory and SSH key as file variables."],
    )


def _aws_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    if any(job.name == "deploy:aws" for job in ctx.jobs):
        return None
    return Job(
        name="deploy:aws",
        stage=ctx.stage_for("deploy", "test"),
        image=IMAGES["aws-cli"],
        image_entrypoint=True,
        script=['aws s3 cp dist/ "s3://$S3_BUCKET/" --recursive'],
        when="manual",
        comments=["Authenticate with ID tokens or AWS_ACCESS_KEY_ID/AWS_SECRET_ACCESS_KEY variables."],
    )


def _downstream_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="trigger:downstream",
        stage=ctx.stage_for("deploy", "test"),
        trigger="group/downstream-project",
        comments=[f"{REVIEW_MARKER} Replace the downstream project path with the Jenkins job target."],
    )


def _cypress_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    return Job(
        name="test:e2e",
        stage=ctx.stage_for("test"),
        image=IMAGES["cypress"],
        image_entrypoint=True,
        script=["npm ci", "npx cypress run"],
        needs=["build:app"],
        artifacts=["when: always", "paths:", "  - cypress/screenshots/", "  - cypress/videos/"],
    )


def _webhook_notify_job(ctx: _Context, verdict: PluginVerdict) -> Job | None:
    if ctx.features.post_actions:
        return None
    return Job(
        name=f"notify:{verdict.id}",
        stage=".post",
        image=IMAGES["curl"],
        script=[
            'curl -X POST -H "Content-Type: application/json" '
            '--data "{\\"text\\": \\"Pipeline $CI_PIPELINE_ID finished\\"}" "$SLACK_WEBHOOK_URL"'
        ],
        when="always",
        comments=[verdict.alternative or verdict.note],
    )


StubFunction = Callable[[_Context, PluginVerdict], "Job | None"]

CAPABILITY_STUBS: dict[str, StubFunction] = {
    "docker-workflow": _docker_job,
    "sonarqube": _sonar_job,
    "kubernetes-cd": _kubernetes_job,
    "terraform": _terraform_job,
    "ansible": _ansible_job,
    "pipeline-aws": _aws_job,
    "s3": _aws_job,
    "pipeline-build-step": _downstream_job,
    "cypress": _cypress_job,
    "slack": _webhook_notify_job,
}

# Handled by the default block, the core jobs or an include.
_ABSORBED = frozenset(
    {
        "maven-invoker", "gradle", "nodejs", "python", "dotnet", "junit", "archive-artifacts",
        "build-timeout", "retry", "credentials-binding", "ws-cleanup", "lockable-resources",
        "pipeline-input-step", "cobertura", "jacoco", "stash",
    }
)


class ConfigurationSynthesizer:
    """Builds `.gitlab-ci.yml` text from extracted features and verdicts."""

    def __init__(self, review_threshold: float = 0.7, generic_classifier: str = "generic") -> None:
        self.review_threshold = review_threshold
        self.generic_classifier = generic_classifier

    def synthesize(
        self,
        features: FeatureSet,
        verdicts: Sequence[PluginVerdict],
        specs: Sequence[VariableSpec],
        tier: ComplexityTier,
        generated_at: datetime | None = None,
    ) -> str:
        """Render the target configuration.

        Args:
            features: Extracted feature set
            verdicts: Resolved capability verdicts
            specs: Variables planned for credentials
            tier: Coarse complexity tier
            generated_at: Timestamp for the header (defaults to now)

        Returns:
            Configuration text; only the `# Generated on:` line varies
            between runs over the same input.
        """
        stages = select_stages(tier, verdicts)
        by_id = {v.id: v for v in verdicts}
        tool = next(
            (BUILD_TOOLS[key] for key in _BUILD_TOOL_PRIORITY if key in by_id),
            GENERIC_BUILD,
        )
        ctx = _Context(features=features, verdicts=by_id, stages=stages, tool=tool)
        self._core_jobs(ctx)
        stub_notes = self._capability_jobs(ctx, verdicts)

        sections = [
            self._header(features, verdicts, tier, generated_at),
            self._includes(verdicts),
            self._workflow(features),
            self._stages(stages),
            self._variables(features, specs, tool),
            self._default(features, tool),
            self._advisories(ctx, verdicts, stub_notes),
        ]
        sections.extend("\n".join(self._render_job(job)) for job in ctx.jobs)
        text = "\n\n".join(section for section in sections if section) + "\n"
        logger.debug("Synthesized %s jobs over %s stages", len(ctx.jobs), len(stages))
        return text

    # Sections

    def _header(
        self,
        features: FeatureSet,
        verdicts: Sequence[PluginVerdict],
        tier: ComplexityTier,
        generated_at: datetime | None,
    ) -> str:
        timestamp = (generated_at or datetime.now(timezone.utc)).isoformat(timespec="seconds")
        score = PluginResolver.summarize(verdicts).score
        return "\n".join(
            [
                "# GitLab CI/CD configuration converted from a Jenkins pipeline",
                f"# Source style: {features.style}",
                f"# Complexity tier: {tier}",
                f"# Readiness score: {score}/100",
                f"# Generated on: {timestamp}",
                "# Comments tagged REVIEW need manual attention before the first run.",
            ]
        )

    @staticmethod
    def _includes(verdicts: Sequence[PluginVerdict]) -> str:
        refs = sorted({v.include for v in verdicts if v.include})
        if not refs:
            return ""
        return "\n".join(["include:", *(f"  - {ref}" for ref in refs)])

    @staticmethod
    def _workflow(features: FeatureSet) -> str:
        if not features.parameters:
            return ""
        sources = ("web", "api", "schedule", "push", "merge_request_event")
        lines = ["workflow:", "  rules:"]
        for source in sources:
            condition = '$CI_PIPELINE_SOURCE == "' + source + '"'
            lines.append(f"    - if: {_single_quote(condition)}")
        return "\n".join(lines)

    @staticmethod
    def _stages(stages: Sequence[str]) -> str:
        return "\n".join(["stages:", *(f"  - {stage}" for stage in stages)])

    def _variables(self, features: FeatureSet, specs: Sequence[VariableSpec], tool: BuildTool) -> str:
        secret_keys = {spec.key for spec in specs} | {spec.source_id for spec in specs}
        lines: list[str] = []
        used: set[str] = set()
        for param in features.parameters:
            if param.name in used:
                continue
            used.add(param.name)
            lines.extend(self._parameter_lines(param, secret_keys))
        for key, value in features.environment:
            if key in used:
                continue
            used.add(key)
            if key in secret_keys:
                lines.append(f"  # {key}: provided as a CI/CD variable (see below)")
            elif SECRET_NAME.match(key.upper()):
                lines.append(
                    f"  # {REVIEW_MARKER} {key}: {VALUE_PLACEHOLDER} (literal removed from the "
                    "Jenkinsfile; define it as a masked variable)"
                )
            else:
                lines.append(f"  {_yaml_key(key)}: {quote(_groovy_to_shell(value))}")
        for key, value in tool.variables:
            if key not in used:
                used.add(key)
                lines.append(f"  {key}: {quote(value)}")

        if specs:
            lines.append("  # Secrets: create these under Settings > CI/CD > Variables; never commit values.")
            for spec in specs:
                if spec.classifier == self.generic_classifier:
                    lines.append(
                        f"  # {REVIEW_MARKER} {spec.key}: type could not be inferred for "
                        f"'{spec.source_id}'; confirm masking and variable type."
                    )
                placeholder = FILE_PLACEHOLDER if spec.value_kind == ValueKind.FILE else VALUE_PLACEHOLDER
                flags = [spec.value_kind.value]
                if spec.masked:
                    flags.append("masked")
                if spec.protected:
                    flags.append("protected")
                lines.append(f"  # {spec.key}: {placeholder} ({', '.join(flags)}, scope {spec.scope})")

        if not lines:
            return ""
        if all(line.lstrip().startswith("#") for line in lines):
            # A block holding only comments would parse as null.
            return "\n".join(["variables: {}", *(line.strip() for line in lines)])
        return "\n".join(["variables:", *lines])

    @staticmethod
    def _parameter_lines(param: Parameter, secret_keys: set[str]) -> list[str]:
        key = _yaml_key(param.name)
        if param.kind == "password" or param.name in secret_keys:
            return [f"  # {param.name}: {VALUE_PLACEHOLDER} (password parameter, define as a masked variable)"]
        if param.default and SECRET_NAME.match(param.name.upper()):
            return [
                f"  # {REVIEW_MARKER} {param.name}: {VALUE_PLACEHOLDER} (default removed from the "
                "Jenkinsfile; define it as a masked variable)"
            ]
        default = param.default
        if param.kind == "choice" and not default and param.choices:
            default = param.choices[0]
        if not param.description and not param.choices:
            return [f"  {key}: {quote(default)}"]
        lines = [f"  {key}:", f"    value: {quote(default)}"]
        if param.choices:
            lines.append("    options:")
            lines.extend(f"      - {quote(choice)}" for choice in param.choices)
        if param.description:
            lines.append(f"    description: {quote(param.description)}")
        return lines

    def _default(self, features: FeatureSet, tool: BuildTool) -> str:
        lines = [
            "default:",
            f"  # {REVIEW_MARKER} Images are pinned by tag; pin them by digest (image@sha256:...) "
            "for hardened runners.",
            f"  image: {tool.image}",
        ]
        if tool.cache_paths:
            lines.extend(["  cache:", "    key: ${CI_COMMIT_REF_SLUG}", "    paths:"])
            lines.extend(f"      - {path}" for path in tool.cache_paths)
        if features.timeout_minutes:
            lines.append(f"  timeout: {features.timeout_minutes}m")
        if features.retry_count:
            if features.retry_count > MAX_RETRY:
                lines.append(
                    f"  # {REVIEW_MARKER} Jenkins retried {features.retry_count} times; "
                    f"GitLab allows at most {MAX_RETRY} automatic retries."
                )
            lines.append(f"  retry: {min(features.retry_count, MAX_RETRY)}")
        expiry = _retention_expiry(features)
        if expiry:
            lines.extend(["  artifacts:", f"    expire_in: {expiry}"])
        if features.retention.num_to_keep or features.retention.artifact_num_to_keep:
            lines.append(
                "  # Jenkins kept a fixed number of builds; GitLab retention is time based "
                "(Settings > CI/CD > Artifacts)."
            )
        return "\n".join(lines)

    def _advisories(
        self, ctx: _Context, verdicts: Sequence[PluginVerdict], stub_notes: dict[str, list[str]]
    ) -> str:
        lines: list[str] = []
        for library in ctx.features.libraries:
            lines.append(
                f"# {REVIEW_MARKER} Shared library '{library}' must be ported to an included "
                "template (include: project)."
            )
        for verdict in verdicts:
            if verdict.id in stub_notes:
                continue
            if verdict.id in _ABSORBED and verdict.confidence >= self.review_threshold:
                continue
            lines.extend(self._verdict_comments(verdict))
        for guard in ctx.features.guards:
            if not _is_deploy_stage(guard.stage):
                detail = f"{guard.condition} {guard.expression}".strip()
                lines.append(
                    f"# {REVIEW_MARKER} Condition on stage '{guard.stage or 'unknown'}' "
                    f"({detail}) needs rules: on the matching job."
                )
        return "\n".join(lines)

    def _verdict_comments(self, verdict: PluginVerdict) -> list[str]:
        target = verdict.equivalent or verdict.alternative or "no direct equivalent"
        lines = [f"# {verdict.id} ({verdict.tier.value}): {target}. {verdict.note}"]
        if verdict.confidence < self.review_threshold:
            lines.insert(
                0,
                f"# {REVIEW_MARKER} {verdict.id} resolved with confidence {verdict.confidence:.2f}; "
                "verify the converted behaviour.",
            )
        return lines

    # Jobs

    def _core_jobs(self, ctx: _Context) -> None:
        features, tool = ctx.features, ctx.tool
        build = Job(name="build:app", stage="build", script=list(tool.build))
        paths = list(tool.artifact_paths)
        if ctx.has("archive-artifacts") and not paths:
            paths.append("build/")
        if paths:
            build.artifacts = ["paths:", *(f"  - {p}" for p in paths)]
            expiry = _retention_expiry(features)
            build.artifacts.append(f"expire_in: {expiry or '1 week'}")
        if tool is GENERIC_BUILD:
            build.comments.append(f"{REVIEW_MARKER} No build tool detected; port the build steps.")
        ctx.jobs.append(build)

        test = Job(name="test:unit", stage="test", script=list(tool.test), needs=["build:app"])
        reports: list[str] = []
        if ctx.has("junit") or "junit_report" in _all_post_tags(features):
            reports.extend(["  junit: " + quote(tool.junit_path)])
        if ctx.has("cobertura") or ctx.has("jacoco"):
            reports.extend(
                ["  coverage_report:", "    coverage_format: cobertura", '    path: "coverage/cobertura-coverage.xml"']
            )
            if ctx.has("jacoco"):
                test.comments.append(f"{REVIEW_MARKER} Convert the JaCoCo report to Cobertura XML.")
        if reports:
            test.artifacts = ["when: always", "reports:", *reports]
        ctx.jobs.append(test)

        if features.matrix:
            first_axis = _variable_name(features.matrix[0][0])
            ctx.jobs.append(
                Job(
                    name="test:matrix",
                    stage="test",
                    script=[f'echo "Running matrix cell {first_axis}=${first_axis}"', *tool.test],
                    needs=["build:app"],
                    matrix=tuple((_variable_name(axis), values) for axis, values in features.matrix),
                )
            )

        seen: set[str] = set()
        for stage_name in features.parallel_stages:
            slug = _slug(stage_name)
            candidate, index = slug, 2
            while candidate in seen:
                candidate, index = f"{slug}-{index}", index + 1
            seen.add(candidate)
            ctx.jobs.append(
                Job(
                    name=f"parallel:{candidate}",
                    stage="test",
                    script=[f'echo "Port the steps of parallel stage {stage_name}"'],
                    needs=["build:app"],
                )
            )

        if "deploy" in ctx.stages:
            ctx.jobs.append(self._deploy_job(ctx))

        self._post_jobs(ctx)

    def _deploy_job(self, ctx: _Context) -> Job:
        guards = [g for g in ctx.features.guards if _is_deploy_stage(g.stage)]
        manual = "manual" if ctx.has("pipeline-input-step") else None
        job = Job(
            name="deploy:staging",
            stage="deploy",
            script=['echo "Port the Jenkins deployment steps here"'],
            needs=["build:app"],
            environment="staging",
        )
        if ctx.has("lockable-resources"):
            job.resource_group = "deploy"
        for guard in guards:
            rule = _guard_rule(guard)
            if rule is None:
                job.comments.append(
                    f"{REVIEW_MARKER} Jenkins expression guard not translated: {guard.expression}"
                )
            else:
                job.rules.append((rule, manual))
        if not job.rules:
            job.rules.append(("$CI_COMMIT_BRANCH == $CI_DEFAULT_BRANCH", manual))
        return job

    def _post_jobs(self, ctx: _Context) -> None:
        for phase, tags in ctx.features.post_actions:
            channels = [t for t in tags if t in ("slack_notification", "email_notification")]
            if not channels:
                continue
            job = Job(
                name=f"notify:{phase}",
                stage=".post",
                image=IMAGES["curl"],
                when=_POST_PHASE_WHEN.get(phase, "always"),
            )
            if "slack_notification" in channels:
                job.script.append(
                    'curl -X POST -H "Content-Type: application/json" '
                    f'--data "{{\\"text\\": \\"Pipeline $CI_PIPELINE_ID {phase}\\"}}" "$SLACK_WEBHOOK_URL"'
                )
                job.comments.append("Define SLACK_WEBHOOK_URL as a masked CI/CD variable.")
            if "email_notification" in channels:
                job.script.append(f'echo "Email notification for {phase} handled by Pipeline status emails"')
                job.comments.append("Enable Settings > Integrations > Pipeline status emails.")
            if phase in ("changed", "aborted", "cleanup"):
                job.comments.append(f"{REVIEW_MARKER} Jenkins post phase '{phase}' has no exact GitLab equivalent.")
            ctx.jobs.append(job)

        wants_cleanup = any("cleanup_workspace" in tags for _, tags in ctx.features.post_actions)
        if "cleanup" in ctx.stages or wants_cleanup:
            ctx.jobs.append(
                Job(
                    name="cleanup:workspace",
                    stage="cleanup" if "cleanup" in ctx.stages else ".post",
                    variables=[("GIT_STRATEGY", "none")],
                    script=['echo "Jobs start from a clean checkout; release external resources here"'],
                    when="always",
                )
            )

    def _capability_jobs(self, ctx: _Context, verdicts: Sequence[PluginVerdict]) -> dict[str, list[str]]:
        """Add stub jobs for recognised capabilities; returns comments per stubbed id."""
        notes: dict[str, list[str]] = {}
        for verdict in verdicts:
            stub = CAPABILITY_STUBS.get(verdict.id)
            if stub is None:
                continue
            job = stub(ctx, verdict)
            if job is None:
                continue
            comments = self._verdict_comments(verdict)
            job.comments = [c.removeprefix("# ") for c in comments] + job.comments
            notes[verdict.id] = comments
            ctx.jobs.append(job)
        return notes

    @staticmethod
    def _render_job(job: Job) -> list[str]:
        lines = [f"# {comment}" for comment in job.comments]
        lines.append(f"{quote(job.name)}:")
        lines.append(f"  stage: {job.stage}")
        if job.image:
            if job.image_entrypoint:
                lines.extend(["  image:", f"    name: {job.image}", '    entrypoint: [""]'])
            else:
                lines.append(f"  image: {job.image}")
        if job.services:
            lines.append("  services:")
            lines.extend(f"    - {service}" for service in job.services)
        if job.variables:
            lines.append("  variables:")
            lines.extend(f"    {key}: {quote(value)}" for key, value in job.variables)
        if job.needs is not None:
            lines.append("  needs: [" + ", ".join(quote(n) for n in job.needs) + "]")
        if job.matrix:
            lines.extend(["  parallel:", "    matrix:"])
            for index, (axis, values) in enumerate(job.matrix):
                prefix = "      - " if index == 0 else "        "
                lines.append(f"{prefix}{axis}: [" + ", ".join(quote(v) for v in values) + "]")
        if job.trigger:
            lines.extend(["  trigger:", f"    project: {job.trigger}", "    strategy: depend"])
        else:
            if job.before_script:
                lines.append("  before_script:")
                lines.extend(f"    - {quote(cmd)}" for cmd in job.before_script)
            lines.append("  script:")
            lines.extend(f"    - {quote(cmd)}" for cmd in job.script or ['echo "No steps"'])
        if job.environment:
            lines.append(f"  environment: {job.environment}")
        if job.resource_group:
            lines.append(f"  resource_group: {job.resource_group}")
        if job.artifacts:
            lines.append("  artifacts:")
            lines.extend(f"    {line}" for line in job.artifacts)
        if job.rules:
            lines.append("  rules:")
            for condition, when in job.rules:
                lines.append(f"    - if: {_single_quote(condition)}")
                if when:
                    lines.append(f"      when: {when}")
        elif job.when:
            lines.append(f"  when: {job.when}")
        if job.allow_failure:
            lines.append("  allow_failure: true")
        return lines


def _all_post_tags(features: FeatureSet) -> set[str]:
    return {tag for _, tags in features.post_actions for tag in tags}


def _is_deploy_stage(stage: str) -> bool:
    return "deploy" in stage.lower() or "release" in stage.lower()


def _guard_rule(guard: ConditionalGuard) -> str | None:
    """Translate one guard into a rules `if:` expression, or None."""
    if guard.condition == "branch":
        pattern = guard.expression
        if any(ch in pattern for ch in "*?"):
            regex = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".").replace("/", r"\/")
            return f"$CI_COMMIT_BRANCH =~ /^{regex}$/"
        return f'$CI_COMMIT_BRANCH == "{pattern}"'
    if guard.condition in ("tag", "buildingTag"):
        return "$CI_COMMIT_TAG"
    if guard.condition == "changeRequest":
        return '$CI_PIPELINE_SOURCE == "merge_request_event"'
    if guard.condition == "environment":
        name, _, value = guard.expression.partition(" == ")
        return f'${name} == "{value}"'
    return None


def lint_configuration(text: str) -> LintReport:
    """Structural checks on synthesized configuration text."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        return LintReport(valid=False, errors=(f"Invalid YAML: {exc}",))
    if not isinstance(document, dict):
        return LintReport(valid=False, errors=("Configuration must be a mapping",))

    errors: list[str] = []
    stages = document.get("stages")
    if not isinstance(stages, list) or not stages:
        errors.append("No stages defined")
        stages = []
    jobs = {
        name: body
        for name, body in document.items()
        if name not in _RESERVED_TOP_LEVEL and not str(name).startswith(".") and isinstance(body, dict)
    }
    if not jobs:
        errors.append("No jobs defined")
    allowed = {*stages, ".pre", ".post"}
    for name, body in jobs.items():
        stage = body.get("stage", "test")
        if stage not in allowed:
            errors.append(f"Job {name} uses undeclared stage {stage}")
        if "script" not in body and "trigger" not in body:
            errors.append(f"Job {name} has no script")
        for need in body.get("needs") or []:
            target = need.get("job") if isinstance(need, dict) else need
            if target not in jobs:
                errors.append(f"Job {name} needs unknown job {target}")
    return LintReport(valid=not errors, errors=tuple(errors))
