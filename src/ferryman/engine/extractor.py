"""Pattern-based feature extraction from Jenkins pipeline scripts.

The Jenkins DSL is a superset of Groovy, so there is no grammar here.
Each construct has its own small sub-extractor built from a block
keyword plus balanced-brace scanning. Every function is total: bad
input produces empty fields, never an exception.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import replace

from ferryman.engine.mappings import EXCLUDED_TOKENS
from ferryman.engine.models import (
    ConditionalGuard,
    CredentialBinding,
    ExtractionResult,
    FeatureSet,
    Parameter,
    ParameterKind,
    PipelineStyle,
    RetentionPolicy,
    UnparsedRegion,
)

logger = logging.getLogger(__name__)

SCRIPT_BLOCK_REASON = "Complex script block - requires manual review"

_PARAMETER_KINDS: dict[str, ParameterKind] = {
    "string": "string",
    "booleanParam": "boolean",
    "choice": "choice",
    "text": "text",
    "password": "password",
}

# Multipliers to milliseconds.
_TIMEOUT_UNITS = {
    "NANOSECONDS": 1,
    "MICROSECONDS": 1,
    "MILLISECONDS": 1,
    "SECONDS": 1000,
    "MINUTES": 60_000,
    "HOURS": 3_600_000,
    "DAYS": 86_400_000,
}

POST_PHASES = (
    "always",
    "changed",
    "fixed",
    "regression",
    "aborted",
    "failure",
    "success",
    "unstable",
    "cleanup",
)

_POST_TAGS = (
    (re.compile(r"\bslackSend\b"), "slack_notification"),
    (re.compile(r"\b(?:emailext|mail)\s*\("), "email_notification"),
    (re.compile(r"\b(?:cleanWs|deleteDir)\s*\("), "cleanup_workspace"),
    (re.compile(r"\barchiveArtifacts\b"), "archive_artifacts"),
    (re.compile(r"\bjunit\b"), "junit_report"),
)

_BINDING_KINDS = ("usernamePassword", "sshUserPrivateKey", "certificate", "string", "file")

_PARAM_CALL = re.compile(r"\b(string|booleanParam|choice|text|password)\s*\(")
_NAMED_STRING = re.compile(r"(\w+)\s*:\s*(?:'''(.*?)'''|\"\"\"(.*?)\"\"\"|'([^']*)'|\"([^\"]*)\")", re.S)
_NAMED_BARE = re.compile(r"(\w+)\s*:\s*(true|false|-?\d+)\b")
_QUOTED = re.compile(r"'([^']*)'|\"([^\"]*)\"")
_STAGE_CALL = re.compile(r"\bstage\s*\(\s*(?:name\s*:\s*)?['\"]([^'\"]+)['\"]")
_ENV_LINE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.+?)\s*;?\s*$", re.M)
_CREDENTIALS_CALL = re.compile(r"^credentials\(\s*['\"]([^'\"]+)['\"]\s*\)$")
_WITH_ENV = re.compile(r"\bwithEnv\s*\(\s*\[([^\]]*)\]")
_LIBRARY = re.compile(r"@Library\s*\(\s*(\[[^\]]*\]|['\"][^'\"]+['\"])")
_LIBRARY_STEP = re.compile(r"(?<![@\w])library\s*\(?\s*(?:identifier\s*:\s*)?['\"]([^'\"]+)['\"]")
_DECLARATIVE = re.compile(r"^\s*pipeline\s*\{", re.M)
_SCRIPTED = re.compile(r"(?<![\w.])node\s*(?:\([^)]*\))?\s*\{")
_PLUGIN_TOKEN = re.compile(r"^\s*([a-zA-Z][\w]*)\s*[({]")


def strip_comments(text: str) -> str:
    """Blank out Groovy comments, keeping string literals and line numbers."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "'\"":
            end = _string_end(text, i)
            out.append(text[i:end])
            i = end
        elif text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            out.append(" " * (end - i))
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append("".join(c if c == "\n" else " " for c in text[i:end]))
            i = end
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _string_end(text: str, start: int) -> int:
    """Index just past the string literal opening at `start`."""
    quote = text[start]
    if text.startswith(quote * 3, start):
        end = text.find(quote * 3, start + 3)
        return len(text) if end == -1 else end + 3
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote or ch == "\n":
            return i + 1
        i += 1
    return len(text)


def match_brace(text: str, open_index: int) -> int:
    """Return the index of the brace closing the one at `open_index`.

    Braces inside string literals are ignored. Returns -1 when the block
    never closes.
    """
    pairs = {"{": "}", "(": ")", "[": "]"}
    opener = text[open_index]
    closer = pairs[opener]
    depth = 0
    i = open_index
    while i < len(text):
        ch = text[i]
        if ch in "'\"":
            i = _string_end(text, i)
            continue
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def iter_blocks(text: str, keyword: str) -> Iterator[tuple[int, str]]:
    """Yield (body offset, body) for every `keyword {` block.

    Unbalanced blocks extend to the end of the text.
    """
    for match in re.finditer(rf"(?<![\w.]){keyword}\s*\{{", text):
        open_index = match.end() - 1
        close = match_brace(text, open_index)
        end = len(text) if close == -1 else close
        yield open_index + 1, text[open_index + 1 : end]


def line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def _call_args(text: str, open_paren: int) -> str:
    close = match_brace(text, open_paren)
    return text[open_paren + 1 : len(text) if close == -1 else close]


def _named_args(args: str) -> dict[str, str]:
    found: dict[str, str] = {}
    for match in _NAMED_STRING.finditer(args):
        value = next((g for g in match.groups()[1:] if g is not None), "")
        found.setdefault(match.group(1), value)
    for match in _NAMED_BARE.finditer(args):
        found.setdefault(match.group(1), match.group(2))
    return found


def _quoted_values(text: str) -> list[str]:
    return [single or double for single, double in _QUOTED.findall(text)]


def _unique(items: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def _depth_at(body: str, index: int) -> int:
    depth = 0
    i = 0
    while i < index:
        ch = body[i]
        if ch in "'\"":
            i = _string_end(body, i)
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        i += 1
    return depth


def extract_parameters(text: str) -> tuple[Parameter, ...]:
    params: dict[str, Parameter] = {}
    for match in _PARAM_CALL.finditer(text):
        args = _call_args(text, match.end() - 1)
        named = _named_args(args)
        name = named.get("name")
        if not name or name in params:
            continue
        kind = _PARAMETER_KINDS[match.group(1)]
        choices: tuple[str, ...] = ()
        default = named.get("defaultValue", "")
        if kind == "boolean" and not default:
            default = "false"
        if kind == "choice":
            list_match = re.search(r"choices\s*:\s*\[([^\]]*)\]", args)
            if list_match:
                choices = tuple(_quoted_values(list_match.group(1)))
            elif "choices" in named:
                choices = tuple(c.strip() for c in named["choices"].splitlines() if c.strip())
            default = ""
        params[name] = Parameter(
            name=name,
            kind=kind,
            default=default,
            description=named.get("description", ""),
            choices=choices,
        )
    return tuple(params.values())


def _unquote(value: str) -> str | None:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return None


def extract_environment(text: str) -> tuple[tuple[tuple[str, str], ...], tuple[CredentialBinding, ...]]:
    """Literal environment assignments and the credential bindings among them."""
    env: dict[str, str] = {}
    bindings: list[CredentialBinding] = []
    for _, body in iter_blocks(text, "environment"):
        for match in _ENV_LINE.finditer(body):
            key, raw = match.group(1), match.group(2)
            cred = _CREDENTIALS_CALL.match(raw)
            if cred:
                bindings.append(CredentialBinding(cred.group(1), "credentials", (("variable", key),)))
                continue
            value = _unquote(raw)
            if value is not None:
                env.setdefault(key, value)
    for match in _WITH_ENV.finditer(text):
        for item in _quoted_values(match.group(1)):
            key, sep, value = item.partition("=")
            if sep and re.fullmatch(r"[A-Za-z_][A-Za-z0-9_]*", key):
                env.setdefault(key, value)
    return tuple(env.items()), tuple(bindings)


def extract_matrix(text: str) -> tuple[tuple[str, tuple[str, ...]], ...]:
    axes: dict[str, tuple[str, ...]] = {}
    for _, body in iter_blocks(text, "matrix"):
        for _, axis in iter_blocks(body, "axis"):
            name = re.search(r"\bname\s+['\"]([^'\"]+)['\"]", axis)
            values = re.search(r"\bvalues\s+((?:['\"][^'\"]*['\"]\s*,?\s*)+)", axis)
            if not name or not values:
                continue
            found = tuple(v for v in _quoted_values(values.group(1)) if v)
            if found:
                axes.setdefault(name.group(1), found)
    return tuple(axes.items())


def extract_timeout(text: str) -> int:
    """Pipeline timeout in whole minutes (0 when absent)."""
    match = re.search(r"\btimeout\s*\(", text)
    if not match:
        return 0
    args = _call_args(text, match.end() - 1)
    named = _named_args(args)
    amount = named.get("time")
    if amount is None:
        positional = re.match(r"\s*(\d+)\s*$", args)
        amount = positional.group(1) if positional else None
    if amount is None or not amount.lstrip("-").isdigit():
        return 0
    factor = _TIMEOUT_UNITS.get(named.get("unit", "MINUTES").upper(), 60_000)
    millis = int(amount) * factor
    if millis <= 0:
        return 0
    return -(-millis // 60_000)


def extract_retry(text: str) -> int:
    match = re.search(r"\bretry\s*\(\s*(?:count\s*:\s*)?(\d+)", text)
    return int(match.group(1)) if match else 0


def extract_post_actions(text: str) -> tuple[tuple[str, tuple[str, ...]], ...]:
    phases: dict[str, list[str]] = {}
    for _, body in iter_blocks(text, "post"):
        found = []
        for phase in POST_PHASES:
            for offset, phase_body in iter_blocks(body, phase):
                found.append((offset, phase, phase_body))
        for _, phase, phase_body in sorted(found):
            tags = [tag for pattern, tag in _POST_TAGS if pattern.search(phase_body)]
            if tags:
                existing = phases.setdefault(phase, [])
                existing.extend(t for t in tags if t not in existing)
    return tuple((phase, tuple(tags)) for phase, tags in phases.items())


def extract_retention(text: str) -> RetentionPolicy:
    match = re.search(r"\blogRotator\s*\(", text)
    if not match:
        return RetentionPolicy()
    args = _call_args(text, match.end() - 1)
    values: dict[str, int] = {}
    for key, value in re.findall(r"(\w+?)(?:Str)?\s*:\s*['\"]?(-?\d+)", args):
        values.setdefault(key, max(int(value), 0))
    return RetentionPolicy(
        days_to_keep=values.get("daysToKeep", 0),
        num_to_keep=values.get("numToKeep", 0),
        artifact_days_to_keep=values.get("artifactDaysToKeep", 0),
        artifact_num_to_keep=values.get("artifactNumToKeep", 0),
    )


def extract_credential_bindings(text: str) -> tuple[CredentialBinding, ...]:
    """Typed `withCredentials` sub-forms, in source order."""
    found: list[tuple[int, CredentialBinding]] = []
    pattern = re.compile(rf"\b({'|'.join(_BINDING_KINDS)})\s*\(")
    for match in pattern.finditer(text):
        args = _call_args(text, match.end() - 1)
        named = _named_args(args)
        source_id = named.get("credentialsId")
        if not source_id:
            continue
        variables = tuple(
            (key, value)
            for key, value in named.items()
            if key == "variable" or key.endswith("Variable")
        )
        found.append((match.start(), CredentialBinding(source_id, match.group(1), variables)))
    return tuple(binding for _, binding in found)


def _enclosing_stage(text: str, index: int) -> str:
    name = ""
    for match in _STAGE_CALL.finditer(text, 0, index):
        name = match.group(1)
    return name


def extract_guards(text: str) -> tuple[ConditionalGuard, ...]:
    guards: list[ConditionalGuard] = []
    for offset, body in iter_blocks(text, "when"):
        stage = _enclosing_stage(text, offset)
        found: list[tuple[int, ConditionalGuard]] = []
        for expr_offset, expr in iter_blocks(body, "expression"):
            found.append((expr_offset, ConditionalGuard("expression", " ".join(expr.split()), stage)))
        for match in re.finditer(r"\bbranch\s*\(?\s*(?:pattern\s*:\s*)?['\"]([^'\"]+)['\"]", body):
            found.append((match.start(), ConditionalGuard("branch", match.group(1), stage)))
        for match in re.finditer(
            r"\benvironment\s+name\s*:\s*['\"](\w+)['\"]\s*,\s*value\s*:\s*['\"]([^'\"]*)['\"]", body
        ):
            found.append(
                (match.start(), ConditionalGuard("environment", f"{match.group(1)} == {match.group(2)}", stage))
            )
        for match in re.finditer(r"\btag\s*\(?\s*(?:pattern\s*:\s*)?['\"]([^'\"]+)['\"]", body):
            found.append((match.start(), ConditionalGuard("tag", match.group(1), stage)))
        for match in re.finditer(r"\bbuildingTag\s*\(\s*\)", body):
            found.append((match.start(), ConditionalGuard("buildingTag", "", stage)))
        for match in re.finditer(r"\bchangeRequest\b", body):
            found.append((match.start(), ConditionalGuard("changeRequest", "", stage)))
        guards.extend(guard for _, guard in sorted(found, key=lambda item: item[0]))
    return tuple(guards)


def extract_parallel_stages(text: str) -> tuple[str, ...]:
    names: list[str] = []
    for _, body in iter_blocks(text, "parallel"):
        for match in _STAGE_CALL.finditer(body):
            if _depth_at(body, match.start()) == 0:
                names.append(match.group(1))
    for match in re.finditer(r"(?<![\w.])parallel\s*(?=[(\['\"])", text):
        i = match.end()
        while i < len(text) and text[i] in "([ \t\r\n":
            i += 1
        branch = re.compile(r"\s*,?\s*['\"]([^'\"]+)['\"]\s*:\s*\{")
        while True:
            entry = branch.match(text, i)
            if not entry:
                break
            names.append(entry.group(1))
            close = match_brace(text, entry.end() - 1)
            if close == -1:
                break
            i = close + 1
    return _unique(names)


def extract_stage_names(text: str) -> tuple[str, ...]:
    return _unique([m.group(1) for m in _STAGE_CALL.finditer(text)])


def extract_libraries(text: str) -> tuple[str, ...]:
    names: list[str] = []
    for match in _LIBRARY.finditer(text):
        names.extend(v for v in _quoted_values(match.group(1)) if v)
    names.extend(m.group(1) for m in _LIBRARY_STEP.finditer(text))
    return _unique(names)


def detect_style(text: str) -> PipelineStyle:
    if _DECLARATIVE.search(text):
        return "declarative"
    if _SCRIPTED.search(text):
        return "scripted"
    return "unknown"


def _has_balanced_root(text: str, style: PipelineStyle) -> bool:
    pattern = _DECLARATIVE if style == "declarative" else _SCRIPTED
    match = pattern.search(text)
    if not match:
        return False
    return match_brace(text, match.end() - 1) != -1


class FallbackTokenizer:
    """Coarse stage/token scan used when the primary pass finds little structure."""

    def __init__(self, excluded_tokens: frozenset[str] = EXCLUDED_TOKENS) -> None:
        self.excluded_tokens = excluded_tokens

    def tokenize(
        self, text: str
    ) -> tuple[
        tuple[tuple[str, int], ...],
        tuple[tuple[str, int], ...],
        tuple[tuple[str, str], ...],
        tuple[UnparsedRegion, ...],
    ]:
        """Return stage lines, plugin lines, environment pairs and unparsed regions."""
        stage_lines: list[tuple[str, int]] = []
        plugin_lines: list[tuple[str, int]] = []
        for match in re.finditer(r"\bstage\s*\(\s*['\"]([^'\"]+)['\"]\s*\)\s*\{", text):
            stage_lines.append((match.group(1), line_of(text, match.start())))
            open_index = match.end() - 1
            close = match_brace(text, open_index)
            end = len(text) if close == -1 else close
            first_line = line_of(text, open_index)
            for offset, line in enumerate(text[open_index + 1 : end].splitlines()):
                token = _PLUGIN_TOKEN.match(line)
                if token and token.group(1).lower() not in self.excluded_tokens:
                    plugin_lines.append((token.group(1), first_line + offset))

        env: dict[str, str] = {}
        for _, body in iter_blocks(text, "environment"):
            for match in _ENV_LINE.finditer(body):
                key, raw = match.group(1), match.group(2)
                if _CREDENTIALS_CALL.match(raw):
                    continue
                value = _unquote(raw)
                env.setdefault(key, raw if value is None else value)

        unparsed: list[UnparsedRegion] = []
        for match in re.finditer(r"(?<![\w.])script\s*\{", text):
            open_index = match.end() - 1
            close = match_brace(text, open_index)
            end = len(text) if close == -1 else close
            unparsed.append(
                UnparsedRegion(
                    text=text[open_index + 1 : end].strip(),
                    start_line=line_of(text, match.start()),
                    end_line=line_of(text, end),
                    reason=SCRIPT_BLOCK_REASON,
                )
            )
        return tuple(stage_lines), tuple(plugin_lines), tuple(env.items()), tuple(unparsed)

    @staticmethod
    def confidence(stage_count: int, line_count: int) -> float:
        """Fallback confidence, capped below full trust."""
        parsed_fraction = min(1.0, stage_count * 5 / max(line_count, 1))
        return round(min(0.9, parsed_fraction + 0.4), 2)


class FeatureExtractor:
    """Builds a `FeatureSet` from a pipeline script."""

    def __init__(self, excluded_tokens: frozenset[str] = EXCLUDED_TOKENS) -> None:
        self.tokenizer = FallbackTokenizer(excluded_tokens)

    def extract(self, text: str) -> FeatureSet:
        return self.extract_with_confidence(text).features

    def extract_with_confidence(self, text: str) -> ExtractionResult:
        """Extract features and report how far they can be trusted.

        Args:
            text: Raw pipeline script

        Returns:
            Extraction result; the primary pass reports confidence 1.0, the
            fallback pass at most 0.9 plus any unparsed regions.
        """
        source = strip_comments(text)
        features = self._primary(source)
        stage_lines = tuple(
            (m.group(1), line_of(source, m.start())) for m in _STAGE_CALL.finditer(source)
        )

        if features.style != "unknown" and _has_balanced_root(source, features.style):
            logger.debug("Primary extraction: %s stages, style %s", len(features.stage_names), features.style)
            return ExtractionResult(
                features=features, confidence=1.0, method="primary", stage_lines=stage_lines
            )

        stage_lines, plugin_lines, env, unparsed = self.tokenizer.tokenize(source)
        merged_env = dict(features.environment)
        for key, value in env:
            merged_env.setdefault(key, value)
        features = replace(features, environment=tuple(merged_env.items()))
        confidence = FallbackTokenizer.confidence(len(stage_lines), len(source.splitlines()))
        logger.debug(
            "Fallback extraction: %s stages, %s unparsed regions, confidence %.2f",
            len(stage_lines),
            len(unparsed),
            confidence,
        )
        return ExtractionResult(
            features=features,
            confidence=confidence,
            method="fallback",
            stage_lines=stage_lines,
            plugin_lines=plugin_lines,
            unparsed=unparsed,
        )

    def _primary(self, text: str) -> FeatureSet:
        environment, env_bindings = extract_environment(text)
        bindings = list(extract_credential_bindings(text))
        bindings.extend(env_bindings)
        return FeatureSet(
            parameters=extract_parameters(text),
            environment=environment,
            matrix=extract_matrix(text),
            timeout_minutes=extract_timeout(text),
            retry_count=extract_retry(text),
            post_actions=extract_post_actions(text),
            retention=extract_retention(text),
            credential_bindings=tuple(dict.fromkeys(bindings)),
            guards=extract_guards(text),
            parallel_stages=extract_parallel_stages(text),
            stage_names=extract_stage_names(text),
            libraries=extract_libraries(text),
            style=detect_style(text),
        )


_default_extractor = FeatureExtractor()


def extract(text: str) -> FeatureSet:
    """Extract a feature set with the default tables."""
    return _default_extractor.extract(text)


def extract_with_confidence(text: str) -> ExtractionResult:
    """Extract a feature set plus confidence with the default tables."""
    return _default_extractor.extract_with_confidence(text)
