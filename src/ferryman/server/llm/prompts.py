"""Prompts for capability enrichment.

The model is asked for a short JSON verdict on how a Jenkins capability
maps to GitLab CI/CD. Its answer only adds notes; it never changes the
engine's own tier or the generated configuration.
"""

from __future__ import annotations

ENRICHMENT_MODEL = "anthropic/claude-3-haiku"

MAX_ENRICHMENT_TOKENS = 512

# Low temperature keeps answers stable across cache refreshes
ENRICHMENT_TEMPERATURE = 0.2

# Usage snippets are cut to this many characters
MAX_CONTEXT_CHARS = 1500

ANALYSIS_STATUSES = ("native", "partial", "unsupported")


def build_capability_prompt(
    capability_id: str,
    usage_context: str,
    project_context: str | None = None,
) -> str:
    """Build the prompt for analyzing one capability.

    Args:
        capability_id: Canonical Jenkins capability id
        usage_context: Lines of the Jenkinsfile that use the capability
        project_context: Optional free-text description of the project

    Returns:
        The prompt text
    """
    project = project_context.strip() if project_context else "Not provided"
    usage = usage_context.strip()[:MAX_CONTEXT_CHARS] or "(no usage lines captured)"
    return f"""You are helping migrate a Jenkins pipeline to GitLab CI/CD.

## Capability
{capability_id}

## How the Jenkinsfile uses it
```groovy
{usage}
```

## Project context
{project}

## Instructions
Describe how this capability should be handled in GitLab CI/CD.
Never include credentials or secret values in your answer.
Respond with ONLY a JSON object using these keys:
- "status": one of {", ".join(f'"{s}"' for s in ANALYSIS_STATUSES)}
- "equivalent": the GitLab feature or keyword to use, or null
- "note": one or two sentences of migration advice
- "blocking": true if the pipeline cannot run until this is solved
- "workaround_available": true if a manual workaround exists
- "doc_url": a docs.gitlab.com link, or null
- "confidence": a number between 0 and 1

JSON:"""
