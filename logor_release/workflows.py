"""Workflow schema and dispatcher for the remote release workflow."""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from pydantic import BaseModel, Field

from .errors import ReleasePipelineError, WorkflowTriggerError
from .remote import RemoteClient

DISPATCH_INPUT = "dispatch_id"


class WorkflowInputSpec(BaseModel):
    """Describes a single workflow input parameter."""

    default: Optional[str] = None
    required: bool = False


class WorkflowSpec(BaseModel):
    """Workflow metadata used to dispatch a workflow through the remote CLI."""

    slug: str
    workflow: str
    repo: Optional[str] = None
    inputs: Dict[str, WorkflowInputSpec] = Field(default_factory=dict)


class WorkflowDispatchResult(BaseModel):
    status: str
    workflow: str
    repo: Optional[str] = None
    inputs: Dict[str, str] = Field(default_factory=dict)
    dry_run: bool = False


def release_workflow_spec(
    workflow: str = "release.yml",
    *,
    repo: Optional[str] = None,
    configuration: str = "Release",
    bump: Optional[str] = None,
) -> WorkflowSpec:
    inputs = {
        "configuration": WorkflowInputSpec(default=configuration, required=True),
        DISPATCH_INPUT: WorkflowInputSpec(required=True),
    }
    if bump:
        inputs["bump"] = WorkflowInputSpec(default=bump)
    return WorkflowSpec(
        slug="release",
        workflow=workflow,
        repo=repo,
        inputs=inputs,
    )


def resolve_inputs(spec: WorkflowSpec, inputs: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    provided: Mapping[str, str] = inputs or {}
    resolved: Dict[str, str] = {}
    for name, input_spec in spec.inputs.items():
        if name in provided:
            resolved[name] = str(provided[name])
        elif input_spec.default is not None:
            resolved[name] = input_spec.default
        elif input_spec.required:
            raise WorkflowTriggerError(f"Missing required workflow input '{name}' for workflow '{spec.slug}'.")

    # Undeclared inputs are forwarded as-is.
    for name, value in provided.items():
        if name not in resolved:
            resolved[name] = str(value)
    return resolved


def dispatch_workflow(
    client: RemoteClient,
    spec: WorkflowSpec,
    *,
    inputs: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
) -> WorkflowDispatchResult:
    """Trigger ``spec`` once. The trigger is not retried: a repeat could start a second run."""

    resolved = resolve_inputs(spec, inputs)
    if dry_run:
        return WorkflowDispatchResult(
            status="skipped",
            workflow=spec.workflow,
            repo=spec.repo,
            inputs=resolved,
            dry_run=True,
        )

    try:
        client.trigger_workflow(spec.workflow, resolved)
    except ReleasePipelineError as exc:
        raise WorkflowTriggerError(f"Workflow dispatch failed: {exc}") from exc

    return WorkflowDispatchResult(
        status="dispatched",
        workflow=spec.workflow,
        repo=spec.repo,
        inputs=resolved,
    )
