"""
Prompt material sent to the workflow assistant.

This module provides:
- HistoryEntry: One prior chat turn
- SYSTEM_MESSAGE: Instructions for non-streaming model proposals
- build_system_context: Context document for the streaming tool-calling path
- build_generation_context: SYSTEM_MESSAGE plus the current model snapshot
"""

import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from casebuilder.domain.models import Field, WorkflowModel

ChatRole = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class HistoryEntry:
    role: ChatRole
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


# =============================================================================
# SYSTEM MESSAGE (non-streaming proposals)
# =============================================================================

SYSTEM_MESSAGE = """You are a workflow assistant that helps users modify and understand their workflow model.
The workflow model consists of two main components:

1. Fields (Global Data Fields):
- Reusable data points that can be referenced across the workflow
- Each field has: name, label, type, and optional configuration (like options for dropdown fields)
- Fields are assigned to steps where data needs to be collected or processed
- Each field MUST have a realistic sample value appropriate for its type

2. Stages, Processes and Steps:
- Stages: Sequential phases in the workflow, each containing processes
- Processes: Groups of steps within a stage
- Steps: Individual tasks with a name, a type (e.g. "Collect information", "Approve/Reject")
  and references to the global fields used in the step

When users request changes:
1. Analyze the current model state (both fields and stages)
2. Apply the requested changes
3. Return the updated complete model, the list of changes, and a visualization summary

Format your response as JSON with the following structure:
{
  "message": "Description of changes made",
  "model": {
    "fields": [
      {"name": "unique_name", "label": "Field Label", "type": "Text", "primary": false,
       "options": ["option1", "option2"], "value": "sample value"}
    ],
    "stages": [
      {"name": "Stage Name", "processes": [
        {"name": "Process Name", "steps": [
          {"name": "Step Name", "type": "Collect information",
           "fields": [{"name": "unique_name", "required": true}]}
        ]}
      ]}
    ]
  },
  "action": {
    "changes": [
      {"type": "add|delete|move|update",
       "target": {"type": "stage|process|step|field", "name": "item name"}}
    ]
  },
  "visualization": {
    "totalStages": 1,
    "stageBreakdown": [{"name": "stage name", "stepCount": 1, "steps": [{"name": "step name"}]}]
  }
}"""

EXISTING_WORKFLOW_INSTRUCTIONS = (
    "You are working with an EXISTING workflow. Use saveCase with isNew=false "
    "for any modifications. The current case ID is: {case_id}"
)


def build_system_context(case_id: int, name: str, model: WorkflowModel) -> str:
    """Context document for the streaming, tool-calling assistant."""
    return json.dumps(
        {
            "currentCaseId": case_id,
            "name": name,
            "stages": [stage.to_dict() for stage in model.stages],
            "instructions": EXISTING_WORKFLOW_INSTRUCTIONS.format(case_id=case_id),
        }
    )


def build_generation_context(
    model: WorkflowModel | None = None, fields: Sequence[Field] = ()
) -> str:
    """SYSTEM_MESSAGE, followed by the current model when there is one."""
    if model is None:
        return SYSTEM_MESSAGE
    snapshot = {
        "stages": [stage.to_dict() for stage in model.stages],
        "fields": [f.to_row() for f in fields],
    }
    return f"{SYSTEM_MESSAGE}\n\nCurrent workflow model:\n{json.dumps(snapshot, indent=2)}"
