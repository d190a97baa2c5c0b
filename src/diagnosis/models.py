"""
Pulseflow record models

Read-only projections of the automation document returned by the Pulseflow API.
Parsing is lenient: missing keys default to empty values, non-dict list
entries are dropped, and unknown keys are preserved.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ExecutionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


def _dicts_only(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


class _Record(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class NodeRecord(_Record):
    """A single step in an automation definition"""

    id: str = ""
    type: str = "Unknown"
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("id", "type", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def config(self) -> Dict[str, Any]:
        config = self.data.get("config")
        return config if isinstance(config, dict) else {}

    @property
    def notes(self) -> Optional[str]:
        notes = self.data.get("notes")
        return str(notes) if notes else None


class LogEntry(_Record):
    """Per-node log line recorded during an execution"""

    node_id: Optional[str] = Field(default=None, alias="nodeId")
    error: Optional[str] = None
    input: Optional[Any] = None
    output: Optional[Any] = None

    @field_validator("node_id", "error", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @property
    def output_fields(self) -> Dict[str, Any]:
        return self.output if isinstance(self.output, dict) else {}

    @property
    def user_message(self) -> Optional[str]:
        return self.output_fields.get("userMessage")

    @property
    def revert_reason(self) -> Optional[str]:
        return self.output_fields.get("revertReason")


class ExecutionRecord(_Record):
    """One run of an automation"""

    id: Optional[str] = None
    status: str = "UNKNOWN"
    error: Optional[str] = None
    started_at: Optional[str] = Field(default=None, alias="startedAt")
    logs: List[LogEntry] = Field(default_factory=list)

    @field_validator("id", "error", "started_at", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> str:
        if not value:
            return "UNKNOWN"
        return str(value).upper()

    @field_validator("logs", mode="before")
    @classmethod
    def _coerce_logs(cls, value: Any) -> List[Dict[str, Any]]:
        return _dicts_only(value)

    @property
    def is_cancelled(self) -> bool:
        return self.status == ExecutionStatus.CANCELLED.value


class AutomationDefinition(_Record):
    nodes: List[NodeRecord] = Field(default_factory=list)

    @field_validator("nodes", mode="before")
    @classmethod
    def _coerce_nodes(cls, value: Any) -> List[Dict[str, Any]]:
        return _dicts_only(value)


class AutomationRecord(_Record):
    """Automation document with embedded executions (newest first)"""

    id: str = ""
    name: Optional[str] = None
    definition: AutomationDefinition = Field(default_factory=AutomationDefinition)
    executions: List[ExecutionRecord] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> Optional[str]:
        return _optional_text(value) or None

    @field_validator("definition", mode="before")
    @classmethod
    def _coerce_definition(cls, value: Any) -> Dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @field_validator("executions", mode="before")
    @classmethod
    def _coerce_executions(cls, value: Any) -> List[Dict[str, Any]]:
        return _dicts_only(value)

    @property
    def display_name(self) -> str:
        return self.name or "Unnamed"

    @property
    def nodes(self) -> List[NodeRecord]:
        return self.definition.nodes

    @property
    def latest_execution(self) -> Optional[ExecutionRecord]:
        return self.executions[0] if self.executions else None

    def find_node(self, node_id: Optional[str]) -> Optional[NodeRecord]:
        if not node_id:
            return None
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @classmethod
    def from_payload(cls, payload: Any, automation_id: Optional[str] = None) -> Optional["AutomationRecord"]:
        """
        Parse an API payload, returning None when it is not an automation document.

        The requested id is used when the payload omits its own.
        """
        if not isinstance(payload, dict):
            logger.warning(f"[Pulseflow] Automation payload is {type(payload).__name__}, expected object")
            return None
        try:
            record = cls.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"[Pulseflow] Automation payload rejected: {e.error_count()} validation error(s)")
            return None
        if not record.id and automation_id:
            record.id = automation_id
        return record
