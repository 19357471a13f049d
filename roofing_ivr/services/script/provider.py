"""Spoken script provider."""
import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ValidationError

from roofing_ivr.core.errors import ConfigurationError
from roofing_ivr.services.call_session.models import CallSession, Department
from roofing_ivr.services.flow.steps import FlowStep

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT_FILE = Path(__file__).parent / "data" / "script.yaml"


class DepartmentScript(BaseModel):
    """Prompts per step and the farewell for one department."""

    prompts: Dict[FlowStep, List[str]]
    farewell: List[str]


class IVRScript(BaseModel):
    """Everything the IVR says."""

    company_name: str
    voice: str = "alice"
    language: str = "en-US"
    greeting: List[str]
    greeting_hints: List[str] = []
    after_hours_greeting: List[str]
    after_hours_hints: List[str] = []
    closing: str
    no_input_retry: str
    lost_call: List[str]
    error: List[str]
    departments: Dict[Department, DepartmentScript]

    def prompts_for(
        self, department: Department, step: FlowStep, session: Optional[CallSession] = None
    ) -> List[str]:
        """Get the prompts for a step, rendered for the caller."""
        department_script = self.departments.get(department)
        if department_script is None or step not in department_script.prompts:
            raise ConfigurationError(f"Script has no prompt for {department}/{step}")
        name = session.name if session and session.name else ""
        context = {"name": f" {name}" if name else ""}
        return [prompt.format(**context) for prompt in department_script.prompts[step]]

    def farewell_for(self, department: Department) -> List[str]:
        """Department farewell followed by the common closing line."""
        department_script = self.departments.get(department)
        farewell = department_script.farewell if department_script else []
        return [*farewell, self.closing]


class ScriptProvider:
    """Loads the spoken script from YAML."""

    def __init__(self, script_file: Optional[str] = None):
        """Initialize with optional script file path."""
        self.script_file = Path(script_file) if script_file else DEFAULT_SCRIPT_FILE
        self._script: Optional[IVRScript] = None

    def get_script(self) -> IVRScript:
        """Get the script, loading it on first use."""
        if self._script is None:
            if not self.script_file.exists():
                raise ConfigurationError(f"Script file not found: {self.script_file}")
            with open(self.script_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            try:
                self._script = IVRScript(**data)
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid script file {self.script_file}: {e}"
                ) from e
            logger.info(f"[SCRIPT] Loaded script from {self.script_file}")
        return self._script
