"""
Configuration: scoring weights, storage location and logging.

Loading priority:
  1. Project dir .tasks.conf.yml
  2. Git root .tasks.conf.yml
  3. Global ~/.admin-tasks/config.yml

Environment overrides (also read from .env files): ADMIN_TASKS_DATA_DIR,
ADMIN_TASKS_VERBOSE.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .models import AdminRole
from .scoring import ScoreWeights

CONFIG_DIR = Path.home() / ".admin-tasks"
CONFIG_FILE = CONFIG_DIR / "config.yml"
PROJECT_CONFIG_NAME = ".tasks.conf.yml"
DEFAULT_DATA_DIR = str(CONFIG_DIR / "data")
DEFAULT_LOG_FILE = str(CONFIG_DIR / "logs" / "engine.log")

END_DATE_MODES = {"deadline", "now"}
DEFAULT_MANAGER_ROLES = [AdminRole.REGULATOR.value, AdminRole.CO_FOUNDER.value]
ROLE_NAMES = {role.value for role in AdminRole}


# ── Configuration metadata and validation ──


@dataclass
class ConfigFieldSpec:
    """Configuration field specification with validation rules."""
    key: str
    field_name: str
    description: str
    value_type: str  # "str", "int", "float", "bool", "list"
    default: Any
    validator: Optional[Callable[[Any], tuple[bool, Any, str]]] = None  # (valid, coerced_value, error_msg)


def _validate_int_range(value: Any, min_val: int, max_val: int) -> tuple[bool, int, str]:
    """Validate integer within range."""
    if isinstance(value, bool):
        return False, 0, "Must be an integer"
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return False, 0, "Must be an integer"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_float_range(value: Any, min_val: float, max_val: float) -> tuple[bool, float, str]:
    """Validate number within range."""
    if isinstance(value, bool):
        return False, 0.0, "Must be a number"
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return False, 0.0, "Must be a number"
    if parsed < min_val or parsed > max_val:
        return False, max(min_val, min(max_val, parsed)), f"Must be between {min_val} and {max_val}"
    return True, parsed, ""


def _validate_enum(value: Any, valid_values: set) -> tuple[bool, str, str]:
    """Validate value is in allowed set."""
    val_str = str(value).strip().lower()
    if val_str not in valid_values:
        return False, "", f"Must be one of: {', '.join(sorted(valid_values))}"
    return True, val_str, ""


def _validate_bool(value: Any) -> tuple[bool, bool, str]:
    """Validate boolean value."""
    if isinstance(value, bool):
        return True, value, ""
    if isinstance(value, str):
        val_lower = value.strip().lower()
        if val_lower in ("1", "true", "yes", "on"):
            return True, True, ""
        if val_lower in ("0", "false", "no", "off"):
            return True, False, ""
    return False, False, "Must be true/false, yes/no, on/off, or 1/0"


def _validate_role_list(value: Any) -> tuple[bool, List[str], str]:
    """Validate a list of admin role names."""
    if isinstance(value, str):
        raw_values = value.split(",")
    elif isinstance(value, list):
        raw_values = [str(item) for item in value]
    else:
        return False, [], "Must be a comma-separated list of roles"

    cleaned = []
    for item in raw_values:
        role = item.strip()
        if not role or role in cleaned:
            continue
        if role not in ROLE_NAMES:
            return False, [], f"Unknown role '{role}'. Roles: {', '.join(sorted(ROLE_NAMES))}"
        cleaned.append(role)

    if not cleaned:
        return False, [], "At least one role required"
    return True, cleaned, ""


# Configuration field registry with validation
CONFIG_FIELDS: Dict[str, ConfigFieldSpec] = {
    "data-dir": ConfigFieldSpec(
        key="data-dir",
        field_name="data_dir",
        description="Directory holding admins.json, content.json and the security log",
        value_type="str",
        default=DEFAULT_DATA_DIR,
    ),
    "verbose": ConfigFieldSpec(
        key="verbose",
        field_name="verbose",
        description="Log task transitions at INFO level",
        value_type="bool",
        default=False,
        validator=_validate_bool,
    ),
    "log-file": ConfigFieldSpec(
        key="log-file",
        field_name="log_file",
        description="Log file path (empty disables file logging)",
        value_type="str",
        default=DEFAULT_LOG_FILE,
    ),
    "completed-task-points": ConfigFieldSpec(
        key="completed-task-points",
        field_name="completed_task_points",
        description="Score points when the latest target task is completed",
        value_type="float",
        default=6.0,
        validator=lambda v: _validate_float_range(v, 0, 10),
    ),
    "incompleted-task-points": ConfigFieldSpec(
        key="incompleted-task-points",
        field_name="incompleted_task_points",
        description="Score points when the latest target task is incompleted",
        value_type="float",
        default=-4.0,
        validator=lambda v: _validate_float_range(v, -10, 0),
    ),
    "volume-target": ConfigFieldSpec(
        key="volume-target",
        field_name="volume_target",
        description="Completed uploads that earn the full volume points",
        value_type="int",
        default=50,
        validator=lambda v: _validate_int_range(v, 1, 10000),
    ),
    "volume-points": ConfigFieldSpec(
        key="volume-points",
        field_name="volume_points",
        description="Maximum score points for upload volume",
        value_type="float",
        default=3.0,
        validator=lambda v: _validate_float_range(v, 0, 10),
    ),
    "recency-target": ConfigFieldSpec(
        key="recency-target",
        field_name="recency_target",
        description="Recent completed uploads that earn the full recency points",
        value_type="int",
        default=5,
        validator=lambda v: _validate_int_range(v, 1, 1000),
    ),
    "recency-points": ConfigFieldSpec(
        key="recency-points",
        field_name="recency_points",
        description="Maximum score points for recent activity",
        value_type="float",
        default=1.0,
        validator=lambda v: _validate_float_range(v, 0, 10),
    ),
    "recency-days": ConfigFieldSpec(
        key="recency-days",
        field_name="recency_days",
        description="Length of the recent-activity window in days",
        value_type="int",
        default=7,
        validator=lambda v: _validate_int_range(v, 1, 365),
    ),
    "incomplete-end-date": ConfigFieldSpec(
        key="incomplete-end-date",
        field_name="incomplete_end_date",
        description="End date stamped on incompleted tasks: deadline or now",
        value_type="str",
        default="deadline",
        validator=lambda v: _validate_enum(v, END_DATE_MODES),
    ),
    "manager-roles": ConfigFieldSpec(
        key="manager-roles",
        field_name="manager_roles",
        description="Roles allowed to assign, cancel and complete tasks",
        value_type="list",
        default=list(DEFAULT_MANAGER_ROLES),
        validator=_validate_role_list,
    ),
}


def validate_config_value(key: str, value: Any) -> tuple[bool, Any, str]:
    """
    Validate a configuration value.

    Returns:
        (is_valid, coerced_value, error_message)
    """
    if key not in CONFIG_FIELDS:
        return False, value, f"Unknown configuration key: {key}"

    spec = CONFIG_FIELDS[key]
    if spec.validator:
        return spec.validator(value)

    if spec.value_type == "str":
        return True, str(value), ""
    return True, value, ""


@dataclass
class Config:
    data_dir: str = DEFAULT_DATA_DIR
    verbose: bool = False
    log_file: str = DEFAULT_LOG_FILE
    completed_task_points: float = 6.0
    incompleted_task_points: float = -4.0
    volume_target: int = 50
    volume_points: float = 3.0
    recency_target: int = 5
    recency_points: float = 1.0
    recency_days: int = 7
    incomplete_end_date: str = "deadline"
    manager_roles: List[str] = field(default_factory=lambda: list(DEFAULT_MANAGER_ROLES))
    project_root: Optional[str] = None
    _config_source: str = ""

    @classmethod
    def load(cls, project_dir: str = ".") -> "Config":
        config = cls()
        project_path = Path(project_dir).resolve()

        for env_path in [CONFIG_DIR / ".env", project_path / ".env"]:
            if env_path.exists():
                load_dotenv(env_path, override=False)

        git_root = cls._find_git_root(project_path)
        config._config_source = str(CONFIG_FILE)
        for candidate in [
            project_path / PROJECT_CONFIG_NAME,
            (git_root / PROJECT_CONFIG_NAME) if git_root and git_root != project_path else None,
            CONFIG_FILE,
        ]:
            if candidate and candidate.exists():
                config._load_yaml(candidate)
                config._config_source = str(candidate)
                break

        config._apply_env()
        config.project_root = str(project_path)
        return config

    def _load_yaml(self, filepath: Path):
        try:
            with open(filepath) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError):
            return
        if not isinstance(data, dict):
            return

        for key, spec in CONFIG_FIELDS.items():
            if key not in data:
                continue
            is_valid, coerced, _ = validate_config_value(key, data[key])
            if not is_valid:
                coerced = list(spec.default) if isinstance(spec.default, list) else spec.default
            setattr(self, spec.field_name, coerced)

    def _apply_env(self):
        env_map = {
            "ADMIN_TASKS_DATA_DIR": ("data_dir", str),
            "ADMIN_TASKS_VERBOSE": ("verbose", lambda v: v.lower() in ("true", "1")),
        }
        for env_var, (attr, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val:
                try:
                    setattr(self, attr, conv(val))
                except (ValueError, TypeError):
                    pass

    def save(self, filepath: Optional[str] = None):
        target = Path(filepath) if filepath else (
            Path(self._config_source) if self._config_source else CONFIG_FILE
        )
        target.parent.mkdir(parents=True, exist_ok=True)

        data = {key: getattr(self, spec.field_name) for key, spec in CONFIG_FIELDS.items()}
        with open(target, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        self._config_source = str(target)

    def score_weights(self) -> ScoreWeights:
        return ScoreWeights(
            completed_task_points=self.completed_task_points,
            incompleted_task_points=self.incompleted_task_points,
            volume_target=self.volume_target,
            volume_points=self.volume_points,
            recency_target=self.recency_target,
            recency_points=self.recency_points,
            recency_days=self.recency_days,
        )

    def summary(self) -> dict:
        return {
            "config_source": self._config_source,
            "data_dir": self.data_dir,
            "verbose": self.verbose,
            "log_file": self.log_file or "(disabled)",
            "incomplete_end_date": self.incomplete_end_date,
            "manager_roles": ", ".join(self.manager_roles),
        }

    @staticmethod
    def _find_git_root(path: Path) -> Optional[Path]:
        current = path
        while current != current.parent:
            if (current / ".git").exists():
                return current
            current = current.parent
        return None

    def get_config_value(self, key: str) -> Any:
        """Get configuration value by key."""
        if key not in CONFIG_FIELDS:
            return None
        spec = CONFIG_FIELDS[key]
        return getattr(self, spec.field_name, spec.default)

    def set_config_value(self, key: str, value: Any, persist: bool = True) -> tuple[bool, str]:
        """
        Set configuration value with validation.

        Returns:
            (success, error_message)
        """
        is_valid, coerced_value, error_msg = validate_config_value(key, value)
        if not is_valid:
            return False, error_msg

        spec = CONFIG_FIELDS[key]
        setattr(self, spec.field_name, coerced_value)
        if persist:
            self.save()
        return True, ""

    def reset_config_value(self, key: str, persist: bool = True) -> tuple[bool, str]:
        """
        Reset configuration value to default.

        Returns:
            (success, error_message)
        """
        if key not in CONFIG_FIELDS:
            return False, f"Unknown configuration key: {key}"

        spec = CONFIG_FIELDS[key]
        default = list(spec.default) if isinstance(spec.default, list) else spec.default
        setattr(self, spec.field_name, default)
        if persist:
            self.save()
        return True, ""

    def get_config_diff(self) -> Dict[str, Dict[str, Any]]:
        """
        Get configuration differences from defaults.

        Returns:
            Dict with keys: 'modified', 'default'
        """
        result = {"modified": {}, "default": {}}

        for key, spec in CONFIG_FIELDS.items():
            current_value = getattr(self, spec.field_name, spec.default)
            bucket = "default" if current_value == spec.default else "modified"
            result[bucket][key] = {
                "current": current_value,
                "default": spec.default,
                "type": spec.value_type,
                "description": spec.description,
            }

        return result
