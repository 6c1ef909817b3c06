"""
Configuration Validator Module

Checks the perturbation batch and system parameter files before a batch
starts: JSON schema validation first, then batch-level checks the schema
can't express (duplicate profile ids, selections naming unknown profiles).
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog
from jsonschema import Draft7Validator, FormatChecker, ValidationError
from rich.console import Console

console = Console()
logger = structlog.get_logger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent.parent / "schemas"
BATCH_SCHEMA = "perturbation_batch_schema.json"
SYSTEM_PARAMS_SCHEMA = "system_params_schema.json"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


def _error_path(error: ValidationError) -> str:
    return " -> ".join(str(p) for p in error.absolute_path) or "(root)"


def _missing_field(error: ValidationError, path: str) -> str:
    field = error.message.split("'")[1]
    return f"Missing required field: '{field}' at {path}\n    -> Add this field to the file"


# jsonschema validator keyword -> message builder
_FORMATTERS: Dict[str, Callable[[ValidationError, str], str]] = {
    "required": _missing_field,
    "type": lambda e, p: (
        f"Type mismatch at '{p}': {e.message}\n    -> Expected type: {e.validator_value}"
    ),
    "minLength": lambda e, p: f"Value too short at '{p}': {e.message}",
    "minItems": lambda e, p: f"Value too short at '{p}': {e.message}",
    "minimum": lambda e, p: f"Value too small at '{p}': {e.message}",
    "maximum": lambda e, p: f"Value too large at '{p}': {e.message}",
    "enum": lambda e, p: (
        f"Invalid value at '{p}': {e.message}\n    -> Allowed values: {e.validator_value}"
    ),
    "format": lambda e, p: (
        f"Invalid format at '{p}': {e.message}\n    -> Expected format: {e.validator_value}"
    ),
    "additionalProperties": lambda e, p: (
        f"Unknown field at '{p}': {e.message}\n    -> Check the field name for typos"
    ),
}


def format_validation_error(error: ValidationError) -> str:
    """One readable line (plus an optional hint) for a schema violation."""
    path = _error_path(error)
    formatter = _FORMATTERS.get(str(error.validator))
    if formatter is None:
        return f"Validation error at '{path}': {error.message}"
    return formatter(error, path)


def check_batch_semantics(batch: Dict[str, Any]) -> List[str]:
    """
    Batch checks beyond the schema.

    Args:
        batch: Schema-valid batch dictionary

    Returns:
        Problem descriptions (empty if the batch is consistent)
    """
    problems: List[str] = []
    seen: set[str] = set()
    for entry in batch.get("profiles", []):
        profile_id = entry["id"]
        if profile_id in seen:
            problems.append(f"Duplicate profile id: '{profile_id}'")
        seen.add(profile_id)

    selected = batch.get("config", {}).get("selected_profile_ids", [])
    unknown = [profile_id for profile_id in selected if profile_id not in seen]
    if unknown:
        problems.append(f"selected_profile_ids references unknown profiles: {unknown}")

    return problems


class ConfigValidator:
    """Validates configuration files against JSON schemas."""

    def __init__(self, schema_dir: Path = SCHEMA_DIR):
        """
        Initialize validator with schema directory.

        Args:
            schema_dir: Path to directory containing JSON schemas
        """
        self.schema_dir = schema_dir
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Load a JSON schema, caching it for later validations.

        Raises:
            ConfigurationError: If schema file not found or invalid
        """
        cached = self._schemas.get(schema_name)
        if cached is not None:
            return cached

        schema_path = self.schema_dir / schema_name
        if not schema_path.exists():
            logger.error("schema_not_found", schema_path=str(schema_path))
            raise ConfigurationError(f"Schema file not found: {schema_path}")

        try:
            schema = json.loads(schema_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in schema {schema_name}: {e}") from e

        self._schemas[schema_name] = schema
        logger.debug("schema_loaded", schema_name=schema_name)
        return schema

    def validate(self, config: Dict[str, Any], schema_name: str) -> None:
        """
        Validate configuration against schema.

        Errors are reported in document order, all at once.

        Raises:
            ConfigurationError: If validation fails with detailed error messages
        """
        validator = Draft7Validator(
            self.load_schema(schema_name), format_checker=FormatChecker()
        )
        errors = sorted(
            validator.iter_errors(config), key=lambda e: [str(p) for p in e.absolute_path]
        )
        if not errors:
            return

        logger.warning(
            "validation_failed", schema_name=schema_name, error_count=len(errors)
        )
        lines = [f"\n[X] Configuration validation failed for {schema_name}:\n"]
        lines.extend(f"  * {format_validation_error(error)}" for error in errors)
        lines.append("\n[!] Fix the errors above and try again.\n")
        raise ConfigurationError("\n".join(lines))

    def validate_file(self, config_path: Path, schema_name: str) -> Dict[str, Any]:
        """
        Load and validate configuration file.

        Returns:
            Validated configuration dictionary

        Raises:
            ConfigurationError: If file not found or validation fails
        """
        if not config_path.exists():
            logger.error("config_file_not_found", config_path=str(config_path))
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            config = json.loads(config_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in {config_path.name}: {e}\n"
                f"Check for trailing commas, missing quotes, or invalid syntax."
            ) from e

        self.validate(config, schema_name)
        logger.info("config_file_valid", config_path=str(config_path))
        return config

    def validate_batch_file(self, batch_path: Path) -> Dict[str, Any]:
        """
        Validate a batch file against its schema and the batch-level checks.

        Raises:
            ConfigurationError: On schema violations or inconsistent profile ids
        """
        batch = self.validate_file(batch_path, BATCH_SCHEMA)
        problems = check_batch_semantics(batch)
        if problems:
            raise ConfigurationError(
                f"\n[X] Inconsistent perturbation batch {batch_path.name}:\n\n"
                + "\n".join(f"  * {problem}" for problem in problems)
            )
        return batch

    def validate_all_configs(
        self,
        batch_path: Path,
        system_params_path: Optional[Path] = None,
    ) -> Dict[str, Dict[str, Any]]:
        """
        Validate the batch input and optional system parameters.

        Args:
            batch_path: Path to perturbation batch JSON (profiles + config)
            system_params_path: Optional path to system parameters JSON

        Returns:
            Dictionary with validated configs: {"batch": {...}, "system_params": {...}}

        Raises:
            ConfigurationError: If any validation fails
        """
        console.print("\n[*] Validating configuration files...\n")

        batch = self.validate_batch_file(batch_path)
        console.print(f"  [+] Perturbation batch valid ({len(batch['profiles'])} profiles)")

        # System parameters are optional; defaults apply when absent
        if system_params_path is not None and system_params_path.exists():
            system_params = self.validate_file(system_params_path, SYSTEM_PARAMS_SCHEMA)
            console.print("  [+] System parameters valid\n")
        else:
            system_params = {}
            console.print("  [i] No system parameters file provided, using defaults\n")

        return {"batch": batch, "system_params": system_params}
