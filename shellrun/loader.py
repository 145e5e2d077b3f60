"""Sequence file loader with strict validation.

A sequence file is a YAML mapping:

    version: "1"
    name: build
    options:
      output: tee
      continue_on_error: false
      cwd: ./src
      env: {PATH: /usr/bin}
    commands:
      - make clean
      - make all
"""

from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field
import yaml

from shellrun.exceptions import ValidationError, SequenceValidationError
from shellrun.exec.command_executor import ExecutionOptions
from shellrun.exec.output_capture import OutputMode


@dataclass
class SequenceDefinition:
    """A validated sequence file."""
    commands: List[str]
    options: ExecutionOptions = field(default_factory=ExecutionOptions)
    name: Optional[str] = None
    path: Optional[Path] = None


class SequenceLoader:
    """Loads and validates sequence YAML files."""

    SUPPORTED_VERSIONS = {"1"}
    TOP_LEVEL_KEYS = {"version", "name", "options", "commands"}
    OPTION_KEYS = {"output", "verbose", "continue_on_error", "cwd", "env"}

    def __init__(self):
        self.errors: List[ValidationError] = []

    def load(self, sequence_path: Path) -> SequenceDefinition:
        """Load and validate a sequence file."""
        self.errors = []
        sequence_path = Path(sequence_path)

        try:
            with open(sequence_path, 'r') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self._add_error(f"Failed to load sequence: {e}")
            self._raise_validation_errors()

        if data is None or not isinstance(data, dict):
            self._add_error("Sequence must be a YAML object/dictionary")
            self._raise_validation_errors()

        for key in data:
            if key not in self.TOP_LEVEL_KEYS:
                self._add_error(f"Unknown field '{key}'", path=str(key))

        version = data.get('version')
        if not version:
            self._add_error("'version' field is required", path='version')
        elif not isinstance(version, str):
            self._add_error(f"'version' field must be a string, got {type(version).__name__}", path='version')
        elif version not in self.SUPPORTED_VERSIONS:
            self._add_error(f"Unsupported version '{version}'. Supported: {sorted(self.SUPPORTED_VERSIONS)}",
                            path='version')

        name = data.get('name')
        if name is not None and not isinstance(name, str):
            self._add_error(f"'name' must be a string, got {type(name).__name__}", path='name')
            name = None

        commands = self._validate_commands(data.get('commands'))
        options = self._validate_options(data.get('options'), sequence_path.parent)

        self._raise_validation_errors()

        assert options is not None
        return SequenceDefinition(
            commands=commands,
            options=options,
            name=name,
            path=sequence_path,
        )

    def _validate_commands(self, commands: Any) -> List[str]:
        if not commands:
            self._add_error("'commands' field is required and must not be empty", path='commands')
            return []
        if not isinstance(commands, list):
            self._add_error(f"'commands' must be a list, got {type(commands).__name__}", path='commands')
            return []

        valid = []
        for i, command in enumerate(commands):
            path = f"commands[{i}]"
            if not isinstance(command, str):
                self._add_error(f"Command must be a string, got {type(command).__name__}", path=path)
            elif not command.strip():
                self._add_error("Command must not be empty", path=path)
            else:
                valid.append(command)
        return valid

    def _validate_options(self, options: Any, base_dir: Path) -> Optional[ExecutionOptions]:
        if options is None:
            return ExecutionOptions()
        if not isinstance(options, dict):
            self._add_error(f"'options' must be a mapping, got {type(options).__name__}", path='options')
            return None

        for key in options:
            if key not in self.OPTION_KEYS:
                self._add_error(f"Unknown option '{key}'", path=f"options.{key}")

        kwargs: Dict[str, Any] = {}

        if 'output' in options:
            try:
                kwargs['output_mode'] = OutputMode.parse(options['output'])
            except ValueError as e:
                self._add_error(str(e), path='options.output')

        for flag in ('verbose', 'continue_on_error'):
            if flag in options:
                if isinstance(options[flag], bool):
                    kwargs[flag] = options[flag]
                else:
                    self._add_error(f"'{flag}' must be a boolean", path=f"options.{flag}")

        cwd = options.get('cwd')
        if cwd is not None:
            if isinstance(cwd, str) and cwd.strip():
                cwd_path = Path(cwd)
                # Relative paths are anchored at the sequence file, not the caller
                kwargs['cwd'] = cwd_path if cwd_path.is_absolute() else (base_dir / cwd_path).resolve()
            else:
                self._add_error("'cwd' must be a non-empty string", path='options.cwd')

        env = options.get('env')
        if env is not None:
            if isinstance(env, dict):
                kwargs['env'] = self._validate_env(env)
            else:
                self._add_error(f"'env' must be a mapping, got {type(env).__name__}", path='options.env')

        return ExecutionOptions(**kwargs)

    def _validate_env(self, env: Dict[Any, Any]) -> Dict[str, str]:
        valid = {}
        for key, value in env.items():
            path = f"options.env.{key}"
            # bool is an int subclass, so it has to be rejected explicitly
            if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                self._add_error(f"Environment value must be a string or number, got {type(value).__name__}",
                                path=path)
            else:
                valid[str(key)] = str(value)
        return valid

    def _add_error(self, message: str, path: str = "") -> None:
        self.errors.append(ValidationError(message=message, path=path))

    def _raise_validation_errors(self) -> None:
        if self.errors:
            raise SequenceValidationError(self.errors)
