"""Configuration structures for worker nodes.

Every worker directory ships a ``config.yaml`` describing the node's
identity, its I/O sections and its internal settings. The structures here
are declarative metadata for clients building the UI; the orchestrator
never enforces slot types or connection limits.

Example::

    node_id_hash: "hash_sha256_example"
    label: "Example Node"
    node_type: "processing"
    sections:
      - section_name: "inputs"
        section_label: "Input Files"
        behavior: "auto_increment"
        slot_template:
          input:
            name: "file_input"
            label: "File {index}"
            type: "FILE_CONTENT"
            connections: 1
          output:
            name: "file_output"
            label: "Processed File {index}"
            type: "FILE_CONTENT"
            connections: "n"
    input_fields:
      - name: "setting"
        label: "Configuration Setting"
        type: "text"
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, RootModel, ValidationError, field_validator

from core.types_registry import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
UNLIMITED_TOKEN = "n"


class SectionBehavior(str, Enum):
    """How slot pairs of a section are created."""

    AUTO_INCREMENT = "auto_increment"  # caller adds a pair as existing ones get connected
    DYNAMIC_PER_FILE = "dynamic_per_file"  # one pair per discovered file
    STATIC = "static"  # fixed count


class SlotType(str, Enum):
    FILE_CONTENT = "FILE_CONTENT"
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    JSON = "JSON"
    ARRAY = "ARRAY"
    BLOB = "BLOB"


class InputFieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    BUTTON = "button"
    SELECT = "select"
    FILE_PATH = "file_path"
    DIRECTORY_PATH = "directory_path"


class ConnectionCount(RootModel[int | str]):
    """Connection limit of a handle: an exact count or unlimited (``"n"``).

    Any string is read as the unlimited sentinel and serialises back
    unchanged.
    """

    model_config = ConfigDict(frozen=True)

    @field_validator("root", mode="before")
    @classmethod
    def _check_value(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("connections must be an integer or the unlimited token")
        if isinstance(value, int) and value < 0:
            raise ValueError("connections cannot be negative")
        return value

    @classmethod
    def exact(cls, count: int) -> "ConnectionCount":
        return cls(count)

    @classmethod
    def unlimited(cls) -> "ConnectionCount":
        return cls(UNLIMITED_TOKEN)

    def is_unlimited(self) -> bool:
        return isinstance(self.root, str)

    def max_connections(self) -> int | None:
        """Maximum number of connections, or None if unlimited."""
        if isinstance(self.root, str):
            return None
        return self.root


class SlotConfig(BaseModel):
    """One side (input or output) of a slot template."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    label: str
    slot_type: SlotType = Field(..., alias="type")
    connections: ConnectionCount

    def handle_name(self, index: int) -> str:
        return f"{self.name}_{index}"

    def render_label(self, index: int | None = None, filename: str | None = None) -> str:
        """Fill the ``{index}`` and ``{filename}`` placeholders of the label."""
        label = self.label
        if index is not None:
            label = label.replace("{index}", str(index))
        if filename is not None:
            label = label.replace("{filename}", filename)
        return label


# Input and output slots share the same schema
InputSlotConfig = SlotConfig
OutputSlotConfig = SlotConfig


class SlotTemplate(BaseModel):
    model_config = ConfigDict(frozen=True)

    input: SlotConfig
    output: SlotConfig


class Section(BaseModel):
    """A named group of paired input/output slots."""

    model_config = ConfigDict(frozen=True)

    section_name: str
    section_label: str | None = None
    behavior: SectionBehavior
    slot_template: SlotTemplate

    def handle_names(self, count: int) -> list[tuple[str, str]]:
        """Generated (input, output) handle names for ``count`` slot pairs."""
        template = self.slot_template
        return [(template.input.handle_name(i), template.output.handle_name(i)) for i in range(count)]


class InputFieldConfig(BaseModel):
    """Internal control rendered inside the node, not a data-flow slot."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    label: str
    field_type: InputFieldType = Field(..., alias="type")
    default: str | None = None


class NodeConfig(BaseModel):
    """Root descriptor parsed from a worker's ``config.yaml``."""

    model_config = ConfigDict(frozen=True)

    node_id_hash: str
    label: str
    node_type: str
    sections: list[Section] = Field(default_factory=list)
    input_fields: list[InputFieldConfig] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the on-disk key names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


_REQUIRED_FIELDS = ("node_id_hash", "label", "node_type")


def load_config(config_path: str | Path) -> NodeConfig:
    """Load and validate a node descriptor.

    Raises:
        ConfigurationError: If the file cannot be read or parsed, or a
            required identity field is empty.
    """
    path = Path(config_path)

    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Failed to read config file at {path}: {e}") from e

    try:
        raw = yaml.safe_load(contents)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse config YAML at {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Failed to parse config YAML at {path}: expected a mapping")

    try:
        config = NodeConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Failed to parse config YAML at {path}: {e}") from e

    for field_name in _REQUIRED_FIELDS:
        if not getattr(config, field_name):
            raise ConfigurationError(f"{field_name} cannot be empty")

    logger.debug(f"Loaded config '{config.node_id_hash}' from {path}")
    return config
