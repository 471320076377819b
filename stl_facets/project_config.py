"""
JSON-based project configuration for stl_facets.

Configuration hierarchy (later overrides earlier):
1. Built-in defaults (dataclass defaults below)
2. User config (~/.facets.json)
3. Project config (--config path, else next to the STL file, else ./.facets.json)
4. CLI arguments

Section values are checked against the dataclass field types when loaded;
numeric strings such as "0.5" are converted, anything else raises ValueError.

Example .facets.json:
{
    "slicing": {
        "axis": "z",
        "layer_height": 0.2,
        "parallel": true
    },
    "mesh": {
        "dedup_decimals": 6
    },
    "output": {
        "formats": ["svg"],
        "prefix": "layer_",
        "output_dir": "slices"
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin, get_type_hints

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".facets.json"


@dataclass
class SlicingConfig:
    """Slicing plane placement."""
    axis: str = "z"
    layer_height: Optional[float] = None  # None = derive from num_slices
    num_slices: Optional[int] = 30
    parallel: bool = False
    max_workers: Optional[int] = None


@dataclass
class MeshConfig:
    """Mesh loading settings."""
    dedup_decimals: int = 6
    degenerate_area_threshold: float = 1e-10


@dataclass
class OutputConfig:
    """Output file configuration."""
    formats: List[str] = field(default_factory=lambda: ["svg"])
    prefix: str = "layer_"
    output_dir: str = ""
    stroke_width_mm: float = 0.2
    margin_mm: float = 5.0
    write_metadata: bool = True


_SECTIONS = {
    'slicing': SlicingConfig,
    'mesh': MeshConfig,
    'output': OutputConfig,
}


def _coerce_value(name: str, value: Any, hint: Any) -> Any:
    """Convert a JSON value to the field type `hint`.

    Raises:
        ValueError: If the value cannot represent the field type
    """
    optional = False
    if get_origin(hint) is Union:
        members = [arg for arg in get_args(hint) if arg is not type(None)]
        optional = len(members) < len(get_args(hint))
        hint = members[0]

    if value is None:
        if optional:
            return None
        raise ValueError(f"Invalid value for {name}: None")

    target = get_origin(hint) or hint
    if target is bool:
        if isinstance(value, bool):
            return value
    elif target is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
    elif target is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value)
            except ValueError:
                pass
    elif target is list:
        if isinstance(value, list) and all(isinstance(item, str) for item in value):
            return list(value)
    elif isinstance(value, target):
        return value

    raise ValueError(
        f"Invalid value for {name}: {value!r} (expected {getattr(target, '__name__', target)})"
    )


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    slicing: SlicingConfig = field(default_factory=SlicingConfig)
    mesh: MeshConfig = field(default_factory=MeshConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create configuration from a dictionary.

        Unknown sections and keys (including "_comment" entries) are ignored.
        """
        config = cls()
        for section_name in _SECTIONS:
            section_data = data.get(section_name)
            if not isinstance(section_data, dict):
                continue
            section = getattr(config, section_name)
            hints = get_type_hints(_SECTIONS[section_name])
            for key, value in section_data.items():
                if key in hints:
                    setattr(section, key,
                            _coerce_value(f"{section_name}.{key}", value, hints[key]))
                else:
                    logger.debug("Ignoring unknown config key %s.%s", section_name, key)
        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
            ValueError: If a value has the wrong type
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    stl_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find configuration file using search hierarchy.

    Search order:
    1. Explicit config path (if provided)
    2. .facets.json in STL file's directory
    3. .facets.json in current working directory
    4. ~/.facets.json in user's home directory

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    candidates = []
    if stl_path:
        candidates.append(Path(stl_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(Path.home() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(
    stl_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration, layering the project config over the user config.

    Keys set in the project config replace the same keys of ~/.facets.json;
    keys it leaves out keep the user value. Unreadable files are logged and
    skipped.

    Raises:
        ValueError: If a config value has the wrong type
    """
    sources = []
    user_path = Path.home() / CONFIG_FILENAME
    if user_path.exists():
        sources.append(user_path)
    config_path = find_config_file(stl_path, explicit_config)
    if config_path and config_path not in sources:
        sources.append(config_path)

    data: Dict[str, Any] = {}
    for path in sources:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error("Failed to load config %s: %s", path, e)
            continue
        if not isinstance(loaded, dict):
            logger.error("Failed to load config %s: top level is not an object", path)
            continue
        for section_name, values in loaded.items():
            if isinstance(values, dict) and isinstance(data.get(section_name), dict):
                data[section_name] = {**data[section_name], **values}
            else:
                data[section_name] = values
        logger.info("Configuration loaded from %s", path)

    return ProjectConfig.from_dict(data)


def merge_configs(base: ProjectConfig, override: ProjectConfig) -> ProjectConfig:
    """Merge two configurations; non-default values of `override` win."""
    merged = ProjectConfig.from_dict(base.to_dict())

    for section_name, section_cls in _SECTIONS.items():
        defaults = section_cls()
        override_section = getattr(override, section_name)
        merged_section = getattr(merged, section_name)
        for f in fields(section_cls):
            value = getattr(override_section, f.name)
            if value != getattr(defaults, f.name):
                setattr(merged_section, f.name, value)

    return merged


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Write a documented sample configuration file."""
    sample = {
        "_comment": "stl_facets slicing configuration",
        "_version": "1.0",
        "slicing": {
            "_comment": "Set either layer_height or num_slices",
            "axis": "z",
            "layer_height": None,
            "num_slices": 30,
            "parallel": False,
            "max_workers": None,
        },
        "mesh": {
            "_comment": "Vertices are merged after rounding to dedup_decimals",
            "dedup_decimals": 6,
            "degenerate_area_threshold": 1e-10,
        },
        "output": {
            "_comment": "Layer export settings",
            "formats": ["svg"],
            "prefix": "layer_",
            "output_dir": "",
            "stroke_width_mm": 0.2,
            "margin_mm": 5.0,
            "write_metadata": True,
        },
    }

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
