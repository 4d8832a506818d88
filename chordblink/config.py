"""Run options and YAML configuration loading.

Options travel as one explicit value object through the progression
builder, the scheduler and the emitters. They can be read from a YAML file:

```yaml
options:
  loop: true
  bright: false
  indicate_bass: true
  ignore_scales: false
  default_root: C

tables:
  chords: [my_chords.txt]
  scales: [my_scales.txt]

midi:
  output_device: "LED Fretboard"
  input_device: "Keystation 49"
```

Command-line flags override anything loaded from the file.
"""

import dataclasses
import logging
import os
import typing

import yaml

import chordblink.constants


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "chordblink.yaml"


@dataclasses.dataclass
class Options:

	"""
	Toggles and paths shared by every stage of a run.
	"""

	loop: bool = False
	bright: bool = False
	indicate_bass: bool = False
	ignore_scales: bool = False
	debug: bool = False
	default_root: str = chordblink.constants.DEFAULT_ROOT
	chord_tables: typing.List[str] = dataclasses.field(default_factory=list)
	scale_tables: typing.List[str] = dataclasses.field(default_factory=list)
	output_device: typing.Optional[str] = None
	input_device: typing.Optional[str] = None


	@classmethod
	def from_config (cls, config: typing.Dict[str, typing.Any]) -> "Options":

		"""Build options from a parsed config dict (see module docstring)."""

		options_section = config.get('options', {}) or {}
		tables_section = config.get('tables', {}) or {}
		midi_section = config.get('midi', {}) or {}

		known = {field.name for field in dataclasses.fields(cls)}
		unknown = set(options_section) - known

		if unknown:
			logger.warning(f"Ignoring unknown option(s) in config: {sorted(unknown)}")

		values = {key: value for key, value in options_section.items() if key in known}

		values.setdefault('chord_tables', _as_list(tables_section.get('chords')))
		values.setdefault('scale_tables', _as_list(tables_section.get('scales')))
		values.setdefault('output_device', midi_section.get('output_device'))
		values.setdefault('input_device', midi_section.get('input_device'))

		return cls(**values)


	def override (self, **changes: typing.Any) -> "Options":

		"""Return a copy with every non-None change applied."""

		return dataclasses.replace(self, **{key: value for key, value in changes.items() if value is not None})


def _as_list (value: typing.Any) -> typing.List[str]:

	if value is None:
		return []

	if isinstance(value, str):
		return [value]

	return [str(item) for item in value]


def load_config (config_path: str = DEFAULT_CONFIG_PATH) -> typing.Dict[str, typing.Any]:

	"""
	Load configuration from a YAML file.
	"""

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return {}

	with open(config_path, 'r') as f:
		return yaml.safe_load(f) or {}
